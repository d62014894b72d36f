from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from django.conf import settings

from core.money import to_decimal

logger = logging.getLogger(__name__)

PRODUCT = "PRODUCT"
PRODUCT_WHITE_LABEL = "PRODUCT_WHITE_LABEL"


def fallback_fee_percent() -> Decimal:
    return to_decimal(getattr(settings, "PLATFORM_DEFAULT_FEE_PERCENT", "10.00"))


def _lookup(mapping: Optional[Mapping[str, Any]], key: Optional[str], label: str) -> Optional[Decimal]:
    if not key or not isinstance(mapping, Mapping) or key not in mapping:
        return None
    raw = mapping.get(key)
    if raw is None:
        return None
    try:
        pct = to_decimal(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s fee for %r: %r", label, key, raw)
        return None
    if pct < 0:
        logger.warning("Ignoring negative %s fee for %r: %s", label, key, pct)
        return None
    return pct


def resolve_fee_percent(config, order_type: Optional[str], category: Optional[str] = None, at=None) -> Decimal:
    """
    Effective commission percent for an order.

    Priority: fee_by_category[category] > fee_by_type[order_type] > config.default_fee_percent
    > settings.PLATFORM_DEFAULT_FEE_PERCENT. Never raises; a config outside its validity
    window is logged and still used since picking the right config is the caller's job.
    """
    if config is None:
        return fallback_fee_percent()

    if at is not None and hasattr(config, "is_effective_at") and not config.is_effective_at(at):
        logger.warning("Resolving fee against config %s outside its validity window at %s", getattr(config, "pk", None), at)

    pct = _lookup(getattr(config, "fee_by_category", None), category, "category")
    if pct is not None:
        return pct
    pct = _lookup(getattr(config, "fee_by_type", None), order_type, "type")
    if pct is not None:
        return pct

    default = getattr(config, "default_fee_percent", None)
    if default is not None:
        try:
            return to_decimal(default)
        except ValueError:
            logger.warning("Ignoring non-numeric default fee on config %s: %r", getattr(config, "pk", None), default)
    return fallback_fee_percent()


def product_fee_type(is_white_label: bool) -> str:
    return PRODUCT_WHITE_LABEL if is_white_label else PRODUCT


def resolve_product_fee_percent(config, is_white_label: bool, category: Optional[str] = None, at=None) -> Decimal:
    """White-label lines use PRODUCT_WHITE_LABEL when configured, else the plain PRODUCT rate."""
    if is_white_label and config is not None:
        pct = _lookup(getattr(config, "fee_by_category", None), category, "category")
        if pct is not None:
            return pct
        pct = _lookup(getattr(config, "fee_by_type", None), PRODUCT_WHITE_LABEL, "type")
        if pct is not None:
            return pct
    return resolve_fee_percent(config, PRODUCT, category, at)
