import logging
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.test import override_settings
from django.utils import timezone

from business.models import PlatformFeeConfig
from business.services.fees import (
    product_fee_type,
    resolve_fee_percent,
    resolve_product_fee_percent,
)


def _config(**kwargs):
    fields = {"default_fee_percent": Decimal("12.00"), "fee_by_type": {}, "fee_by_category": {}}
    fields.update(kwargs)
    return SimpleNamespace(**fields)


def test_priority_category_over_type_over_default():
    cfg = _config(fee_by_type={"PRODUCT": 15}, fee_by_category={"TAROT": "8.5"})
    assert resolve_fee_percent(cfg, "PRODUCT", "TAROT") == Decimal("8.5")
    assert resolve_fee_percent(cfg, "PRODUCT", "HOROSCOPE") == Decimal("15")
    assert resolve_fee_percent(cfg, "PRODUCT") == Decimal("15")
    assert resolve_fee_percent(cfg, "WEBINAR", "HOROSCOPE") == Decimal("12.00")


def test_no_config_uses_platform_fallback():
    assert resolve_fee_percent(None, "PRODUCT") == Decimal("10.00")
    with override_settings(PLATFORM_DEFAULT_FEE_PERCENT="7.5"):
        assert resolve_fee_percent(None, "PRODUCT") == Decimal("7.5")


def test_missing_default_uses_platform_fallback():
    assert resolve_fee_percent(_config(default_fee_percent=None), "WEBINAR") == Decimal("10.00")


def test_bad_map_values_are_skipped(caplog):
    cfg = _config(fee_by_type={"PRODUCT": "abc"}, fee_by_category={"TAROT": -3})
    with caplog.at_level(logging.WARNING, logger="business.services.fees"):
        assert resolve_fee_percent(cfg, "PRODUCT", "TAROT") == Decimal("12.00")
    assert "non-numeric" in caplog.text
    assert "negative" in caplog.text


def test_resolution_is_idempotent():
    cfg = _config(fee_by_type={"ON_DEMAND_CONSULTATION": 20}, fee_by_category={"VASTU": 11})
    first = resolve_fee_percent(cfg, "ON_DEMAND_CONSULTATION", "VASTU")
    for _ in range(5):
        assert resolve_fee_percent(cfg, "ON_DEMAND_CONSULTATION", "VASTU") == first
    assert cfg.fee_by_category == {"VASTU": 11}


def test_white_label_products():
    assert product_fee_type(True) == "PRODUCT_WHITE_LABEL"
    assert product_fee_type(False) == "PRODUCT"
    cfg = _config(fee_by_type={"PRODUCT": 15, "PRODUCT_WHITE_LABEL": 25})
    assert resolve_product_fee_percent(cfg, True) == Decimal("25")
    assert resolve_product_fee_percent(cfg, False) == Decimal("15")
    # No white-label rate configured -> plain product rate
    assert resolve_product_fee_percent(_config(fee_by_type={"PRODUCT": 15}), True) == Decimal("15")


@pytest.mark.django_db
def test_expired_config_logs_and_still_resolves(caplog):
    now = timezone.now()
    cfg = PlatformFeeConfig.objects.create(
        default_fee_percent=Decimal("9.00"),
        effective_from=now - timedelta(days=10),
        effective_until=now - timedelta(days=1),
    )
    with caplog.at_level(logging.WARNING, logger="business.services.fees"):
        assert resolve_fee_percent(cfg, "PRODUCT", at=now) == Decimal("9.00")
    assert "outside its validity window" in caplog.text


@pytest.mark.django_db
def test_active_for_prefers_expert_then_platform(expert):
    now = timezone.now()
    platform = PlatformFeeConfig.objects.create(default_fee_percent=Decimal("10.00"), effective_from=now - timedelta(days=5))
    assert PlatformFeeConfig.active_for(expert, now) == platform

    mine = PlatformFeeConfig.objects.create(expert=expert, default_fee_percent=Decimal("6.00"), effective_from=now - timedelta(days=1))
    assert PlatformFeeConfig.active_for(expert, now) == mine
    assert PlatformFeeConfig.active_for(None, now) == platform

    # Not yet effective
    PlatformFeeConfig.objects.create(expert=expert, default_fee_percent=Decimal("3.00"), effective_from=now + timedelta(days=1))
    assert PlatformFeeConfig.active_for(expert, now) == mine
    assert mine.is_effective_at(now)
    assert not mine.is_effective_at(now - timedelta(days=2))
