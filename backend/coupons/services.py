from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from business.exceptions import CouponExhausted, SettlementValidationError
from core.money import HUNDRED, ZERO, q2, to_decimal
from .models import Coupon, CouponClaim, CouponType

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Coupon not found/disabled"
MSG_INACTIVE = "Coupon expired/not yet active"
MSG_NEW_USERS = "New users only"
MSG_MIN_CART = "Minimum cart amount not met"
MSG_NOT_ELIGIBLE = "Not eligible"
MSG_USAGE_LIMIT = "Usage limit reached"
MSG_PER_USER_LIMIT = "Per-user limit reached"
MSG_APPLIED = "Coupon applied"


@dataclass(frozen=True)
class CouponResult:
    valid: bool
    message: str
    discount: Decimal = ZERO
    new_amount: Decimal = ZERO

    def as_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "message": self.message,
            "discount": f"{self.discount}",
            "new_amount": f"{self.new_amount}",
        }


def get_coupon(code: Optional[str]) -> Optional[Coupon]:
    code = (code or "").strip()
    if not code:
        return None
    return Coupon.objects.filter(code__iexact=code).first()


def user_claim_count(coupon: Optional[Coupon], user) -> int:
    if coupon is None or user is None or getattr(user, "pk", None) is None:
        return 0
    return CouponClaim.objects.filter(coupon=coupon, user=user).count()


def compute_discount(coupon: Coupon, cart_amount) -> Decimal:
    cart = q2(cart_amount)
    if coupon.type == CouponType.PERCENTAGE:
        discount = q2(cart * to_decimal(coupon.discount) / HUNDRED)
        if coupon.max_discount_amount is not None:
            discount = min(discount, q2(coupon.max_discount_amount))
    else:
        discount = q2(coupon.discount)
    # Never more than the cart, whatever the coupon row says
    return max(min(discount, cart), ZERO)


def validate_coupon(
    coupon: Optional[Coupon],
    cart_amount,
    user_id=None,
    prior_order_count: int = 0,
    user_claim_count: int = 0,
    now=None,
) -> CouponResult:
    """
    Check a coupon against the order context and price the discount.

    Rules run in order and the first failure wins. The result is advisory: the
    authoritative usage check happens in try_claim once the order is payable.
    """
    try:
        cart = q2(cart_amount)
    except ValueError:
        raise SettlementValidationError("cart_amount must be a number.")
    if cart < 0:
        raise SettlementValidationError("cart_amount must not be negative.")
    now = now or timezone.now()

    def reject(message: str) -> CouponResult:
        return CouponResult(valid=False, message=message, discount=ZERO, new_amount=cart)

    if coupon is None or not coupon.is_enabled:
        return reject(MSG_NOT_FOUND)
    if now < coupon.start_date or now > coupon.end_date:
        return reject(MSG_INACTIVE)
    if coupon.only_for_new_users and int(prior_order_count or 0) > 0:
        return reject(MSG_NEW_USERS)
    if coupon.min_cart_amount is not None and cart < q2(coupon.min_cart_amount):
        return reject(MSG_MIN_CART)
    allowed = [str(u) for u in (coupon.user_ids_allowed or [])]
    if allowed and str(user_id) not in allowed:
        return reject(MSG_NOT_ELIGIBLE)
    if coupon.total_usage_limit is not None and int(coupon.claims_made_so_far or 0) >= int(coupon.total_usage_limit):
        return reject(MSG_USAGE_LIMIT)
    if coupon.max_claims_per_user is not None and int(user_claim_count or 0) >= int(coupon.max_claims_per_user):
        return reject(MSG_PER_USER_LIMIT)

    discount = compute_discount(coupon, cart)
    new_amount = q2(max(cart - discount, ZERO))
    return CouponResult(valid=True, message=MSG_APPLIED, discount=discount, new_amount=new_amount)


def try_claim(coupon: Coupon, user=None, order_id: str = "") -> Coupon:
    """
    Atomically take one use of the coupon.

    A single conditional UPDATE increments claims_made_so_far only while it is below
    total_usage_limit, so the database linearizes racing claims and exactly
    total_usage_limit of them can succeed. Raises CouponExhausted when no row matched.
    """
    with transaction.atomic():
        updated = (
            Coupon.objects.filter(pk=coupon.pk)
            .filter(Q(total_usage_limit__isnull=True) | Q(claims_made_so_far__lt=F("total_usage_limit")))
            .update(claims_made_so_far=F("claims_made_so_far") + 1)
        )
        if not updated:
            logger.info("Coupon %s exhausted (claim for order %s rejected)", coupon.code, order_id or "-")
            raise CouponExhausted(f"Coupon {coupon.code} has no claims left.")
        CouponClaim.objects.create(coupon_id=coupon.pk, user=user, order_id=str(order_id or ""))
    coupon.refresh_from_db(fields=["claims_made_so_far"])
    logger.info("Coupon %s claimed (%s used) for order %s", coupon.code, coupon.claims_made_so_far, order_id or "-")
    return coupon
