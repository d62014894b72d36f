from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from accounts.models import TransactionSource, TransactionType, Wallet
from business.exceptions import (
    ConcurrencyConflict,
    CouponRejected,
    SettlementConflict,
    SettlementValidationError,
)
from business.models import PlatformFeeConfig
from business.services import wallet_ledger
from business.services.allocation import allocate_line_items, rollup_line_items
from business.services.fees import resolve_fee_percent, resolve_product_fee_percent
from business.services.payouts import PayoutBreakdown, calculate_payout, non_negative
from coupons.services import CouponResult, get_coupon, try_claim, user_claim_count, validate_coupon
from core.money import ZERO, q2
from market.models import Order, OrderStatus, OrderType

logger = logging.getLogger(__name__)

DEDUCTION_TYPE_BY_ORDER_TYPE = {
    OrderType.ON_DEMAND_CONSULTATION: TransactionType.CONSULTATION_DEDUCTION,
    OrderType.PRODUCT: TransactionType.PRODUCT_DEDUCTION,
    OrderType.DIGITAL_PRODUCT: TransactionType.DIGITAL_PRODUCT_DEDUCTION,
    OrderType.WEBINAR: TransactionType.WEBINAR_DEDUCTION,
}


@dataclass(frozen=True)
class SettlementResult:
    order: Order
    breakdown: PayoutBreakdown
    coupon: Optional[CouponResult] = None
    wallet: Optional[wallet_ledger.WalletState] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order.pk,
            "status": self.order.status,
            "discount": f"{q2(self.order.discount or 0)}",
            "breakdown": self.breakdown.as_dict(),
            "coupon": self.coupon.as_dict() if self.coupon else None,
            "wallet": (
                {
                    "balance": f"{self.wallet.balance}",
                    "real_ratio": round(self.wallet.real_ratio, 6),
                }
                if self.wallet
                else None
            ),
        }


def deduction_type_for(order_type) -> TransactionType:
    try:
        return DEDUCTION_TYPE_BY_ORDER_TYPE[OrderType(str(order_type))]
    except (KeyError, ValueError):
        raise SettlementValidationError(f"Unsupported order type: {order_type!r}")


def prior_paid_order_count(user, exclude_order_id=None) -> int:
    qs = Order.objects.filter(user=user, status=OrderStatus.PAID)
    if exclude_order_id is not None:
        qs = qs.exclude(pk=exclude_order_id)
    return qs.count()


def validate_order_coupon(order: Order, code: str, now=None):
    """
    Validate a coupon code against an order's payer and amount.
    Returns (coupon, CouponResult); raises CouponRejected when the coupon does not apply.
    """
    coupon = get_coupon(code)
    result = validate_coupon(
        coupon,
        order.amount,
        user_id=order.user_id,
        prior_order_count=prior_paid_order_count(order.user, exclude_order_id=order.pk),
        user_claim_count=user_claim_count(coupon, order.user),
        now=now,
    )
    if not result.valid:
        logger.info("Coupon %r rejected for order %s: %s", code, order.pk, result.message)
        raise CouponRejected(result)
    return coupon, result


def _payer_state(wallet: Optional[Wallet]) -> wallet_ledger.WalletState:
    if wallet is None:
        return wallet_ledger.WalletState(balance=ZERO, real_ratio=0.0, version=0)
    return wallet_ledger.snapshot(wallet.pk)


def _line_fee_percents(order: Order, items, config, at) -> list:
    if order.order_type == OrderType.PRODUCT:
        return [
            resolve_product_fee_percent(config, li.is_white_label, li.category or order.category or None, at)
            for li in items
        ]
    pct = resolve_fee_percent(config, order.order_type, order.category or None, at)
    return [pct for _ in items]


def preview_payout(
    gateway_amount,
    wallet_deduction,
    order_type,
    category: Optional[str] = None,
    expert=None,
    wallet: Optional[Wallet] = None,
    real_ratio: Optional[float] = None,
    now=None,
) -> PayoutBreakdown:
    """Same breakdown settle_order would compute, without touching any state."""
    at = now or timezone.now()
    if real_ratio is None:
        real_ratio = wallet_ledger.snapshot_ratio(wallet.pk) if wallet is not None else 0.0
    config = PlatformFeeConfig.active_for(expert, at)
    pct = resolve_fee_percent(config, str(order_type), category or None, at)
    return calculate_payout(gateway_amount, wallet_deduction, real_ratio, pct)


def settle_order(order: Order, gateway_amount, wallet_deduction, coupon_code: Optional[str] = None, now=None) -> SettlementResult:
    """
    Turn a CREATED order into a PAID one.

    Inside one atomic block: claim the coupon, debit the payer's wallet against the
    snapshot its payout was priced on (recomputing on a lost race), allocate line items,
    persist the breakdown and credit the expert's earnings. Any failure rolls back all of it.
    """
    at = now or timezone.now()
    if order.status != OrderStatus.CREATED:
        raise SettlementValidationError(f"Order {order.pk} is {order.status}, expected {OrderStatus.CREATED}.")
    gateway = q2(non_negative(gateway_amount, "gateway_amount"))
    wallet_amount = q2(non_negative(wallet_deduction, "wallet_deduction"))
    debit_type = deduction_type_for(order.order_type)

    items = list(order.items.all())
    if items:
        line_sum = sum((q2(li.line_total) for li in items), ZERO)
        if line_sum != q2(order.amount):
            raise SettlementValidationError(f"Line totals {line_sum} do not match order amount {q2(order.amount)}.")

    code = (coupon_code or order.coupon_code or "").strip()
    coupon = None
    coupon_result = None
    if code:
        coupon, coupon_result = validate_order_coupon(order, code, now=at)
        discount = coupon_result.discount
    else:
        discount = q2(order.discount or 0)

    net = q2(q2(order.amount) - discount)
    if net < 0:
        raise SettlementValidationError("Discount exceeds the order amount.")
    if gateway + wallet_amount != net:
        raise SettlementValidationError(
            f"gateway_amount + wallet_deduction ({gateway + wallet_amount}) must equal the payable amount {net}."
        )

    config = PlatformFeeConfig.active_for(order.expert, at)
    if wallet_amount > 0:
        wallet = Wallet.get_or_create_for_user(order.user, order.currency)
    else:
        wallet = Wallet.objects.filter(user=order.user, currency=order.currency).first()

    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        if locked.status != OrderStatus.CREATED:
            raise SettlementValidationError(f"Order {order.pk} was settled concurrently.")

        if coupon is not None:
            try_claim(coupon, user=order.user, order_id=str(order.pk))

        attempts = wallet_ledger.max_retries()
        state = None
        for attempt in range(1, attempts + 1):
            snap = _payer_state(wallet)
            pct = resolve_fee_percent(config, order.order_type, order.category or None, at)
            breakdown = calculate_payout(gateway, wallet_amount, snap.real_ratio, pct)
            if wallet_amount == 0:
                break
            try:
                state = wallet_ledger.debit(
                    wallet.pk,
                    wallet_amount,
                    debit_type,
                    expected_version=snap.version,
                    source=TransactionSource.ORDER,
                    order_id=str(order.pk),
                    coupon_code=code,
                )
                break
            except ConcurrencyConflict:
                logger.warning("Order %s wallet debit raced (attempt %s/%s), repricing", order.pk, attempt, attempts)
        else:
            raise SettlementConflict(f"Order {order.pk} could not be settled after {attempts} attempts.")

        if items:
            allocate_line_items(
                items,
                discount,
                _line_fee_percents(order, items, config, at),
                effective_real_amount=breakdown.effective_real_amount,
            )
            # Per-line fees (e.g. white-label) decide what the expert is paid
            breakdown = rollup_line_items(breakdown, items)
            for li in items:
                li.save(update_fields=["discount_amount", "platform_fee_percent", "platform_fee_amount", "expert_earnings"])

        locked.coupon_code = code
        locked.discount = discount
        locked.apply_breakdown(breakdown)
        locked.status = OrderStatus.PAID
        locked.paid_at = at
        locked.save()

        if locked.expert_id and breakdown.expert_earnings > 0:
            expert_wallet = Wallet.get_or_create_for_user(locked.expert, locked.currency)
            wallet_ledger.credit(
                expert_wallet.pk,
                breakdown.expert_earnings,
                TransactionType.ORDER_EARNING,
                source=TransactionSource.ORDER,
                order_id=str(order.pk),
                meta={"effective_real_amount": f"{breakdown.effective_real_amount}", "platform_fee": f"{breakdown.platform_fee}"},
            )

    logger.info(
        "Settled order %s: net=%s gateway=%s wallet=%s ratio=%.4f fee=%s%% (%s) earnings=%s",
        order.pk, net, gateway, wallet_amount, breakdown.real_ratio,
        breakdown.platform_fee_percent, breakdown.platform_fee, breakdown.expert_earnings,
    )
    order.refresh_from_db()
    return SettlementResult(order=order, breakdown=breakdown, coupon=coupon_result, wallet=state)
