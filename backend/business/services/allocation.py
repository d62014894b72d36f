from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import List, Sequence

from business.exceptions import SettlementValidationError
from business.services.payouts import PayoutBreakdown, non_negative
from core.money import HUNDRED, ZERO, clamp_ratio, from_cents, q2, to_cents, to_decimal


def allocate_discount(line_totals: Sequence, order_discount) -> List[Decimal]:
    """
    Split an order-level discount across lines proportionally to line_total.

    Largest-remainder in cents: every line gets the floor of its exact share, then the
    leftover cents go to the largest fractional remainders (highest index first on ties),
    so the shares always sum to order_discount exactly.
    """
    totals = [to_cents(t) for t in line_totals]
    discount = to_cents(order_discount)
    if any(t < 0 for t in totals):
        raise SettlementValidationError("Line totals must not be negative.")
    if discount < 0:
        raise SettlementValidationError("Order discount must not be negative.")
    grand = sum(totals)
    if discount > grand:
        raise SettlementValidationError("Order discount exceeds the order total.")
    if discount == 0 or not totals:
        return [ZERO for _ in totals]

    floors = []
    remainders = []
    for i, t in enumerate(totals):
        share, rem = divmod(discount * t, grand)
        floors.append(share)
        remainders.append((rem, i))

    residual = discount - sum(floors)
    for rem, i in sorted(remainders, key=lambda r: (r[0], r[1]), reverse=True)[:residual]:
        floors[i] += 1
    return [from_cents(c) for c in floors]


def allocate_line_items(
    items: Sequence,
    order_discount,
    fee_percents: Sequence,
    real_ratio: float = 1.0,
    effective_real_amount=None,
) -> list:
    """
    Write discount_amount, platform_fee_percent, platform_fee_amount and expert_earnings
    onto each line item (any object with a line_total attribute).

    The order's effective real amount (by default the post-discount total at real_ratio)
    is split across lines by the same largest-remainder rule as the discount, so the
    line amounts sum to it exactly; each line then pays its own fee percent on its share.
    """
    if len(items) != len(fee_percents):
        raise SettlementValidationError("One fee percent is required per line item.")
    shares = allocate_discount([item.line_total for item in items], order_discount)
    nets = [q2(q2(item.line_total) - share) for item, share in zip(items, shares)]
    if effective_real_amount is None:
        effective_real_amount = q2(sum(nets, ZERO) * Decimal(str(clamp_ratio(real_ratio))))
    effective = allocate_discount(nets, effective_real_amount)

    for item, share, real, pct in zip(items, shares, effective, fee_percents):
        pct = non_negative(pct, "fee_percent")
        fee = q2(real * pct / HUNDRED)
        item.discount_amount = share
        item.platform_fee_percent = pct
        item.platform_fee_amount = fee
        item.expert_earnings = q2(real - fee)
    return list(items)


def rollup_line_items(breakdown: PayoutBreakdown, items: Sequence) -> PayoutBreakdown:
    """
    Order-level breakdown whose fee and earnings are the sums of the allocated lines.
    The fee percent is the lines' common rate, or the blended rate when they differ.
    """
    fee = sum((q2(item.platform_fee_amount) for item in items), ZERO)
    earnings = sum((q2(item.expert_earnings) for item in items), ZERO)
    rates = {to_decimal(item.platform_fee_percent) for item in items}
    if len(rates) == 1:
        pct = rates.pop()
    elif breakdown.effective_real_amount > 0:
        pct = q2(fee * HUNDRED / breakdown.effective_real_amount)
    else:
        pct = breakdown.platform_fee_percent
    return replace(breakdown, platform_fee_percent=pct, platform_fee=fee, expert_earnings=earnings)
