"""
Payouts are computed on real money the platform actually received, not on the
face value of wallet balance spent:

    effective_real_amount = gateway_amount + wallet_deduction * real_ratio
    platform_fee          = round(effective_real_amount * platform_fee_percent / 100)
    expert_earnings       = effective_real_amount - platform_fee

Each field is rounded half-up to 2 places exactly once, so
platform_fee + expert_earnings == effective_real_amount holds to the cent.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from business.exceptions import SettlementValidationError
from core.money import HUNDRED, clamp_ratio, q2, to_decimal


@dataclass(frozen=True)
class PayoutBreakdown:
    gateway_amount: Decimal
    wallet_deduction: Decimal
    # Fraction of the wallet balance that is real cash, clamped to [0, 1]
    real_ratio: float
    effective_real_amount: Decimal
    platform_fee_percent: Decimal
    platform_fee: Decimal
    expert_earnings: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "gateway_amount": f"{self.gateway_amount}",
            "wallet_deduction": f"{self.wallet_deduction}",
            "real_ratio": round(self.real_ratio, 6),
            "effective_real_amount": f"{self.effective_real_amount}",
            "platform_fee_percent": f"{self.platform_fee_percent}",
            "platform_fee": f"{self.platform_fee}",
            "expert_earnings": f"{self.expert_earnings}",
        }


def non_negative(value, field: str) -> Decimal:
    try:
        d = to_decimal(value)
    except ValueError:
        raise SettlementValidationError(f"{field} must be a number.")
    if d < 0:
        raise SettlementValidationError(f"{field} must not be negative.")
    return d


def calculate_payout(gateway_amount, wallet_deduction, real_ratio, fee_percent) -> PayoutBreakdown:
    gateway = non_negative(gateway_amount, "gateway_amount")
    wallet = non_negative(wallet_deduction, "wallet_deduction")
    pct = non_negative(fee_percent, "fee_percent")
    # Upstream float drift must not abort a settlement
    ratio = clamp_ratio(real_ratio)

    effective = q2(gateway + wallet * Decimal(str(ratio)))
    fee = q2(effective * pct / HUNDRED)
    earnings = q2(effective - fee)
    return PayoutBreakdown(
        gateway_amount=q2(gateway),
        wallet_deduction=q2(wallet),
        real_ratio=ratio,
        effective_real_amount=effective,
        platform_fee_percent=pct,
        platform_fee=fee,
        expert_earnings=earnings,
    )
