from decimal import Decimal

import pytest

from business.exceptions import SettlementValidationError
from business.services.payouts import calculate_payout
from core.money import clamp_ratio, q2, to_decimal


def test_gateway_only_payout():
    b = calculate_payout(100, 0, 1.0, 10)
    assert b.effective_real_amount == Decimal("100.00")
    assert b.platform_fee == Decimal("10.00")
    assert b.expert_earnings == Decimal("90.00")


def test_wallet_payout_uses_real_ratio():
    b = calculate_payout(0, 200, 0.5, 10)
    assert b.effective_real_amount == Decimal("100.00")
    assert b.platform_fee == Decimal("10.00")
    assert b.expert_earnings == Decimal("90.00")


def test_fee_and_earnings_sum_to_effective_amount():
    amounts = ["0", "0.01", "1.99", "33.33", "99.995", "1234.56"]
    ratios = [0.0, 0.1, 1 / 3, 0.5, 0.6667, 0.999, 1.0]
    fees = ["0", "2.5", "10", "12.75", "33.33", "100"]
    for g in amounts:
        for w in amounts:
            for r in ratios:
                for f in fees:
                    b = calculate_payout(g, w, r, f)
                    assert b.platform_fee + b.expert_earnings == b.effective_real_amount


def test_rounding_is_half_up():
    # 10.005 * 10% = 1.0005 -> fee 1.00; effective itself rounds 10.005 -> 10.01
    b = calculate_payout("10.005", 0, 1.0, 10)
    assert b.effective_real_amount == Decimal("10.01")
    assert b.platform_fee == Decimal("1.00")
    assert b.expert_earnings == Decimal("9.01")


def test_ratio_is_clamped_not_rejected():
    assert calculate_payout(0, 100, 1.0000001, 10).real_ratio == 1.0
    assert calculate_payout(0, 100, -0.2, 10).effective_real_amount == Decimal("0.00")


@pytest.mark.parametrize("args", [(-1, 0, 1.0, 10), (0, -5, 1.0, 10), (10, 0, 1.0, -1), (None, 0, 1.0, 10)])
def test_negative_or_missing_inputs_are_rejected(args):
    with pytest.raises(SettlementValidationError):
        calculate_payout(*args)


def test_as_dict_is_json_friendly():
    d = calculate_payout("150.00", "60.00", 2 / 3, "12.5").as_dict()
    assert d["effective_real_amount"] == "190.00"
    assert d["platform_fee"] == "23.75"
    assert d["expert_earnings"] == "166.25"
    assert isinstance(d["real_ratio"], float)


def test_money_helpers():
    assert to_decimal(0.1) == Decimal("0.1")
    assert q2("2.675") == Decimal("2.68")
    assert clamp_ratio(float("nan")) == 0.0
    with pytest.raises(ValueError):
        to_decimal("abc")
