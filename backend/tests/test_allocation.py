import random
from decimal import Decimal
from types import SimpleNamespace

import pytest

from business.exceptions import SettlementValidationError
from business.services.allocation import allocate_discount, allocate_line_items, rollup_line_items
from business.services.payouts import calculate_payout


def D(x):
    return Decimal(x)


def test_proportional_split():
    assert allocate_discount([D("300.00"), D("100.00")], D("40.00")) == [D("30.00"), D("10.00")]


def test_residual_cent_goes_to_highest_index_on_tie():
    # 0.10 over three equal lines: 0.03 each + 1 residual cent
    assert allocate_discount([D("10.00")] * 3, D("0.10")) == [D("0.03"), D("0.03"), D("0.04")]
    assert allocate_discount([D("1.00")] * 3, D("0.05")) == [D("0.01"), D("0.02"), D("0.02")]


def test_residual_goes_to_largest_remainder():
    # exact shares 0.666.., 0.333.. cents -> the first line has the bigger remainder
    assert allocate_discount([D("2.00"), D("1.00")], D("0.01")) == [D("0.01"), D("0.00")]


def test_sum_is_exact_for_random_orders():
    rng = random.Random(20240601)
    for _ in range(300):
        n = rng.randint(1, 8)
        totals = [Decimal(rng.randint(0, 500000)) / 100 for _ in range(n)]
        grand_cents = int(sum(totals) * 100)
        discount = Decimal(rng.randint(0, grand_cents)) / 100
        shares = allocate_discount(totals, discount)
        assert sum(shares) == discount
        assert all(s >= 0 for s in shares)
        assert all(s <= t for s, t in zip(shares, totals))


def test_zero_discount_and_zero_totals():
    assert allocate_discount([D("5.00"), D("0.00")], D("0")) == [D("0.00"), D("0.00")]
    assert allocate_discount([], D("0")) == []


@pytest.mark.parametrize(
    "totals, discount",
    [([D("10.00")], D("10.01")), ([D("10.00")], D("-1")), ([D("-1.00"), D("5.00")], D("1.00"))],
)
def test_invalid_allocations(totals, discount):
    with pytest.raises(SettlementValidationError):
        allocate_discount(totals, discount)


def test_line_items_get_fee_and_earnings():
    items = [SimpleNamespace(line_total=D("300.00")), SimpleNamespace(line_total=D("100.00"))]
    allocate_line_items(items, D("40.00"), [D("10"), D("25")])
    a, b = items
    assert a.discount_amount == D("30.00")
    assert (a.platform_fee_amount, a.expert_earnings) == (D("27.00"), D("243.00"))
    assert b.discount_amount == D("10.00")
    assert (b.platform_fee_amount, b.expert_earnings) == (D("22.50"), D("67.50"))
    assert b.platform_fee_percent == D("25")


def test_line_items_priced_at_blended_ratio():
    items = [SimpleNamespace(line_total=D("200.00"))]
    allocate_line_items(items, D("0"), [D("10")], real_ratio=0.5)
    assert items[0].platform_fee_amount == D("10.00")
    assert items[0].expert_earnings == D("90.00")


def test_one_fee_percent_per_line():
    with pytest.raises(SettlementValidationError):
        allocate_line_items([SimpleNamespace(line_total=D("1.00"))], D("0"), [])


def test_line_real_amounts_sum_to_order_amount():
    # 2.00 of real money over three 1.00 lines: per-line rounding alone would give 2.01
    items = [SimpleNamespace(line_total=D("1.00")) for _ in range(3)]
    allocate_line_items(items, D("0"), [D("10")] * 3, effective_real_amount=D("2.00"))
    assert [li.platform_fee_amount + li.expert_earnings for li in items] == [D("0.66"), D("0.67"), D("0.67")]
    assert sum(li.platform_fee_amount + li.expert_earnings for li in items) == D("2.00")


def test_rollup_uses_line_fees():
    breakdown = calculate_payout("400.00", "0", 1.0, "15")
    items = [SimpleNamespace(line_total=D("300.00")), SimpleNamespace(line_total=D("100.00"))]
    allocate_line_items(items, D("0"), [D("15"), D("25")], effective_real_amount=breakdown.effective_real_amount)
    order = rollup_line_items(breakdown, items)
    assert (order.platform_fee, order.expert_earnings) == (D("70.00"), D("330.00"))
    assert order.platform_fee_percent == D("17.50")
    assert order.effective_real_amount == D("400.00")
