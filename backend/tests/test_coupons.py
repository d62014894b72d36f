from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from business.exceptions import CouponExhausted, SettlementValidationError
from coupons.models import Coupon, CouponClaim, CouponType
from coupons.services import get_coupon, try_claim, user_claim_count, validate_coupon


def _coupon(**kwargs):
    """Unsaved coupon for pure validation tests."""
    now = timezone.now()
    fields = {
        "code": "TEST",
        "type": CouponType.FLAT,
        "discount": Decimal("50.00"),
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=1),
        "is_enabled": True,
        "claims_made_so_far": 0,
        "user_ids_allowed": [],
    }
    fields.update(kwargs)
    return Coupon(**fields)


def test_flat_discount_clamped_to_cart():
    r = validate_coupon(_coupon(), 40, user_id=1)
    assert r.valid
    assert r.message == "Coupon applied"
    assert r.discount == Decimal("40.00")
    assert r.new_amount == Decimal("0.00")


def test_flat_discount_ignores_percentage_cap():
    r = validate_coupon(_coupon(max_discount_amount=Decimal("10.00")), 100, user_id=1)
    assert r.discount == Decimal("50.00")
    assert r.new_amount == Decimal("50.00")


def test_percentage_discount_capped():
    c = _coupon(type=CouponType.PERCENTAGE, discount=Decimal("20"), max_discount_amount=Decimal("150"))
    r = validate_coupon(c, 1000, user_id=1)
    assert r.discount == Decimal("150.00")
    assert r.new_amount == Decimal("850.00")


def test_percentage_discount_rounds_half_up():
    c = _coupon(type=CouponType.PERCENTAGE, discount=Decimal("15"))
    r = validate_coupon(c, "33.30", user_id=1)
    # 4.995 -> 5.00
    assert r.discount == Decimal("5.00")
    assert r.new_amount == Decimal("28.30")


def test_percentage_discount_never_exceeds_cart():
    r = validate_coupon(_coupon(type=CouponType.PERCENTAGE, discount=Decimal("150")), "80.00", user_id=1)
    assert r.valid
    assert r.discount == Decimal("80.00")
    assert r.new_amount == Decimal("0.00")


def test_model_clean_rejects_percentage_over_hundred():
    with pytest.raises(ValidationError) as exc:
        _coupon(type=CouponType.PERCENTAGE, discount=Decimal("120")).clean()
    assert "discount" in exc.value.message_dict
    _coupon(type=CouponType.PERCENTAGE, discount=Decimal("100")).clean()


@pytest.mark.parametrize(
    "coupon_kwargs, call_kwargs, message",
    [
        ({"is_enabled": False}, {}, "Coupon not found/disabled"),
        ({"start_date": timezone.now() + timedelta(days=1)}, {}, "Coupon expired/not yet active"),
        ({"end_date": timezone.now() - timedelta(seconds=1)}, {}, "Coupon expired/not yet active"),
        ({"only_for_new_users": True}, {"prior_order_count": 1}, "New users only"),
        ({"min_cart_amount": Decimal("500")}, {}, "Minimum cart amount not met"),
        ({"user_ids_allowed": ["7", "8"]}, {}, "Not eligible"),
        ({"total_usage_limit": 3, "claims_made_so_far": 3}, {}, "Usage limit reached"),
        ({"max_claims_per_user": 1}, {"user_claim_count": 1}, "Per-user limit reached"),
    ],
)
def test_rule_failures(coupon_kwargs, call_kwargs, message):
    r = validate_coupon(_coupon(**coupon_kwargs), 100, user_id=1, **call_kwargs)
    assert not r.valid
    assert r.message == message
    assert r.discount == Decimal("0.00")
    assert r.new_amount == Decimal("100.00")


def test_missing_coupon():
    r = validate_coupon(None, 100, user_id=1)
    assert (r.valid, r.message) == (False, "Coupon not found/disabled")


def test_first_failing_rule_wins():
    c = _coupon(is_enabled=True, only_for_new_users=True, min_cart_amount=Decimal("500"))
    r = validate_coupon(c, 100, user_id=1, prior_order_count=2)
    assert r.message == "New users only"


def test_allowed_user_ids_match_as_strings():
    c = _coupon(user_ids_allowed=[7, "8"])
    assert validate_coupon(c, 100, user_id="7").valid
    assert validate_coupon(c, 100, user_id=8).valid


def test_negative_cart_is_invalid_input():
    with pytest.raises(SettlementValidationError):
        validate_coupon(_coupon(), -1, user_id=1)


@pytest.mark.django_db
def test_lookup_is_case_insensitive(make_coupon):
    make_coupon(code="welcome50")
    assert get_coupon(" Welcome50 ").code == "WELCOME50"
    assert get_coupon("") is None
    assert get_coupon("nope") is None


@pytest.mark.django_db
def test_claims_stop_at_usage_limit(user, make_coupon):
    coupon = make_coupon(total_usage_limit=3)
    outcomes = []
    for i in range(5):
        try:
            try_claim(coupon, user=user, order_id=str(i))
            outcomes.append("ok")
        except CouponExhausted:
            outcomes.append("exhausted")

    assert outcomes.count("ok") == 3
    assert outcomes.count("exhausted") == 2
    coupon.refresh_from_db()
    assert coupon.claims_made_so_far == 3
    assert CouponClaim.objects.filter(coupon=coupon).count() == 3
    assert user_claim_count(coupon, user) == 3


@pytest.mark.django_db
def test_unlimited_coupon_always_claims(user, make_coupon):
    coupon = make_coupon()
    for i in range(4):
        try_claim(coupon, user=user, order_id=str(i))
    assert coupon.claims_made_so_far == 4
    assert coupon.remaining_claims is None


@pytest.mark.django_db
def test_claim_after_stale_validation_is_rejected(user, make_coupon):
    coupon = make_coupon(total_usage_limit=1)
    stale = Coupon.objects.get(pk=coupon.pk)
    assert validate_coupon(stale, 100, user_id=user.pk).valid
    try_claim(coupon, user=user, order_id="a")
    # The validated copy still says 0 claims; the claim itself is authoritative
    with pytest.raises(CouponExhausted):
        try_claim(stale, user=user, order_id="b")


@pytest.mark.concurrency
@pytest.mark.django_db(transaction=True)
def test_concurrent_claims_are_linearized(make_coupon, run_in_threads):
    limit, extra = 5, 4
    coupon = make_coupon(code="RACE", total_usage_limit=limit)

    outcomes = run_in_threads(
        lambda n: try_claim(Coupon.objects.get(pk=coupon.pk), order_id=f"race-{n}"),
        [(n,) for n in range(limit + extra)],
    )

    kinds = [type(value).__name__ if kind == "error" else kind for kind, value in outcomes]
    assert kinds.count("ok") == limit
    assert kinds.count("CouponExhausted") == extra
    coupon.refresh_from_db()
    assert coupon.claims_made_so_far == limit
    assert CouponClaim.objects.filter(coupon=coupon).count() == limit
