from decimal import Decimal
from unittest import mock

import pytest
from django.test import override_settings

from accounts.models import TransactionType, Wallet, WalletTransaction
from business.exceptions import (
    ConcurrencyConflict,
    InsufficientBalance,
    SettlementConflict,
    SettlementValidationError,
)
from business.services import wallet_ledger
from business.services.wallet_ledger import WalletState, apply_credit, apply_debit


def test_credit_debit_sequence_keeps_ratio_on_debit():
    s = WalletState(Decimal("0.00"), 0.0)
    s = apply_credit(s, 100, is_real=True)
    assert (s.balance, s.real_ratio) == (Decimal("100.00"), 1.0)
    s = apply_credit(s, 50, is_real=False)
    assert s.balance == Decimal("150.00")
    assert round(s.real_ratio, 4) == 0.6667
    s = apply_debit(s, 60)
    assert s.balance == Decimal("90.00")
    assert round(s.real_ratio, 4) == 0.6667


def test_debit_to_zero_resets_ratio():
    s = apply_debit(WalletState(Decimal("40.00"), 0.8, 3), 40)
    assert s.balance == Decimal("0.00")
    assert s.real_ratio == 0.0
    assert s.version == 4


def test_debit_more_than_balance():
    with pytest.raises(InsufficientBalance) as exc:
        apply_debit(WalletState(Decimal("10.00"), 1.0), "10.01")
    # Still a ValueError for callers that catch the historical type
    assert isinstance(exc.value, ValueError)


@pytest.mark.parametrize("amount", [0, -5, "x"])
def test_non_positive_amounts_rejected(amount):
    with pytest.raises(SettlementValidationError):
        apply_credit(WalletState(Decimal("0.00"), 0.0), amount, True)


@pytest.mark.django_db
def test_ledger_sequence_persists_rows(user, make_wallet):
    w = make_wallet(user)
    wallet_ledger.credit(w.pk, 100, TransactionType.RECHARGE, payment_id="pay_1")
    wallet_ledger.credit(w.pk, 50, TransactionType.BONUS)
    state = wallet_ledger.debit(w.pk, 60, TransactionType.CONSULTATION_DEDUCTION, order_id="42")

    assert state.balance == Decimal("90.00")
    assert round(state.real_ratio, 4) == 0.6667
    w.refresh_from_db()
    assert w.balance == Decimal("90.00")
    assert w.version == 3
    assert round(wallet_ledger.snapshot_ratio(w.pk), 4) == 0.6667

    rows = list(WalletTransaction.objects.filter(wallet=w).order_by("id"))
    assert [r.type for r in rows] == ["RECHARGE", "BONUS", "CONSULTATION_DEDUCTION"]
    assert [r.amount for r in rows] == [Decimal("100.00"), Decimal("50.00"), Decimal("-60.00")]
    assert [r.is_real for r in rows] == [True, False, False]
    assert rows[-1].balance_after == Decimal("90.00")
    assert rows[-1].order_id == "42"


@pytest.mark.django_db
def test_credit_and_debit_reject_wrong_direction(user, make_wallet):
    w = make_wallet(user, "10.00", 1.0)
    with pytest.raises(SettlementValidationError):
        wallet_ledger.credit(w.pk, 5, TransactionType.PRODUCT_DEDUCTION)
    with pytest.raises(SettlementValidationError):
        wallet_ledger.debit(w.pk, 5, TransactionType.REFUND)
    with pytest.raises(SettlementValidationError):
        wallet_ledger.credit(w.pk, 5, "NOT_A_TYPE")


@pytest.mark.django_db
def test_insufficient_balance_leaves_wallet_untouched(user, make_wallet):
    w = make_wallet(user, "20.00", 1.0)
    with pytest.raises(InsufficientBalance):
        wallet_ledger.debit(w.pk, 25, TransactionType.WEBINAR_DEDUCTION)
    w.refresh_from_db()
    assert w.balance == Decimal("20.00")
    assert not WalletTransaction.objects.filter(wallet=w).exists()


@pytest.mark.django_db
def test_cashback_realness_is_configurable(user, make_wallet):
    w = make_wallet(user, "100.00", 1.0)
    state = wallet_ledger.credit(w.pk, 100, TransactionType.CASHBACK)
    assert state.real_ratio == 0.5
    # Cashback funded from real money
    state = wallet_ledger.credit(w.pk, 100, TransactionType.CASHBACK, is_real=True)
    assert round(state.real_ratio, 4) == round(200 / 300, 4)

    with override_settings(WALLET_REAL_CREDIT_TYPES=["RECHARGE", "CASHBACK"]):
        assert wallet_ledger.is_real_credit(TransactionType.CASHBACK)
        assert not wallet_ledger.is_real_credit(TransactionType.ORDER_EARNING)


@pytest.mark.django_db
def test_debit_against_stale_version_conflicts(user, make_wallet):
    w = make_wallet(user, "50.00", 1.0)
    wallet_ledger.credit(w.pk, 10, TransactionType.RECHARGE)
    with pytest.raises(ConcurrencyConflict):
        wallet_ledger.debit(w.pk, 5, TransactionType.PRODUCT_DEDUCTION, expected_version=0)
    w.refresh_from_db()
    assert w.balance == Decimal("60.00")


@pytest.mark.django_db
def test_lost_race_is_retried_from_fresh_state(user, make_wallet):
    w = make_wallet(user, "50.00", 1.0)
    real_commit = wallet_ledger._commit
    calls = {"n": 0}

    def flaky_commit(wallet, before, after, **fields):
        calls["n"] += 1
        if calls["n"] == 1:
            # Another writer lands between our read and our conditional update
            Wallet.objects.filter(pk=wallet.pk).update(balance=Decimal("80.00"), version=before.version + 1)
            return None
        return real_commit(wallet, before, after, **fields)

    with mock.patch.object(wallet_ledger, "_commit", side_effect=flaky_commit):
        state = wallet_ledger.debit(w.pk, 30, TransactionType.PRODUCT_DEDUCTION)

    assert calls["n"] == 2
    assert state.balance == Decimal("50.00")
    w.refresh_from_db()
    assert w.balance == Decimal("50.00")


@pytest.mark.django_db
@override_settings(SETTLEMENT_MAX_RETRIES=2)
def test_retries_exhausted_raise_settlement_conflict(user, make_wallet):
    w = make_wallet(user, "50.00", 1.0)
    with mock.patch.object(wallet_ledger, "_commit", return_value=None):
        with pytest.raises(SettlementConflict):
            wallet_ledger.credit(w.pk, 10, TransactionType.RECHARGE)


@pytest.mark.django_db
def test_completed_transactions_are_immutable(user, make_wallet):
    w = make_wallet(user)
    wallet_ledger.credit(w.pk, 10, TransactionType.RECHARGE)
    tx = WalletTransaction.objects.get(wallet=w)
    tx.amount = Decimal("999.00")
    with pytest.raises(ValueError):
        tx.save()


@pytest.mark.django_db
def test_wallet_model_methods_delegate_to_ledger(user):
    w = Wallet.get_or_create_for_user(user)
    assert w.currency == "INR"
    w.credit(100, TransactionType.RECHARGE)
    w.credit(100, TransactionType.REFERRAL_BONUS)
    assert w.balance == Decimal("200.00")
    assert w.real_ratio == 0.5
    assert w.real_balance == Decimal("100.00")
    w.debit(50, TransactionType.DIGITAL_PRODUCT_DEDUCTION)
    assert w.balance == Decimal("150.00")
    assert w.real_balance == Decimal("75.00")


@pytest.mark.django_db
def test_unknown_wallet():
    with pytest.raises(SettlementValidationError):
        wallet_ledger.snapshot_ratio(987654)


@pytest.mark.concurrency
@pytest.mark.django_db(transaction=True)
def test_concurrent_credits_all_land(user, make_wallet, run_in_threads):
    wallet = make_wallet(user)
    kinds = [TransactionType.RECHARGE, TransactionType.BONUS] * 4

    outcomes = run_in_threads(
        lambda kind: wallet_ledger.credit(wallet.pk, "25.00", kind),
        [(kind,) for kind in kinds],
    )

    assert [kind for kind, _ in outcomes] == ["ok"] * len(kinds)
    wallet.refresh_from_db()
    assert wallet.balance == Decimal("200.00")
    assert wallet.version == len(kinds)
    # 100.00 real out of 200.00 whatever order the credits landed in
    assert wallet.real_ratio == pytest.approx(0.5, abs=1e-9)
    assert WalletTransaction.objects.filter(wallet=wallet).count() == len(kinds)


@pytest.mark.concurrency
@pytest.mark.django_db(transaction=True)
def test_concurrent_debits_never_overdraw(user, make_wallet, run_in_threads):
    wallet = make_wallet(user, "100.00", 0.75)

    outcomes = run_in_threads(
        lambda: wallet_ledger.debit(wallet.pk, "30.00", TransactionType.PRODUCT_DEDUCTION),
        [()] * 5,
    )

    kinds = [type(value).__name__ if kind == "error" else kind for kind, value in outcomes]
    assert kinds.count("ok") == 3
    assert kinds.count("InsufficientBalance") == 2
    wallet.refresh_from_db()
    assert wallet.balance == Decimal("10.00")
    assert wallet.real_ratio == 0.75
    rows = WalletTransaction.objects.filter(wallet=wallet)
    assert sum(r.amount for r in rows) == Decimal("-90.00")
