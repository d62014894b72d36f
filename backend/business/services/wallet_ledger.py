"""
Wallet ledger: append-only transactions plus the derived wallet state
{balance, real_ratio}.

real_ratio is a moving weighted average of how much of the balance is real cash.
Credits re-blend it, debits draw down a proportional mix and leave it unchanged,
and an empty wallet reports 0 until its next credit.

Every mutation reads the wallet row, computes the new state with the pure
apply_credit/apply_debit helpers and commits with
    UPDATE wallet SET ... WHERE id = ? AND version = ?
together with the WalletTransaction insert in one atomic block. A lost race
(zero rows updated) is retried from fresh state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.models import (
    CREDIT_TYPES,
    DEBIT_TYPES,
    TransactionSource,
    TransactionStatus,
    TransactionType,
    Wallet,
    WalletTransaction,
)
from business.exceptions import (
    ConcurrencyConflict,
    InsufficientBalance,
    SettlementConflict,
    SettlementValidationError,
)
from core.money import ZERO, clamp_ratio, q2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletState:
    balance: Decimal
    real_ratio: float
    version: int = 0

    @classmethod
    def of(cls, wallet: Wallet) -> "WalletState":
        return cls(
            balance=q2(wallet.balance or 0),
            real_ratio=clamp_ratio(wallet.real_ratio),
            version=int(wallet.version or 0),
        )

    @property
    def real_balance(self) -> Decimal:
        return q2(self.balance * Decimal(str(self.real_ratio)))


def max_retries() -> int:
    return max(1, int(getattr(settings, "SETTLEMENT_MAX_RETRIES", 3)))


def _positive(amount) -> Decimal:
    try:
        amt = q2(amount)
    except ValueError as e:
        raise SettlementValidationError(str(e))
    if amt <= 0:
        raise SettlementValidationError("Amount must be positive.")
    return amt


def _coerce_type(tx_type) -> TransactionType:
    try:
        return TransactionType(str(tx_type))
    except ValueError:
        raise SettlementValidationError(f"Unknown transaction type: {tx_type!r}")


def is_real_credit(tx_type) -> bool:
    """Whether a credit of this kind counts as real cash (settings.WALLET_REAL_CREDIT_TYPES)."""
    return str(tx_type) in set(getattr(settings, "WALLET_REAL_CREDIT_TYPES", ()))


def apply_credit(state: WalletState, amount, is_real: bool) -> WalletState:
    amt = _positive(amount)
    new_balance = state.balance + amt
    new_real = state.balance * Decimal(str(state.real_ratio)) + (amt if is_real else ZERO)
    ratio = float(new_real / new_balance) if new_balance > 0 else 0.0
    return WalletState(balance=q2(new_balance), real_ratio=clamp_ratio(ratio), version=state.version + 1)


def apply_debit(state: WalletState, amount) -> WalletState:
    amt = _positive(amount)
    if amt > state.balance:
        raise InsufficientBalance(state.balance, amt)
    new_balance = q2(state.balance - amt)
    ratio = state.real_ratio if new_balance > 0 else 0.0
    return WalletState(balance=new_balance, real_ratio=ratio, version=state.version + 1)


def _load(wallet_id) -> Wallet:
    try:
        return Wallet.objects.get(pk=wallet_id)
    except Wallet.DoesNotExist:
        raise SettlementValidationError(f"Wallet {wallet_id} not found.")


def snapshot(wallet_id) -> WalletState:
    return WalletState.of(_load(wallet_id))


def snapshot_ratio(wallet_id) -> float:
    """Current real_ratio, read without mutation."""
    return snapshot(wallet_id).real_ratio


def _commit(wallet: Wallet, before: WalletState, after: WalletState, **tx_fields) -> Optional[WalletTransaction]:
    with transaction.atomic():
        updated = Wallet.objects.filter(pk=wallet.pk, version=before.version).update(
            balance=after.balance,
            real_ratio=after.real_ratio,
            version=after.version,
            updated_at=timezone.now(),
        )
        if not updated:
            return None
        return WalletTransaction.objects.create(
            wallet_id=wallet.pk,
            user_id=wallet.user_id,
            currency=wallet.currency,
            balance_after=after.balance,
            real_ratio_after=after.real_ratio,
            status=TransactionStatus.COMPLETED,
            **tx_fields,
        )


def credit(
    wallet_id,
    amount,
    tx_type,
    *,
    is_real: Optional[bool] = None,
    source: str = "",
    order_id: str = "",
    payment_id: str = "",
    coupon_code: str = "",
    meta: dict | None = None,
) -> WalletState:
    """
    Credit a wallet and re-blend its real_ratio.

    is_real defaults to the configured real-ness of tx_type; pass it explicitly for
    credits whose funding differs from the default (e.g. cashback paid from real money).
    """
    kind = _coerce_type(tx_type)
    if kind not in CREDIT_TYPES:
        raise SettlementValidationError(f"{kind} is not a credit type.")
    amt = _positive(amount)
    real = is_real_credit(kind) if is_real is None else bool(is_real)

    attempts = max_retries()
    for attempt in range(1, attempts + 1):
        wallet = _load(wallet_id)
        before = WalletState.of(wallet)
        after = apply_credit(before, amt, real)
        tx = _commit(
            wallet, before, after,
            type=kind,
            source=source or "",
            amount=amt,
            is_real=real,
            order_id=str(order_id or ""),
            payment_id=str(payment_id or ""),
            coupon_code=coupon_code or "",
            meta=meta or {},
        )
        if tx is not None:
            logger.info(
                "Wallet %s credit %s %s real=%s -> balance=%s ratio=%.4f (tx %s)",
                wallet.pk, kind, amt, real, after.balance, after.real_ratio, tx.pk,
            )
            return after
        logger.warning("Wallet %s credit lost race on version %s (attempt %s/%s)", wallet.pk, before.version, attempt, attempts)
    raise SettlementConflict(f"Wallet {wallet_id} credit conflicted {attempts} times.")


def debit(
    wallet_id,
    amount,
    tx_type,
    *,
    expected_version: Optional[int] = None,
    source: str = TransactionSource.ORDER,
    order_id: str = "",
    coupon_code: str = "",
    meta: dict | None = None,
) -> WalletState:
    """
    Debit a wallet. real_ratio is unchanged unless the wallet empties.

    With expected_version the debit commits only against that exact snapshot and raises
    ConcurrencyConflict otherwise, so a caller that priced an order off the snapshot's
    ratio can recompute instead of debiting against a ratio it never saw.
    """
    kind = _coerce_type(tx_type)
    if kind not in DEBIT_TYPES:
        raise SettlementValidationError(f"{kind} is not a debit type.")
    amt = _positive(amount)

    attempts = 1 if expected_version is not None else max_retries()
    for attempt in range(1, attempts + 1):
        wallet = _load(wallet_id)
        before = WalletState.of(wallet)
        if expected_version is not None and before.version != expected_version:
            raise ConcurrencyConflict(f"Wallet {wallet_id} moved from version {expected_version} to {before.version}.")
        after = apply_debit(before, amt)
        tx = _commit(
            wallet, before, after,
            type=kind,
            source=source or "",
            amount=-amt,
            is_real=False,
            order_id=str(order_id or ""),
            coupon_code=coupon_code or "",
            meta={**(meta or {}), "real_ratio": before.real_ratio},
        )
        if tx is not None:
            logger.info(
                "Wallet %s debit %s %s -> balance=%s ratio=%.4f (tx %s)",
                wallet.pk, kind, amt, after.balance, after.real_ratio, tx.pk,
            )
            return after
        if expected_version is not None:
            raise ConcurrencyConflict(f"Wallet {wallet_id} changed while debiting.")
        logger.warning("Wallet %s debit lost race on version %s (attempt %s/%s)", wallet.pk, before.version, attempt, attempts)
    raise SettlementConflict(f"Wallet {wallet_id} debit conflicted {attempts} times.")
