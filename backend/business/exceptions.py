from __future__ import annotations


class SettlementError(Exception):
    code = "SETTLEMENT_ERROR"


class SettlementValidationError(SettlementError, ValueError):
    """Bad input shape (negative amount, missing field). Raised before any mutation."""
    code = "INVALID_INPUT"


class BusinessRuleViolation(SettlementError):
    code = "RULE_VIOLATION"


class InsufficientBalance(BusinessRuleViolation, ValueError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, balance, requested):
        self.balance = balance
        self.requested = requested
        super().__init__(f"Insufficient wallet balance: have {balance}, need {requested}.")


class CouponExhausted(BusinessRuleViolation):
    code = "COUPON_EXHAUSTED"


class CouponRejected(BusinessRuleViolation):
    code = "COUPON_REJECTED"

    def __init__(self, result):
        self.result = result
        super().__init__(result.message)


class ConcurrencyConflict(SettlementError):
    code = "CONFLICT"


class SettlementConflict(ConcurrencyConflict):
    code = "SETTLEMENT_CONFLICT"
