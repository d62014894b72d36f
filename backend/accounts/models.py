from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    # USERNAME_FIELD must be globally unique in Django; keep global uniqueness.
    username = models.CharField(max_length=150, unique=True, db_index=True)

    ROLE_CHOICES = [
        ('user', 'User'),
        ('expert', 'Expert'),
        ('admin', 'Admin'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='user', db_index=True)

    full_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    default_currency = models.CharField(max_length=3, default='INR')

    def __str__(self):
        return f"{self.username} ({self.role})"

    @property
    def is_expert(self) -> bool:
        return self.role == 'expert'


class TransactionType(models.TextChoices):
    RECHARGE = 'RECHARGE', 'Recharge'
    # Promotional credit added alongside a recharge (not real cash)
    BONUS = 'BONUS', 'Bonus'
    CONSULTATION_DEDUCTION = 'CONSULTATION_DEDUCTION', 'Consultation Deduction'
    PRODUCT_DEDUCTION = 'PRODUCT_DEDUCTION', 'Product Deduction'
    DIGITAL_PRODUCT_DEDUCTION = 'DIGITAL_PRODUCT_DEDUCTION', 'Digital Product Deduction'
    WEBINAR_DEDUCTION = 'WEBINAR_DEDUCTION', 'Webinar Deduction'
    ORDER_EARNING = 'ORDER_EARNING', 'Order Earning'
    REFUND = 'REFUND', 'Refund'
    CASHBACK = 'CASHBACK', 'Cashback'
    REFERRAL_BONUS = 'REFERRAL_BONUS', 'Referral Bonus'


CREDIT_TYPES = frozenset({
    TransactionType.RECHARGE,
    TransactionType.BONUS,
    TransactionType.ORDER_EARNING,
    TransactionType.REFUND,
    TransactionType.CASHBACK,
    TransactionType.REFERRAL_BONUS,
})

DEBIT_TYPES = frozenset({
    TransactionType.CONSULTATION_DEDUCTION,
    TransactionType.PRODUCT_DEDUCTION,
    TransactionType.DIGITAL_PRODUCT_DEDUCTION,
    TransactionType.WEBINAR_DEDUCTION,
})


class TransactionSource(models.TextChoices):
    PAYMENT = 'PAYMENT', 'Payment'
    CASHBACK = 'CASHBACK', 'Cashback'
    REFERRAL = 'REFERRAL', 'Referral'
    COUPON = 'COUPON', 'Coupon'
    REFUND = 'REFUND', 'Refund'
    ORDER = 'ORDER', 'Order'
    ADMIN = 'ADMIN', 'Admin'


class TransactionStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    COMPLETED = 'COMPLETED', 'Completed'
    FAILED = 'FAILED', 'Failed'


class Wallet(models.Model):
    """
    Per-user, per-currency wallet.

    balance is the face value; real_ratio is the fraction of that balance backed by
    real cash (recharges/refunds) as opposed to promotional credit. Both are only
    written by business.services.wallet_ledger, which commits conditionally on
    `version` so concurrent settlements never interleave their read-modify-write.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wallets')
    currency = models.CharField(max_length=3, default='INR')
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    real_ratio = models.FloatField(default=0.0)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'currency'], name='uniq_wallet_user_currency'),
            models.CheckConstraint(condition=models.Q(balance__gte=0), name='wallet_balance_non_negative'),
        ]

    def __str__(self) -> str:
        return f"Wallet<{self.user.username}> {self.currency} {self.balance} (real {self.real_ratio:.4f})"

    @property
    def real_balance(self) -> Decimal:
        from core.money import q2
        return q2(Decimal(self.balance or 0) * Decimal(str(self.real_ratio or 0.0)))

    def credit(self, amount, tx_type, **kwargs):
        from business.services import wallet_ledger
        state = wallet_ledger.credit(self.pk, amount, tx_type, **kwargs)
        self._sync(state)
        return state

    def debit(self, amount, tx_type, **kwargs):
        from business.services import wallet_ledger
        state = wallet_ledger.debit(self.pk, amount, tx_type, **kwargs)
        self._sync(state)
        return state

    def _sync(self, state):
        self.balance = state.balance
        self.real_ratio = state.real_ratio
        self.version = state.version

    @classmethod
    def get_or_create_for_user(cls, user, currency: str | None = None) -> "Wallet":
        cur = currency or getattr(user, 'default_currency', None) or settings.DEFAULT_CURRENCY
        w, _ = cls.objects.get_or_create(user=user, currency=cur, defaults={'balance': Decimal('0.00')})
        return w


class WalletTransaction(models.Model):
    """
    Append-only ledger row. amount is signed: credits > 0, debits < 0.
    balance_after / real_ratio_after record the wallet state this row produced.
    """
    wallet = models.ForeignKey(Wallet, on_delete=models.PROTECT, related_name='transactions')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wallet_transactions', db_index=True)
    type = models.CharField(max_length=32, choices=TransactionType.choices, db_index=True)
    source = models.CharField(max_length=16, choices=TransactionSource.choices, blank=True, default='')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')
    is_real = models.BooleanField(default=False)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)
    real_ratio_after = models.FloatField(default=0.0)
    order_id = models.CharField(max_length=64, blank=True, default='', db_index=True)
    payment_id = models.CharField(max_length=64, blank=True, default='')
    coupon_code = models.CharField(max_length=64, blank=True, default='')
    status = models.CharField(max_length=16, choices=TransactionStatus.choices, default=TransactionStatus.COMPLETED, db_index=True)
    meta = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', 'type'], name='wallet_tx_user_type_idx'),
            models.Index(fields=['created_at'], name='wallet_tx_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.user.username} {self.type} {self.amount} -> {self.balance_after}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            prev = WalletTransaction.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            if prev == TransactionStatus.COMPLETED:
                raise ValueError("Completed wallet transactions are immutable.")
        super().save(*args, **kwargs)
