from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class OrderType(models.TextChoices):
    ON_DEMAND_CONSULTATION = "ON_DEMAND_CONSULTATION", "On-demand consultation"
    PRODUCT = "PRODUCT", "Product"
    DIGITAL_PRODUCT = "DIGITAL_PRODUCT", "Digital product"
    WEBINAR = "WEBINAR", "Webinar"


class OrderStatus(models.TextChoices):
    CREATED = "CREATED", "Created"
    PAID = "PAID", "Paid"
    CANCELLED = "CANCELLED", "Cancelled"
    REFUNDED = "REFUNDED", "Refunded"


class ShippingMode(models.TextChoices):
    PLATFORM = "PLATFORM", "Platform"
    SELF = "SELF", "Self"


class Order(models.Model):
    """
    Order as seen by settlement. Created by checkout in CREATED state; settle_order
    writes the discount and payout snapshot and moves it to PAID exactly once.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")
    expert = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="expert_orders"
    )
    order_type = models.CharField(max_length=32, choices=OrderType.choices, db_index=True)
    category = models.CharField(max_length=100, blank=True, default="", db_index=True)
    currency = models.CharField(max_length=3, default="INR")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=OrderStatus.choices, default=OrderStatus.CREATED, db_index=True)
    coupon_code = models.CharField(max_length=64, blank=True, default="")
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # Payout snapshot, written once at settlement
    gateway_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    wallet_deduction = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    real_ratio = models.FloatField(null=True, blank=True)
    effective_real_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    platform_fee_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    platform_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    expert_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "status"], name="order_user_status_idx"),
            models.Index(fields=["expert", "status"], name="order_expert_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Order#{self.pk} {self.order_type} {self.amount} {self.currency} ({self.status})"

    @property
    def net_amount(self) -> Decimal:
        return (self.amount or Decimal("0.00")) - (self.discount or Decimal("0.00"))

    @property
    def is_paid(self) -> bool:
        return self.status == OrderStatus.PAID

    def recalculate_totals(self, save: bool = True) -> Decimal:
        """Set amount to the sum of line totals. Only allowed before payment."""
        if self.is_paid:
            raise ValidationError("Paid orders cannot be re-totalled.")
        total = sum((li.line_total or Decimal("0.00") for li in self.items.all()), Decimal("0.00"))
        self.amount = total
        if save:
            self.save(update_fields=["amount", "updated_at"])
        return total

    def apply_breakdown(self, breakdown) -> None:
        self.gateway_amount = breakdown.gateway_amount
        self.wallet_deduction = breakdown.wallet_deduction
        self.real_ratio = breakdown.real_ratio
        self.effective_real_amount = breakdown.effective_real_amount
        self.platform_fee_percent = breakdown.platform_fee_percent
        self.platform_fee = breakdown.platform_fee
        self.expert_earnings = breakdown.expert_earnings


class OrderLineItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product_id = models.CharField(max_length=64, blank=True, default="")
    sku = models.CharField(max_length=64, blank=True, default="")
    product_name = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    is_white_label = models.BooleanField(default=False)
    shipping_mode = models.CharField(max_length=16, choices=ShippingMode.choices, default=ShippingMode.SELF)
    category = models.CharField(max_length=100, blank=True, default="")

    # Written by the allocator at settlement
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    platform_fee_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    platform_fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    expert_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.product_name or self.sku or self.product_id} x {self.quantity} (Order#{self.order_id})"

    @property
    def subtotal(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * int(self.quantity or 0)

    @property
    def requires_platform_shipping(self) -> bool:
        return self.shipping_mode == ShippingMode.PLATFORM

    def calculate_line_total(self) -> Decimal:
        return self.subtotal + (self.shipping_cost or Decimal("0.00"))

    def save(self, *args, **kwargs):
        if self.order_id and Order.objects.filter(pk=self.order_id, status=OrderStatus.PAID).exists():
            raise ValidationError("Line items of a paid order are immutable.")
        if not self.line_total:
            self.line_total = self.calculate_line_total()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if Order.objects.filter(pk=self.order_id, status=OrderStatus.PAID).exists():
            raise ValidationError("Line items of a paid order are immutable.")
        return super().delete(*args, **kwargs)
