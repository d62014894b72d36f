from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


UserModel = settings.AUTH_USER_MODEL


class CouponType(models.TextChoices):
    FLAT = "FLAT", "Flat"
    PERCENTAGE = "PERCENTAGE", "Percentage"


class Coupon(models.Model):
    """
    Checkout coupon.

    claims_made_so_far is only ever incremented by coupons.services.try_claim through a
    conditional UPDATE; the check constraint keeps it within total_usage_limit.
    """
    code = models.CharField(max_length=64, unique=True, db_index=True)
    type = models.CharField(max_length=16, choices=CouponType.choices, default=CouponType.FLAT)
    # FLAT: currency amount; PERCENTAGE: percent of cart
    discount = models.DecimalField(max_digits=10, decimal_places=2)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_enabled = models.BooleanField(default=True)
    only_for_new_users = models.BooleanField(default=False)
    min_cart_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_usage_limit = models.PositiveIntegerField(null=True, blank=True)
    max_claims_per_user = models.PositiveIntegerField(null=True, blank=True)
    claims_made_so_far = models.PositiveIntegerField(default=0)
    # Empty list = open to everyone
    user_ids_allowed = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_usage_limit__isnull=True) | Q(claims_made_so_far__lte=F("total_usage_limit")),
                name="coupon_claims_within_limit",
            ),
        ]

    def __str__(self):
        return f"{self.code} [{self.type} {self.discount}]"

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def clean(self):
        super().clean()
        if self.type == CouponType.PERCENTAGE and self.discount is not None and self.discount > 100:
            raise ValidationError({"discount": "Percentage discount must be at most 100."})
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "end_date must not be before start_date."})

    @property
    def remaining_claims(self):
        if self.total_usage_limit is None:
            return None
        return max(0, int(self.total_usage_limit) - int(self.claims_made_so_far or 0))


class CouponClaim(models.Model):
    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="claims")
    user = models.ForeignKey(UserModel, null=True, blank=True, on_delete=models.SET_NULL, related_name="coupon_claims")
    order_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["coupon", "user"], name="coupon_claim_coupon_user_idx"),
        ]

    def __str__(self):
        return f"{self.coupon.code} -> {getattr(self.user, 'username', '-')} ({self.order_id or 'no order'})"
