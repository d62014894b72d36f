from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class PlatformFeeConfig(models.Model):
    """
    Commission configuration, either platform-wide (expert is null) or per expert.
    - default_fee_percent: applies when neither map below matches
    - fee_by_type: {"ON_DEMAND_CONSULTATION": 10, "PRODUCT": 15, "PRODUCT_WHITE_LABEL": 25}
    - fee_by_category: {"HOROSCOPE": 10, "TAROT": 12}; wins over fee_by_type
    - [effective_from, effective_until) validity window; effective_until null = open ended

    Only one config should be active per expert at a time. Resolution itself lives in
    business.services.fees and takes the config as an explicit argument.
    """
    expert = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE, related_name="platform_fee_configs"
    )
    default_fee_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("10.00"))
    fee_by_type = models.JSONField(default=dict, blank=True, help_text='e.g., {"ON_DEMAND_CONSULTATION": 10, "PRODUCT": 15}')
    fee_by_category = models.JSONField(default=dict, blank=True, help_text='e.g., {"HOROSCOPE": 10, "TAROT": 12}')
    effective_from = models.DateTimeField(default=timezone.now)
    effective_until = models.DateTimeField(null=True, blank=True)
    notes = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Platform Fee Config"
        verbose_name_plural = "Platform Fee Configs"
        ordering = ["-effective_from", "-id"]
        indexes = [
            models.Index(fields=["expert", "effective_from"], name="fee_config_expert_from_idx"),
        ]

    def __str__(self):
        who = getattr(self.expert, "username", None) or "platform"
        return f"PlatformFeeConfig<{who}> default={self.default_fee_percent}%"

    def is_effective_at(self, at) -> bool:
        if self.effective_from and at < self.effective_from:
            return False
        if self.effective_until and at >= self.effective_until:
            return False
        return True

    @classmethod
    def active_for(cls, expert=None, at=None) -> "PlatformFeeConfig | None":
        """
        Latest config effective at `at` for the expert, falling back to the platform-wide
        config. Returns None when nothing is configured; the resolver then uses its fallback.
        """
        at = at or timezone.now()
        window = Q(effective_from__lte=at) & (Q(effective_until__isnull=True) | Q(effective_until__gt=at))
        if expert is not None:
            obj = cls.objects.filter(window, expert=expert).order_by("-effective_from", "-id").first()
            if obj:
                return obj
        return cls.objects.filter(window, expert__isnull=True).order_by("-effective_from", "-id").first()
