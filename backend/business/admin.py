from decimal import Decimal, InvalidOperation

from django import forms
from django.contrib import admin

from .models import PlatformFeeConfig


def _clean_fee_map(value, label):
    if value in (None, ""):
        return {}
    if not isinstance(value, dict):
        raise forms.ValidationError(f"{label} must be a JSON object of key -> percent.")
    out = {}
    for key, raw in value.items():
        try:
            pct = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            raise forms.ValidationError(f"{label}[{key}] is not a number: {raw!r}")
        if pct < 0 or pct > 100:
            raise forms.ValidationError(f"{label}[{key}] must be between 0 and 100.")
        out[str(key).strip()] = str(pct)
    return out


class PlatformFeeConfigForm(forms.ModelForm):
    class Meta:
        model = PlatformFeeConfig
        fields = "__all__"

    def clean_fee_by_type(self):
        return _clean_fee_map(self.cleaned_data.get("fee_by_type"), "fee_by_type")

    def clean_fee_by_category(self):
        return _clean_fee_map(self.cleaned_data.get("fee_by_category"), "fee_by_category")

    def clean(self):
        data = super().clean()
        start = data.get("effective_from")
        end = data.get("effective_until")
        if start and end and end <= start:
            raise forms.ValidationError("effective_until must be after effective_from.")
        return data


@admin.register(PlatformFeeConfig)
class PlatformFeeConfigAdmin(admin.ModelAdmin):
    form = PlatformFeeConfigForm
    list_display = ("id", "expert", "default_fee_percent", "effective_from", "effective_until", "notes", "updated_at")
    list_filter = ("effective_from",)
    search_fields = ("expert__username", "notes")
    raw_id_fields = ("expert",)
    readonly_fields = ("updated_at", "created_at")
    fieldsets = (
        ("Scope", {"fields": ("expert", "notes")}),
        ("Rates (percent)", {"fields": ("default_fee_percent", "fee_by_type", "fee_by_category")}),
        ("Validity", {"fields": ("effective_from", "effective_until")}),
        ("Audit", {"fields": ("updated_at", "created_at")}),
    )
