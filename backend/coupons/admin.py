from django.contrib import admin, messages

from .models import Coupon, CouponClaim


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code", "type", "discount", "start_date", "end_date", "is_enabled",
        "only_for_new_users", "claims_made_so_far", "total_usage_limit", "max_claims_per_user", "created_at",
    )
    list_filter = ("type", "is_enabled", "only_for_new_users")
    search_fields = ("code",)
    readonly_fields = ("claims_made_so_far", "created_at")
    actions = ["enable_coupons", "disable_coupons"]
    fieldsets = (
        ("Coupon", {"fields": ("code", "type", "discount", "max_discount_amount", "min_cart_amount")}),
        ("Validity", {"fields": ("start_date", "end_date", "is_enabled")}),
        ("Eligibility", {"fields": ("only_for_new_users", "user_ids_allowed")}),
        ("Usage", {"fields": ("total_usage_limit", "max_claims_per_user", "claims_made_so_far")}),
        ("Audit", {"fields": ("created_at",)}),
    )

    def enable_coupons(self, request, queryset):
        updated = queryset.update(is_enabled=True)
        self.message_user(request, f"Enabled {updated} coupon(s).", level=messages.SUCCESS)
    enable_coupons.short_description = "Enable selected coupons"

    def disable_coupons(self, request, queryset):
        updated = queryset.update(is_enabled=False)
        self.message_user(request, f"Disabled {updated} coupon(s).", level=messages.SUCCESS)
    disable_coupons.short_description = "Disable selected coupons"


@admin.register(CouponClaim)
class CouponClaimAdmin(admin.ModelAdmin):
    list_display = ("coupon", "user", "order_id", "created_at")
    search_fields = ("coupon__code", "user__username", "order_id")
    raw_id_fields = ("coupon", "user")
    readonly_fields = ("coupon", "user", "order_id", "created_at")

    def has_add_permission(self, request):
        return False
