from django.contrib import admin
from .models import Order, OrderLineItem, OrderStatus

SETTLEMENT_FIELDS = (
    'gateway_amount', 'wallet_deduction', 'real_ratio', 'effective_real_amount',
    'platform_fee_percent', 'platform_fee', 'expert_earnings', 'paid_at',
)


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    fields = (
        'product_name', 'sku', 'category', 'quantity', 'unit_price', 'shipping_cost', 'line_total',
        'is_white_label', 'shipping_mode', 'discount_amount', 'platform_fee_percent', 'platform_fee_amount', 'expert_earnings',
    )
    readonly_fields = ('discount_amount', 'platform_fee_percent', 'platform_fee_amount', 'expert_earnings')

    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.status == OrderStatus.PAID:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.status == OrderStatus.PAID:
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'expert', 'order_type', 'amount', 'discount', 'currency', 'status', 'platform_fee', 'expert_earnings', 'created_at')
    list_filter = ('status', 'order_type', 'currency', 'created_at')
    search_fields = ('user__username', 'expert__username', 'coupon_code', 'category')
    raw_id_fields = ('user', 'expert')
    readonly_fields = SETTLEMENT_FIELDS + ('created_at', 'updated_at')
    inlines = [OrderLineItemInline]
    fieldsets = (
        ('Order', {
            'fields': ('user', 'expert', 'order_type', 'category', 'currency', 'amount', 'status')
        }),
        ('Discount', {
            'fields': ('coupon_code', 'discount')
        }),
        ('Settlement', {
            'fields': SETTLEMENT_FIELDS
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at')
        }),
    )
