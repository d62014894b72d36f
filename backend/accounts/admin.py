import csv

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.http import HttpResponse

from .models import CustomUser, Wallet, WalletTransaction


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'full_name', 'email', 'role', 'default_currency', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'full_name', 'email', 'phone')
    fieldsets = UserAdmin.fieldsets + (
        ('Marketplace', {'fields': ('role', 'full_name', 'phone', 'default_currency')}),
    )


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ('user', 'currency', 'balance', 'real_ratio', 'version', 'updated_at', 'created_at')
    list_filter = ('currency',)
    search_fields = ('user__username',)
    raw_id_fields = ('user',)
    # Balances move only through the ledger
    readonly_fields = ('balance', 'real_ratio', 'version', 'created_at', 'updated_at')


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ('user', 'type', 'amount', 'is_real', 'balance_after', 'real_ratio_after', 'order_id', 'status', 'created_at')
    list_filter = ('type', 'source', 'status', 'is_real')
    search_fields = ('user__username', 'order_id', 'payment_id', 'coupon_code')
    raw_id_fields = ('user', 'wallet')
    readonly_fields = (
        'wallet', 'user', 'type', 'source', 'amount', 'currency', 'is_real', 'balance_after',
        'real_ratio_after', 'order_id', 'payment_id', 'coupon_code', 'status', 'meta', 'created_at',
    )
    actions = ['export_as_csv']

    def has_add_permission(self, request):
        return False

    def export_as_csv(self, request, queryset):
        resp = HttpResponse(content_type='text/csv')
        resp['Content-Disposition'] = 'attachment; filename=wallet_transactions.csv'
        writer = csv.writer(resp)
        writer.writerow(['user', 'type', 'amount', 'is_real', 'balance_after', 'real_ratio_after', 'order_id', 'status', 'meta', 'created_at'])
        for t in queryset:
            writer.writerow([
                getattr(t.user, 'username', ''),
                t.type, t.amount, t.is_real, t.balance_after, t.real_ratio_after,
                t.order_id, t.status, t.meta, t.created_at,
            ])
        return resp
    export_as_csv.short_description = "Export selected to CSV"
