from django.contrib import admin
admin.site.site_header = "Wallet & Settlement Administration"
admin.site.site_title = "Settlement Admin"
admin.site.index_title = "Wallets, coupons and payouts"
from django.urls import path, include
from accounts.views import WalletMe, WalletTransactionsList
from coupons.views import CouponValidateView
from business.views import PayoutPreviewView, SettleOrderView
from market.views import OrderListView, OrderDetailView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/accounts/', include('accounts.urls')),
    path('api/coupons/', include('coupons.urls')),
    path('api/business/', include('business.urls')),
    path('api/', include('market.urls')),
    # v1 aliases
    path('api/v1/wallet/', WalletMe.as_view(), name='v1_wallet'),
    path('api/v1/wallet/transactions/', WalletTransactionsList.as_view(), name='v1_wallet_transactions'),
    path('api/v1/coupons/validate/', CouponValidateView.as_view(), name='v1_coupon_validate'),
    path('api/v1/payouts/preview/', PayoutPreviewView.as_view(), name='v1_payout_preview'),
    path('api/v1/orders/', OrderListView.as_view(), name='v1_orders'),
    path('api/v1/orders/<int:pk>/', OrderDetailView.as_view(), name='v1_order_detail'),
    path('api/v1/orders/<int:pk>/settle/', SettleOrderView.as_view(), name='v1_order_settle'),
]
