from django.urls import path
from .views import (
    PayoutPreviewView,
    SettleOrderView,
    ActiveFeeConfigView,
)

urlpatterns = [
    path('payouts/preview/', PayoutPreviewView.as_view(), name='payout_preview'),
    path('orders/<int:pk>/settle/', SettleOrderView.as_view(), name='order_settle'),
    path('fee-config/active/', ActiveFeeConfigView.as_view(), name='fee_config_active'),
]
