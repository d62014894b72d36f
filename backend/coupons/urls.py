from rest_framework.routers import DefaultRouter
from django.urls import path, include

from .views import CouponViewSet, CouponValidateView

router = DefaultRouter()
router.register(r'coupons', CouponViewSet, basename='coupon')

urlpatterns = [
    path('validate/', CouponValidateView.as_view(), name='coupon_validate'),
    path('', include(router.urls)),
]
