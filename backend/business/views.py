import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import Wallet
from market.models import Order
from market.serializers import OrderSerializer
from .exceptions import (
    ConcurrencyConflict,
    CouponExhausted,
    CouponRejected,
    SettlementError,
)
from .models import PlatformFeeConfig
from .serializers import PayoutPreviewSerializer, PlatformFeeConfigSerializer, SettleOrderSerializer
from .services.settlement import preview_payout, settle_order

logger = logging.getLogger(__name__)


def settlement_error_response(exc: SettlementError) -> Response:
    """
    Map a settlement exception to a JSON error with a stable `code`.
    Conflicts and exhausted coupons are 409; everything else is the caller's input, 400.
    """
    if isinstance(exc, (ConcurrencyConflict, CouponExhausted)):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    body = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, CouponRejected):
        body["coupon"] = exc.result.as_dict()
    return Response(body, status=http_status)


class PayoutPreviewView(APIView):
    """
    POST { gateway_amount, wallet_deduction, order_type, category?, expert? }
    Breakdown the caller would get if they paid now, priced on their wallet's real_ratio.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        ser = PayoutPreviewSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=status.HTTP_400_BAD_REQUEST)
        data = ser.validated_data

        expert = None
        if data.get("expert"):
            expert = get_object_or_404(get_user_model(), pk=data["expert"])
        wallet = Wallet.objects.filter(user=request.user, currency=request.user.default_currency).first()
        try:
            breakdown = preview_payout(
                data["gateway_amount"],
                data.get("wallet_deduction") or 0,
                data["order_type"],
                category=data.get("category") or None,
                expert=expert,
                wallet=wallet,
            )
        except SettlementError as e:
            return settlement_error_response(e)
        return Response(breakdown.as_dict(), status=status.HTTP_200_OK)


class SettleOrderView(APIView):
    """
    POST /orders/<id>/settle/ { gateway_amount, wallet_deduction, coupon_code? }
    Only the payer (or staff) may settle an order.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        qs = Order.objects.all() if request.user.is_staff else Order.objects.filter(user=request.user)
        order = get_object_or_404(qs, pk=pk)

        ser = SettleOrderSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=status.HTTP_400_BAD_REQUEST)
        data = ser.validated_data

        try:
            result = settle_order(
                order,
                data["gateway_amount"],
                data.get("wallet_deduction") or 0,
                coupon_code=data.get("coupon_code") or None,
            )
        except SettlementError as e:
            logger.info("Settlement of order %s refused: %s (%s)", order.pk, e, e.code)
            return settlement_error_response(e)

        payload = result.as_dict()
        payload["order"] = OrderSerializer(result.order).data
        return Response(payload, status=status.HTTP_200_OK)


class ActiveFeeConfigView(APIView):
    """
    GET ?expert=<id>
    Staff view of the fee config settlement would use right now.
    """
    permission_classes = [permissions.IsAdminUser]

    def get(self, request):
        expert = None
        expert_id = (request.query_params.get("expert") or "").strip()
        if expert_id:
            expert = get_object_or_404(get_user_model(), pk=expert_id)
        cfg = PlatformFeeConfig.active_for(expert)
        if cfg is None:
            return Response({"detail": "No fee config is active; the platform default applies."}, status=status.HTTP_404_NOT_FOUND)
        return Response(PlatformFeeConfigSerializer(cfg).data, status=status.HTTP_200_OK)
