from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from business.exceptions import SettlementError
from business.services.settlement import prior_paid_order_count
from business.views import settlement_error_response
from .models import Coupon
from .serializers import CouponClaimSerializer, CouponSerializer, CouponValidateSerializer
from .services import get_coupon, user_claim_count, validate_coupon


class CouponViewSet(viewsets.ModelViewSet):
    """
    Staff CRUD for coupons. Usage counters are read-only here.
    """
    queryset = Coupon.objects.all().order_by("-created_at")
    serializer_class = CouponSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ["type", "is_enabled", "only_for_new_users"]

    @action(detail=True, methods=["get"], url_path="claims")
    def claims(self, request, pk=None):
        coupon = self.get_object()
        qs = coupon.claims.select_related("coupon").order_by("-created_at")[:200]
        return Response(CouponClaimSerializer(qs, many=True).data, status=status.HTTP_200_OK)


class CouponValidateView(APIView):
    """
    POST /api/v1/coupons/validate/
    Body: { "code": "WELCOME50", "cart_amount": "499.00" }
    Returns { valid, message, discount, new_amount } for the caller. Nothing is claimed;
    the claim happens when the order settles.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = CouponValidateSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=status.HTTP_400_BAD_REQUEST)
        data = ser.validated_data

        coupon = get_coupon(data["code"])
        try:
            result = validate_coupon(
                coupon,
                data["cart_amount"],
                user_id=request.user.pk,
                prior_order_count=prior_paid_order_count(request.user),
                user_claim_count=user_claim_count(coupon, request.user),
            )
        except SettlementError as e:
            return settlement_error_response(e)
        return Response(result.as_dict(), status=status.HTTP_200_OK)
