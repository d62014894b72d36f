from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics
from rest_framework.exceptions import NotFound
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Wallet, WalletTransaction
from .serializers import MeSerializer, WalletSerializer, WalletTransactionSerializer


class MeView(generics.RetrieveAPIView):
    serializer_class = MeSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


class WalletMe(generics.RetrieveAPIView):
    """Caller's wallet in ?currency= (default: the user's currency); created empty on first read."""
    serializer_class = WalletSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        currency = (self.request.query_params.get("currency") or "").strip().upper() or None
        return Wallet.get_or_create_for_user(self.request.user, currency)


class LenientWalletTxnPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = "page_size"
    max_page_size = 100

    def paginate_queryset(self, queryset, request, view=None):
        try:
            return super().paginate_queryset(queryset, request, view)
        except NotFound:
            # Out-of-range page -> empty page instead of 404
            self.request = request
            self.count = queryset.count()
            self.page = None
            return []

    def get_paginated_response(self, data):
        if getattr(self, "page", None) is None:
            return Response({
                "count": int(getattr(self, "count", 0) or 0),
                "next": None,
                "previous": None,
                "results": [],
            })
        return super().get_paginated_response(data)


class WalletTransactionsList(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = WalletTransactionSerializer
    pagination_class = LenientWalletTxnPagination
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["type", "status", "currency", "order_id"]

    def get_queryset(self):
        qs = WalletTransaction.objects.filter(user=self.request.user).order_by("-created_at", "-id")

        # Optional date range on created_at (date)
        date_from = (self.request.query_params.get("date_from") or "").strip()
        date_to = (self.request.query_params.get("date_to") or "").strip()
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)
        return qs
