from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated

from .models import Order
from .serializers import OrderSerializer


class OrderPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _visible_orders(user):
    """Orders the user paid for or fulfils as the expert."""
    return (
        Order.objects.filter(Q(user=user) | Q(expert=user))
        .select_related('expert')
        .prefetch_related('items')
        .order_by('-created_at', '-id')
    )


class OrderListView(generics.ListAPIView):
    """
    GET /api/v1/orders/?status=PAID&order_type=PRODUCT&role=expert
    role=expert limits the list to orders the caller fulfils.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = OrderPagination
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'order_type', 'currency']

    def get_queryset(self):
        qs = _visible_orders(self.request.user)
        role = (self.request.query_params.get('role') or '').strip().lower()
        if role == 'expert':
            qs = qs.filter(expert=self.request.user)
        elif role == 'user':
            qs = qs.filter(user=self.request.user)
        return qs


class OrderDetailView(generics.RetrieveAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer

    def get_queryset(self):
        return _visible_orders(self.request.user)
