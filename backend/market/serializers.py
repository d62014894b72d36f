from rest_framework import serializers

from .models import Order, OrderLineItem


class OrderLineItemSerializer(serializers.ModelSerializer):
    requires_platform_shipping = serializers.SerializerMethodField()

    class Meta:
        model = OrderLineItem
        fields = [
            'id',
            'product_id',
            'sku',
            'product_name',
            'category',
            'quantity',
            'unit_price',
            'shipping_cost',
            'line_total',
            'is_white_label',
            'shipping_mode',
            'requires_platform_shipping',
            'discount_amount',
            'platform_fee_percent',
            'platform_fee_amount',
            'expert_earnings',
        ]
        read_only_fields = fields

    def get_requires_platform_shipping(self, obj):
        return obj.requires_platform_shipping


class OrderSerializer(serializers.ModelSerializer):
    items = OrderLineItemSerializer(many=True, read_only=True)
    expert_username = serializers.SerializerMethodField()
    net_amount = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id',
            'order_type',
            'category',
            'status',
            'currency',
            'amount',
            'coupon_code',
            'discount',
            'net_amount',
            'gateway_amount',
            'wallet_deduction',
            'real_ratio',
            'effective_real_amount',
            'platform_fee_percent',
            'platform_fee',
            'expert_earnings',
            'expert',
            'expert_username',
            'items',
            'paid_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_expert_username(self, obj):
        return getattr(obj.expert, 'username', None)

    def get_net_amount(self, obj):
        return str(obj.net_amount)
