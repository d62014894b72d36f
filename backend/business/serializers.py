from rest_framework import serializers

from market.models import OrderType
from .models import PlatformFeeConfig


class PlatformFeeConfigSerializer(serializers.ModelSerializer):
    expert_username = serializers.SerializerMethodField()

    class Meta:
        model = PlatformFeeConfig
        fields = [
            "id",
            "expert",
            "expert_username",
            "default_fee_percent",
            "fee_by_type",
            "fee_by_category",
            "effective_from",
            "effective_until",
            "notes",
            "updated_at",
        ]
        read_only_fields = fields

    def get_expert_username(self, obj):
        return getattr(obj.expert, "username", None)


class PayoutPreviewSerializer(serializers.Serializer):
    gateway_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    wallet_deduction = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    order_type = serializers.ChoiceField(choices=OrderType.choices)
    category = serializers.CharField(required=False, allow_blank=True, default="")
    expert = serializers.IntegerField(required=False, allow_null=True, default=None)


class SettleOrderSerializer(serializers.Serializer):
    gateway_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    wallet_deduction = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    coupon_code = serializers.CharField(required=False, allow_blank=True, default="")
