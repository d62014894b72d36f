from rest_framework import serializers

from .models import CustomUser, Wallet, WalletTransaction


class MeSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'email', 'full_name', 'phone', 'role', 'default_currency', 'date_joined']
        read_only_fields = fields


class WalletSerializer(serializers.ModelSerializer):
    real_ratio = serializers.SerializerMethodField()
    real_balance = serializers.SerializerMethodField()

    class Meta:
        model = Wallet
        fields = ['id', 'currency', 'balance', 'real_ratio', 'real_balance', 'updated_at']
        read_only_fields = fields

    def get_real_ratio(self, obj):
        return round(float(obj.real_ratio or 0.0), 6)

    def get_real_balance(self, obj):
        return str(obj.real_balance)


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = [
            'id',
            'type',
            'source',
            'amount',
            'currency',
            'is_real',
            'balance_after',
            'real_ratio_after',
            'order_id',
            'payment_id',
            'coupon_code',
            'status',
            'meta',
            'created_at',
        ]
        read_only_fields = fields
