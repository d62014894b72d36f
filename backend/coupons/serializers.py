from rest_framework import serializers

from .models import Coupon, CouponClaim


class CouponSerializer(serializers.ModelSerializer):
    remaining_claims = serializers.SerializerMethodField()

    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "type",
            "discount",
            "start_date",
            "end_date",
            "is_enabled",
            "only_for_new_users",
            "min_cart_amount",
            "max_discount_amount",
            "total_usage_limit",
            "max_claims_per_user",
            "claims_made_so_far",
            "remaining_claims",
            "user_ids_allowed",
            "created_at",
        ]
        # claims_made_so_far moves only through try_claim
        read_only_fields = ["claims_made_so_far", "remaining_claims", "created_at"]

    def get_remaining_claims(self, obj):
        return obj.remaining_claims

    def validate_user_ids_allowed(self, value):
        if value in (None, ""):
            return []
        if not isinstance(value, list):
            raise serializers.ValidationError("Must be a list of user ids.")
        return [str(v) for v in value]

    def validate(self, attrs):
        start = attrs.get("start_date") or getattr(self.instance, "start_date", None)
        end = attrs.get("end_date") or getattr(self.instance, "end_date", None)
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "end_date must not be before start_date."})
        discount = attrs.get("discount")
        if discount is not None and discount < 0:
            raise serializers.ValidationError({"discount": "Discount must not be negative."})
        ctype = attrs.get("type") or getattr(self.instance, "type", None)
        if ctype == "PERCENTAGE" and discount is not None and discount > 100:
            raise serializers.ValidationError({"discount": "Percentage discount must be at most 100."})
        return attrs


class CouponClaimSerializer(serializers.ModelSerializer):
    code = serializers.SerializerMethodField()

    class Meta:
        model = CouponClaim
        fields = ["id", "code", "user", "order_id", "created_at"]
        read_only_fields = fields

    def get_code(self, obj):
        return getattr(obj.coupon, "code", None)


class CouponValidateSerializer(serializers.Serializer):
    code = serializers.CharField()
    cart_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
