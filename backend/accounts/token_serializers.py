from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework import serializers
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


def _add_claims(token, user):
    token['role'] = user.role
    token['username'] = user.username
    token['full_name'] = getattr(user, 'full_name', '') or ''
    token['is_expert'] = bool(getattr(user, 'is_expert', False))
    token['currency'] = getattr(user, 'default_currency', '') or ''
    return token


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        initial = getattr(self, "initial_data", {}) or {}
        username = (initial.get("username") or attrs.get("username") or "").strip()
        if not username:
            raise serializers.ValidationError({"detail": "Username is required."})
        attrs["username"] = username
        return super().validate(attrs)

    @classmethod
    def get_token(cls, user):
        return _add_claims(super().get_token(user), user)


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """
    Refreshed access tokens carry the same custom claims as freshly issued ones.
    A refresh token whose user was deleted is a validation error, not a 500.
    """
    def validate(self, attrs):
        UserModel = get_user_model()
        try:
            data = super().validate(attrs)
        except UserModel.DoesNotExist:
            raise serializers.ValidationError({"detail": "User for this token no longer exists."})

        refresh = RefreshToken(attrs.get("refresh"))
        user_id = refresh.get(api_settings.USER_ID_CLAIM, None)
        if user_id is not None:
            user = UserModel.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
            if user:
                data["access"] = str(_add_claims(refresh.access_token, user))
        return data


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer
