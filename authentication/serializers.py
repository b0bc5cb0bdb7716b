"""
Serializers for authentication.

OTP login flow:
1. OTPRequestSerializer looks the user up by email or marshal id and stores
   a one-time code.
2. OTPVerifySerializer checks the code and expiry, then issues a simplejwt
   refresh/access pair with the role baked into the token claims.
"""

import logging

from rest_framework import serializers
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User

auth_logger = logging.getLogger('incident.auth')
security_logger = logging.getLogger('incident.security')


class UserSerializer(serializers.ModelSerializer):
    """Public profile of a user."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'name', 'role', 'status',
            'marshal_id', 'mobile', 'is_intake_enabled',
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user reference nested in tickets and activity entries."""

    class Meta:
        model = User
        fields = ['id', 'name', 'role']
        read_only_fields = fields


def get_tokens_for_user(user):
    """Issue a refresh/access pair carrying the claims the web client reads."""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['name'] = user.display_name
    refresh['is_intake_enabled'] = user.is_intake_enabled
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


class _IdentifierSerializer(serializers.Serializer):
    """A user is identified either by email or by marshal id."""

    email = serializers.EmailField(required=False)
    marshal_id = serializers.CharField(max_length=50, required=False)

    def _lookup_user(self, attrs):
        email = attrs.get('email')
        marshal_id = attrs.get('marshal_id')

        if not email and not marshal_id:
            raise serializers.ValidationError('Email or Marshal ID is required.')

        try:
            if email:
                user = User.objects.get(email__iexact=email)
            else:
                user = User.objects.get(marshal_id=marshal_id)
        except User.DoesNotExist:
            raise NotFound('User not found')

        if user.is_suspended or not user.is_active:
            security_logger.warning(f"Login attempt on suspended account {user.id}")
            raise PermissionDenied('Account suspended')

        return user


class OTPRequestSerializer(_IdentifierSerializer):
    """
    Request a login code.

    The code would normally be delivered by SMS or email; delivery is not
    wired up, so it is only written to the auth log.
    """

    def validate(self, attrs):
        attrs['user'] = self._lookup_user(attrs)
        return attrs

    def save(self):
        user = self.validated_data['user']
        code = user.issue_otp()
        auth_logger.info(f"OTP issued for user {user.id}: {code}")
        return user


class OTPVerifySerializer(_IdentifierSerializer):
    """Exchange a valid login code for a token pair."""

    otp = serializers.CharField(max_length=12)

    def validate(self, attrs):
        user = self._lookup_user(attrs)

        if not user.otp_matches(attrs['otp']):
            auth_logger.info(f"Invalid OTP for user {user.id}")
            raise serializers.ValidationError('Invalid code')

        if user.otp_expired():
            raise serializers.ValidationError('Code expired')

        attrs['user'] = user
        return attrs

    def save(self):
        user = self.validated_data['user']
        user.clear_otp()
        auth_logger.info(f"User {user.id} ({user.role}) logged in")

        result = get_tokens_for_user(user)
        result['user'] = UserSerializer(user).data
        return result


class LogoutSerializer(serializers.Serializer):
    """Blacklists the refresh token."""

    refresh = serializers.CharField(
        help_text="Refresh token to blacklist"
    )

    def validate_refresh(self, value):
        try:
            RefreshToken(value)
        except TokenError:
            raise serializers.ValidationError("Invalid refresh token.")
        return value

    def save(self):
        token = RefreshToken(self.validated_data['refresh'])
        token.blacklist()
