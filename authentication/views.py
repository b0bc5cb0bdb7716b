"""
Authentication views.

Provides REST API endpoints for:
- OTP request and verification (login)
- Token refresh
- Logout
- Current user profile
"""

from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from .permissions import IsAuthenticated
from .serializers import (
    LogoutSerializer,
    OTPRequestSerializer,
    OTPVerifySerializer,
    UserSerializer,
)


class OTPThrottle(ScopedRateThrottle):
    """Rate limiting for login endpoints."""
    scope = 'otp'


class OTPRequestView(views.APIView):
    """
    Start a login.

    POST /api/v1/auth/otp/request/

    Request:
    {
        "email": "chief.control@race.local"      // or "marshal_id": "M-1042"
    }

    Response:
    {
        "detail": "OTP sent.",
        "expires_at": "2026-05-04T09:10:00+00:00"
    }
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [OTPThrottle]

    def post(self, request):
        serializer = OTPRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({
            'detail': 'OTP sent.',
            'expires_at': user.otp_expires_at.isoformat(),
        }, status=status.HTTP_200_OK)


class OTPVerifyView(views.APIView):
    """
    Finish a login.

    POST /api/v1/auth/otp/verify/

    Request:
    {
        "email": "chief.control@race.local",
        "otp": "3333"
    }

    Response:
    {
        "refresh": "jwt_refresh_token",
        "access": "jwt_access_token",
        "user": { ... }
    }
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [OTPThrottle]

    def post(self, request):
        serializer = OTPVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(serializer.save(), status=status.HTTP_200_OK)


class LogoutView(views.APIView):
    """
    POST /api/v1/auth/logout/

    Request:
    {
        "refresh": "jwt_refresh_token"
    }
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(
            {'detail': 'Successfully logged out.'},
            status=status.HTTP_200_OK
        )


class CurrentUserView(views.APIView):
    """
    GET /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
