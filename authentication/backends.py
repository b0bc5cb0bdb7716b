"""
JWT authentication for the race incident backend.

Standard simplejwt bearer tokens, plus a status check on every request so
that suspending an account takes effect before its tokens expire.
"""

import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

security_logger = logging.getLogger('incident.security')


class IncidentJWTAuthentication(JWTAuthentication):
    """
    Bearer token authentication that rejects suspended or inactive users.

    Every request must include:
    - Authorization: Bearer <access token>
    """

    def authenticate(self, request):
        result = super().authenticate(request)

        if result is None:
            return None

        user, validated_token = result
        self._check_user_status(user, request)
        return (user, validated_token)

    def _check_user_status(self, user, request):
        if user.is_suspended:
            security_logger.warning(
                f"Suspended user attempted access: {user.id} from {self._get_ip(request)}"
            )
            raise InvalidToken({
                'detail': 'Account suspended',
                'code': 'account_suspended'
            })

        if not user.is_active:
            raise InvalidToken({
                'detail': 'Your account is not active.',
                'code': 'account_inactive'
            })

    def _get_ip(self, request):
        """Extract client IP from request."""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', 'unknown')
