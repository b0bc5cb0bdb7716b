"""
Request logging middleware.

Writes one line per API request to the audit log stream. Ticket-level
history lives in tickets.ActivityLog; this is the transport-level trail.
"""

import logging
import time

from .exceptions import get_client_ip

audit_logger = logging.getLogger('incident.audit')


class RequestLoggingMiddleware:
    """
    Captures method, path, user, status code, duration and client IP.

    JWT authentication happens inside DRF views, so the user is read from
    the DRF request stashed on the response when available.
    """

    SKIP_PREFIXES = (
        '/static/',
        '/uploads/',
        '/health/',
        '/api/health/',
        '/favicon.ico',
    )

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start_time = time.monotonic()
        response = self.get_response(request)
        duration = time.monotonic() - start_time

        if not request.path.startswith(self.SKIP_PREFIXES):
            self._log_request(request, response, duration)

        return response

    def _log_request(self, request, response, duration):
        user_id = 'anonymous'
        user_role = 'none'

        # DRF attaches its Request to the rendered response
        drf_request = getattr(response, 'renderer_context', {}).get('request')
        user = getattr(drf_request, 'user', None) or getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            user_id = str(user.id)
            user_role = getattr(user, 'role', 'none')

        log_data = {
            'method': request.method,
            'path': request.path,
            'user_id': user_id,
            'user_role': user_role,
            'status_code': response.status_code,
            'duration_ms': round(duration * 1000, 2),
            'ip_address': get_client_ip(request),
        }

        if response.status_code >= 500:
            audit_logger.error(f"API Request: {log_data}")
        elif response.status_code >= 400:
            audit_logger.warning(f"API Request: {log_data}")
        else:
            audit_logger.info(f"API Request: {log_data}")
