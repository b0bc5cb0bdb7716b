"""
Custom exception handling for the race incident backend.

Every error leaving the API has the same JSON shape:

    {
        "message": "Human readable reason",
        "code": "ERROR_CODE"
    }

Workflow errors carry their own reason (e.g. "Escalation not allowed. Your
role (SPORT_MARSHAL) cannot escalate to CHIEF_OF_CONTROL."), which is passed
through untouched. Unexpected exceptions are logged with a stack trace and
reduced to a generic 500.
"""

import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

security_logger = logging.getLogger('incident.security')
logger = logging.getLogger('incident.workflow')


def custom_exception_handler(exc, context):
    """
    Translate exceptions into the {message, code} body.

    DRF's default handler runs first so authentication, permission,
    throttling and validation errors keep their status codes.
    """
    response = exception_handler(exc, context)
    request = context.get('request')
    view = context.get('view')

    if response is None:
        view_name = view.__class__.__name__ if view else 'unknown'
        logger.exception(f"Unhandled error in {view_name}: {exc.__class__.__name__}")
        return Response(
            {
                'message': 'An internal error occurred. Please try again later.',
                'code': 'INTERNAL_ERROR',
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if response.status_code in [401, 403, 429]:
        _log_security_event(exc, request, view, response.status_code)

    response.data = {
        'message': _get_message(exc, response.status_code),
        'code': _get_error_code(exc, response.status_code),
    }
    return response


def _get_error_code(exc, status_code):
    """Domain exceptions name their own code; everything else maps by status."""
    if isinstance(exc, IncidentAPIException):
        return exc.default_code
    error_codes = {
        400: 'BAD_REQUEST',
        401: 'UNAUTHORIZED',
        403: 'FORBIDDEN',
        404: 'NOT_FOUND',
        405: 'METHOD_NOT_ALLOWED',
        409: 'CONFLICT',
        413: 'PAYLOAD_TOO_LARGE',
        415: 'UNSUPPORTED_MEDIA_TYPE',
        429: 'RATE_LIMIT_EXCEEDED',
    }
    return error_codes.get(status_code, 'UNKNOWN_ERROR')


def _get_message(exc, status_code):
    """Pick a readable message out of whatever detail the exception carries."""
    if isinstance(exc, Http404):
        return 'The requested resource was not found.'

    detail = getattr(exc, 'detail', None)
    if isinstance(detail, dict):
        for field, errors in detail.items():
            if isinstance(errors, list) and errors:
                if field == 'non_field_errors':
                    return str(errors[0])
                return f"Validation error: {field} - {errors[0]}"
            return str(errors)
    elif isinstance(detail, list) and detail:
        return str(detail[0])
    elif detail:
        return str(detail)

    return 'An error occurred.'


def _log_security_event(exc, request, view, status_code):
    """Log 401/403/429 responses for monitoring."""
    user_info = 'anonymous'
    if request and hasattr(request, 'user') and request.user.is_authenticated:
        user_info = f"{request.user.id} ({request.user.role})"

    ip_address = get_client_ip(request)
    view_name = view.__class__.__name__ if view else 'unknown'

    security_logger.warning(
        f"Security event: status={status_code}, "
        f"user={user_info}, ip={ip_address}, "
        f"view={view_name}, exception={exc.__class__.__name__}"
    )


def get_client_ip(request):
    """
    Extract client IP address from request.
    Handles proxy headers (X-Forwarded-For).
    """
    if not request:
        return 'unknown'

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


# =============================================================================
# DOMAIN EXCEPTIONS
# =============================================================================

class IncidentAPIException(APIException):
    """Base class for workflow errors. The detail is shown to the client as-is."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'ERROR'
    default_detail = 'An error occurred.'


class ResourceNotFound(IncidentAPIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'NOT_FOUND'
    default_detail = 'The requested resource was not found.'


class TicketNotFound(ResourceNotFound):
    default_detail = 'Ticket not found.'


class WorkflowForbidden(IncidentAPIException):
    """Role or ownership check failed."""
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'FORBIDDEN'
    default_detail = 'You are not allowed to perform this action on this ticket.'


class WorkflowConflict(IncidentAPIException):
    """The ticket is not in a state that allows the requested transition."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'CONFLICT'
    default_detail = 'The ticket cannot move to the requested status.'


class WorkflowValidationError(IncidentAPIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'VALIDATION_ERROR'
    default_detail = 'Invalid request. Please check your input.'
