"""
Public intake views.

Marshals on the track file tickets from a phone without logging in. The
marshal id typed into the form links the ticket to the marshal's account
when one exists.

Rate limited per client IP (throttle scope ``public_intake``).
"""

from django.conf import settings
from rest_framework import status, views
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from core.exceptions import WorkflowValidationError

from .serializers import (
    PublicControlSerializer,
    PublicMedicalSerializer,
    PublicSafetySerializer,
)


class PublicSubmitView(views.APIView):
    """
    POST /api/v1/public/submit/<medical|control|safety>/

    Multipart request:
        marshal_id, post_number, description    (required)
        marshal_mobile, incident_date, incident_time, location, event_name
        + the form's own fields (see tickets.serializers)
        files                                    (up to 5)

    Response (201):
    {
        "success": true,
        "message": "Ticket created successfully",
        "ticket_no": "INC-2026-00042",
        "id": "uuid"
    }
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'public_intake'
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    serializer_class = None

    def post(self, request):
        files = request.FILES.getlist('files')
        max_files = settings.PUBLIC_INTAKE_MAX_FILES
        if len(files) > max_files:
            raise WorkflowValidationError(f"At most {max_files} files can be attached.")

        serializer = self.serializer_class(data=request.data, context={'files': files})
        serializer.is_valid(raise_exception=True)
        ticket = serializer.save()

        return Response({
            'success': True,
            'message': 'Ticket created successfully',
            'ticket_no': ticket.ticket_no,
            'id': str(ticket.id),
        }, status=status.HTTP_201_CREATED)


class PublicMedicalSubmitView(PublicSubmitView):
    serializer_class = PublicMedicalSerializer


class PublicControlSubmitView(PublicSubmitView):
    serializer_class = PublicControlSerializer


class PublicSafetySubmitView(PublicSubmitView):
    serializer_class = PublicSafetySerializer
