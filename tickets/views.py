"""
Ticket views.

Provides REST API endpoints for:
- Ticket listing (filtered per role) and creation
- Ticket detail and editing
- Workflow actions: submit, escalate, transfer, return, reopen, close
- Comments and attachments
- Medical assessment

Views stay thin: access checks, status moves and activity logging live in
tickets.workflow.TicketWorkflow.
"""

import logging

from django.db.models import Prefetch
from rest_framework import generics, status, views
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from authentication.permissions import IsMedicalAssessor
from core.exceptions import ResourceNotFound, TicketNotFound

from .filters import TicketFilter
from .models import ActivityAction, ActivityLog, Ticket
from .serializers import (
    ActivityLogSerializer,
    AttachmentSerializer,
    CloseSerializer,
    CommentSerializer,
    EscalateSerializer,
    MedicalReportSerializer,
    ReopenSerializer,
    ReturnSerializer,
    TicketCreateSerializer,
    TicketDetailSerializer,
    TicketListSerializer,
    TicketUpdateSerializer,
    TransferSerializer,
)
from .visibility import visible_tickets_for_user
from .workflow import TicketWorkflow

logger = logging.getLogger('incident.workflow')


def get_ticket_or_404(pk, queryset=None):
    if queryset is None:
        queryset = Ticket.objects.all()
    try:
        return queryset.get(pk=pk)
    except Ticket.DoesNotExist:
        raise TicketNotFound()


def detail_queryset():
    return Ticket.objects.select_related('created_by', 'assigned_to').prefetch_related(
        'attachments',
        Prefetch('activity', queryset=ActivityLog.objects.select_related('actor')),
    )


def get_visible_ticket(request, pk, queryset=None):
    """Ticket ``pk`` if the requester may read it (404 / 403 otherwise)."""
    ticket = get_ticket_or_404(pk, queryset)
    TicketWorkflow.ensure_can_view(request.user, ticket)
    return ticket


def detail_response(request, ticket, status_code=status.HTTP_200_OK):
    ticket = get_ticket_or_404(ticket.pk, detail_queryset())
    serializer = TicketDetailSerializer(ticket, context={'request': request})
    return Response(serializer.data, status=status_code)


# =============================================================================
# TICKETS
# =============================================================================

class TicketListCreateView(generics.ListCreateAPIView):
    """
    List visible tickets / create a ticket.

    GET /api/v1/tickets/

    - ADMIN and CHIEF_OF_CONTROL see everything
    - creators see their own tickets
    - processors see their department's non-draft tickets (deputies and
      chiefs without intake: assigned / escalated to them only)
    - Scrutineers/Judgement see tickets assigned or escalated to them

    Query parameters: type, status, priority, escalated_to_role,
    created_after, created_before, search, ordering

    POST /api/v1/tickets/

    Request:
    {
        "type": "SPORT",
        "description": "Car 44 spun at turn 3",
        "location": "Turn 3",
        "post_number": "12",
        "save_as_draft": false,
        "control_report": {"competitor_number": "44", "lap_number": 7}
    }

    Response: the ticket detail, status OPEN (DRAFT with save_as_draft).
    """

    filterset_class = TicketFilter
    ordering_fields = ['created_at', 'updated_at', 'ticket_no', 'priority', 'status']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return TicketCreateSerializer
        return TicketListSerializer

    def get_queryset(self):
        queryset = Ticket.objects.select_related('created_by', 'assigned_to')
        return visible_tickets_for_user(self.request.user, queryset)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = serializer.save()
        return detail_response(request, ticket, status.HTTP_201_CREATED)


class TicketDetailView(views.APIView):
    """
    GET /api/v1/tickets/{id}/
    PUT /api/v1/tickets/{id}/   (PATCH accepted, both partial)

    Update request:
    {
        "description": "Car 44 spun at turn 3, rejoined",
        "status": "UNDER_REVIEW",
        "control_report": {"remarks": "Reviewed on camera 4"}
    }
    """

    def get(self, request, pk):
        ticket = get_visible_ticket(request, pk, detail_queryset())
        serializer = TicketDetailSerializer(ticket, context={'request': request})
        return Response(serializer.data)

    def put(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        serializer = TicketUpdateSerializer(
            ticket,
            data=request.data,
            partial=True,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        ticket = serializer.save()
        return detail_response(request, ticket)

    patch = put


# =============================================================================
# WORKFLOW ACTIONS
# =============================================================================

class TicketActionView(views.APIView):
    """
    Base for POST /api/v1/tickets/{id}/<action>/.

    Subclasses set ``serializer_class`` and implement ``perform``.
    """

    serializer_class = None

    def post(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        data = {}
        if self.serializer_class is not None:
            serializer = self.serializer_class(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
        ticket = self.perform(request, ticket, data)
        return detail_response(request, ticket)

    def perform(self, request, ticket, data):
        raise NotImplementedError


class SubmitTicketView(TicketActionView):
    """
    Submit a draft for processing (DRAFT -> OPEN).

    POST /api/v1/tickets/{id}/submit/
    """

    def perform(self, request, ticket, data):
        return TicketWorkflow.submit(ticket, request.user)


class EscalateTicketView(TicketActionView):
    """
    POST /api/v1/tickets/{id}/escalate/

    Request:
    {
        "to_role": "CHIEF_OF_CONTROL",
        "reason": "needs ruling",
        "notes": "",
        "assigned_to_id": null
    }
    """

    serializer_class = EscalateSerializer

    def perform(self, request, ticket, data):
        return TicketWorkflow.escalate(
            ticket,
            request.user,
            data['to_role'],
            reason=data['reason'],
            notes=data['notes'],
            assigned_to_id=data.get('assigned_to_id'),
        )


class TransferTicketView(TicketActionView):
    """
    Scrutineers <-> Judgement handover.

    POST /api/v1/tickets/{id}/transfer/

    Request:
    {
        "to_role": "JUDGEMENT",
        "assigned_to_id": "uuid",
        "reason": "Technical check done"
    }
    """

    serializer_class = TransferSerializer

    def perform(self, request, ticket, data):
        return TicketWorkflow.transfer(
            ticket,
            request.user,
            data['to_role'],
            assigned_to_id=data.get('assigned_to_id'),
            reason=data['reason'],
            notes=data['notes'],
        )


class ReturnTicketView(TicketActionView):
    """
    POST /api/v1/tickets/{id}/return/

    Request:
    {
        "assigned_to_id": "uuid of a control officer",
        "reason": "Decision taken"
    }
    """

    serializer_class = ReturnSerializer

    def perform(self, request, ticket, data):
        return TicketWorkflow.return_to_control(
            ticket,
            request.user,
            assigned_to_id=data.get('assigned_to_id'),
            reason=data['reason'],
            notes=data['notes'],
        )


class ReopenTicketView(TicketActionView):
    """
    POST /api/v1/tickets/{id}/reopen/

    ADMIN or CHIEF_OF_CONTROL, CLOSED tickets only.
    """

    serializer_class = ReopenSerializer

    def perform(self, request, ticket, data):
        return TicketWorkflow.reopen(ticket, request.user, reason=data['reason'])


class CloseTicketView(TicketActionView):
    """
    POST /api/v1/tickets/{id}/close/

    Request:
    {
        "notes": "Drive-through penalty applied"
    }
    """

    serializer_class = CloseSerializer

    def perform(self, request, ticket, data):
        return TicketWorkflow.close(ticket, request.user, notes=data['notes'])


# =============================================================================
# COMMENTS AND ATTACHMENTS
# =============================================================================

class TicketCommentsView(views.APIView):
    """
    GET  /api/v1/tickets/{id}/comments/
    POST /api/v1/tickets/{id}/comments/

    Request:
    {
        "text": "Marshal confirmed debris cleared"
    }

    Comments are timeline entries (COMMENT_ADDED), newest first.
    """

    def get(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        comments = ticket.activity.filter(
            action=ActivityAction.COMMENT_ADDED
        ).select_related('actor')
        return Response(ActivityLogSerializer(comments, many=True).data)

    def post(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        serializer = CommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = TicketWorkflow.add_comment(ticket, request.user, serializer.validated_data['text'])
        return Response(ActivityLogSerializer(entry).data, status=status.HTTP_201_CREATED)


class TicketAttachmentsView(views.APIView):
    """
    GET  /api/v1/tickets/{id}/attachments/
    POST /api/v1/tickets/{id}/attachments/   (multipart, field "files")
    """

    parser_classes = [MultiPartParser, FormParser]

    def get(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        serializer = AttachmentSerializer(
            ticket.attachments.select_related('uploaded_by'),
            many=True,
            context={'request': request}
        )
        return Response(serializer.data)

    def post(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        files = request.FILES.getlist('files')
        attachments = TicketWorkflow.add_attachments(ticket, request.user, files)
        serializer = AttachmentSerializer(attachments, many=True, context={'request': request})
        return Response(serializer.data, status=status.HTTP_201_CREATED)


# =============================================================================
# MEDICAL ASSESSMENT
# =============================================================================

class MedicalReportView(views.APIView):
    """
    GET  /api/v1/tickets/{id}/medical-report/
    POST /api/v1/tickets/{id}/medical-report/

    Request:
    {
        "summary": "Mild concussion",
        "recommendation": "Not fit to race today",
        "license_action": "SUSPEND"
    }

    SUSPEND moves the ticket to ESCALATED, anything else to
    AWAITING_DECISION.
    """

    parser_classes = [JSONParser, FormParser, MultiPartParser]

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsMedicalAssessor()]
        return super().get_permissions()

    def get(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        report = ticket.get_report('medical_report')
        if report is None:
            raise ResourceNotFound('No medical report found')
        return Response(MedicalReportSerializer(report).data)

    def post(self, request, pk):
        ticket = get_visible_ticket(request, pk)
        serializer = MedicalReportSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        report = TicketWorkflow.submit_medical_report(
            ticket,
            request.user,
            dict(serializer.validated_data),
        )
        return Response(MedicalReportSerializer(report).data, status=status.HTTP_201_CREATED)
