"""
Export views.

Provides API endpoints for:
- PDF report of a single ticket
- Excel spreadsheet of all tickets in a date range (oversight roles)
- Public verification of a printed report token
"""

import logging

from django.db import IntegrityError, transaction
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.permissions import IsAdminOrChiefOfControl
from core.exceptions import WorkflowValidationError
from tickets.models import Ticket
from tickets.views import detail_queryset, get_visible_ticket

from .excel import build_ticket_workbook
from .models import TicketExport
from .pdf import TicketReportRenderer, generate_verify_token

logger = logging.getLogger('incident.exports')

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
TOKEN_ATTEMPTS = 5


def unused_verify_token():
    for _ in range(TOKEN_ATTEMPTS):
        token = generate_verify_token()
        if not TicketExport.objects.filter(verify_token=token).exists():
            return token
    raise IntegrityError('Could not allocate a unique verification token')


class ExportPdfView(views.APIView):
    """
    Render a ticket to PDF.

    POST /api/v1/tickets/{id}/export-pdf/

    Returns application/pdf as an attachment (report-<ticket no>.pdf).
    The PDF is fully rendered before the response is built, so a rendering
    failure still comes back as a JSON error. Recording the export is
    best effort: a failure there is logged and the PDF is still returned.
    """

    def post(self, request, pk):
        ticket = get_visible_ticket(request, pk, detail_queryset())
        token = unused_verify_token()

        pdf_bytes = TicketReportRenderer(ticket, token).render()

        response = HttpResponse(pdf_bytes, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="report-{ticket.ticket_no}.pdf"'
        response['Content-Length'] = str(len(pdf_bytes))

        try:
            with transaction.atomic():
                TicketExport.objects.create(
                    ticket=ticket,
                    verify_token=token,
                    snapshot=TicketExport.snapshot_of(ticket),
                    exported_by=request.user,
                )
        except Exception:
            logger.exception(f"Could not record export of {ticket.ticket_no} (token {token})")
        else:
            logger.info(f"{ticket.ticket_no} exported to PDF by {request.user.id}, token {token}")

        return response


class ExportExcelView(views.APIView):
    """
    Export tickets to Excel.

    GET /api/v1/tickets/export-excel/?start_date=2026-05-01&end_date=2026-05-31

    Both dates optional and inclusive. ADMIN and CHIEF_OF_CONTROL only.
    """

    permission_classes = [IsAdminOrChiefOfControl]

    def _date_param(self, request, name):
        value = request.query_params.get(name)
        if not value:
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise WorkflowValidationError(f"Invalid {name}. Use YYYY-MM-DD.")
        return parsed

    def get(self, request):
        start_date = self._date_param(request, 'start_date')
        end_date = self._date_param(request, 'end_date')

        tickets = Ticket.objects.select_related(
            'created_by', 'assigned_to', 'medical_report', 'pit_grid_report'
        ).order_by('-created_at')
        if start_date:
            tickets = tickets.filter(created_at__date__gte=start_date)
        if end_date:
            tickets = tickets.filter(created_at__date__lte=end_date)

        wb = build_ticket_workbook(tickets)

        filename = f"tickets_export_{timezone.localtime().strftime('%Y%m%d_%H%M%S')}.xlsx"
        response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        wb.save(response)

        logger.info(f"Excel export by {request.user.id}: {start_date} - {end_date}")
        return response


class VerifyReportView(views.APIView):
    """
    Check a token printed on a PDF report.

    GET /api/v1/verify/{token}/

    Response:
    {
        "valid": true,
        "ticket_no": "INC-2026-00042",
        "type": "SPORT",
        "status": "CLOSED",
        "created_at": "2026-05-04T10:12:00Z",
        "reporter": "Sport Marshal"
    }

    Unknown tokens are a normal answer, not an error:
    {
        "valid": false,
        "message": "Invalid or expired report token"
    }
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, token):
        export = TicketExport.objects.select_related(
            'ticket', 'ticket__created_by'
        ).filter(verify_token=token.strip().upper()).first()

        if export is None:
            logger.warning(f"Verification failed for token {token!r}")
            return Response({
                'valid': False,
                'message': 'Invalid or expired report token',
            })

        ticket = export.ticket
        if ticket.created_by_id:
            reporter = ticket.created_by.display_name
        else:
            reporter = ticket.reporter_name or 'Unknown'

        return Response({
            'valid': True,
            'ticket_no': ticket.ticket_no,
            'type': ticket.type,
            'status': ticket.status,
            'created_at': ticket.created_at.isoformat(),
            'reporter': reporter,
            'exported_at': export.created_at.isoformat(),
        })
