"""
Export records.

Every generated PDF leaves a TicketExport behind. The token printed in the
PDF footer is looked up here by the public verification endpoint.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class TicketExportQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise PermissionError("Export records are immutable and cannot be updated.")

    def delete(self):
        raise PermissionError("Export records are immutable and cannot be deleted.")


class TicketExport(models.Model):
    """Append-only record of an exported ticket report."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    ticket = models.ForeignKey(
        'tickets.Ticket',
        on_delete=models.PROTECT,
        related_name='exports'
    )

    verify_token = models.CharField(max_length=16, unique=True)

    snapshot = models.JSONField(
        default=dict,
        help_text="Ticket state at export time"
    )

    exported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    objects = TicketExportQuerySet.as_manager()

    class Meta:
        db_table = 'ticket_exports'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.verify_token} ({self.ticket_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError("Export records are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Export records are immutable and cannot be deleted.")

    @staticmethod
    def snapshot_of(ticket):
        return {
            'id': str(ticket.id),
            'ticket_no': ticket.ticket_no,
            'type': ticket.type,
            'status': ticket.status,
            'escalated_to_role': ticket.escalated_to_role,
            'assigned_to': str(ticket.assigned_to_id) if ticket.assigned_to_id else None,
        }
