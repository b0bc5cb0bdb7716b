"""
In-app notifications.

Written by NotificationService when a ticket lands in someone's queue;
read and dismissed through /api/v1/notifications/.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class NotificationType:
    TICKET_CREATED = 'TICKET_CREATED'
    TICKET_ESCALATED = 'TICKET_ESCALATED'
    TICKET_ASSIGNED = 'TICKET_ASSIGNED'
    TICKET_CLOSED = 'TICKET_CLOSED'

    CHOICES = [
        (TICKET_CREATED, 'New ticket'),
        (TICKET_ESCALATED, 'Ticket escalated'),
        (TICKET_ASSIGNED, 'Ticket assigned'),
        (TICKET_CLOSED, 'Ticket closed'),
    ]


class Notification(BaseModel):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    ticket = models.ForeignKey(
        'tickets.Ticket',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications'
    )

    notification_type = models.CharField(
        max_length=24,
        choices=NotificationType.CHOICES,
        db_index=True
    )

    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)

    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='notif_recipient_read_idx'),
        ]

    def __str__(self):
        return f"{self.title} -> {self.recipient_id}"

    def mark_as_read(self):
        if self.is_read:
            return
        self.is_read = True
        self.read_at = timezone.now()
        self.save(update_fields=['is_read', 'read_at', 'updated_at'])
