"""
Notification service.

Recipients are resolved from the ticket: the assignee when there is one,
otherwise every active user holding the role the ticket now waits on.
The acting user never notifies themselves.
"""

import logging

from django.utils import timezone

from authentication.models import User, UserStatus

from .models import Notification, NotificationType

logger = logging.getLogger('incident.workflow')


class NotificationService:

    @classmethod
    def _users_with_roles(cls, roles):
        return User.objects.filter(
            role__in=list(roles),
            status=UserStatus.ACTIVE,
            is_active=True,
        )

    @classmethod
    def _bulk_notify(cls, recipients, ticket, notification_type, title, message, exclude=None):
        notifications = [
            Notification(
                recipient=recipient,
                ticket=ticket,
                notification_type=notification_type,
                title=title,
                message=message,
            )
            for recipient in recipients
            if exclude is None or recipient.id != exclude.id
        ]
        if notifications:
            Notification.objects.bulk_create(notifications)
        logger.info(f"{notification_type} for {ticket.ticket_no}: {len(notifications)} recipients")
        return len(notifications)

    @classmethod
    def notify_ticket_created(cls, ticket):
        """A new (or just submitted) ticket lands in its department's queue."""
        from tickets.roles import PROCESSOR_GROUPS

        return cls._bulk_notify(
            cls._users_with_roles(PROCESSOR_GROUPS[ticket.type]),
            ticket,
            NotificationType.TICKET_CREATED,
            f"New {ticket.type.lower()} ticket {ticket.ticket_no}",
            ticket.description[:200],
            exclude=ticket.created_by,
        )

    @classmethod
    def notify_ticket_escalated(cls, ticket, actor, reason=''):
        if ticket.assigned_to_id and ticket.assigned_to.role == ticket.escalated_to_role:
            recipients = [ticket.assigned_to]
        else:
            recipients = cls._users_with_roles([ticket.escalated_to_role])

        return cls._bulk_notify(
            recipients,
            ticket,
            NotificationType.TICKET_ESCALATED,
            f"{ticket.ticket_no} escalated to {ticket.escalated_to_role}",
            reason or f"Escalated by {actor.display_name}",
            exclude=actor,
        )

    @classmethod
    def notify_ticket_assigned(cls, ticket, actor, verb='assigned'):
        if not ticket.assigned_to_id:
            return 0
        return cls._bulk_notify(
            [ticket.assigned_to],
            ticket,
            NotificationType.TICKET_ASSIGNED,
            f"{ticket.ticket_no} {verb}",
            f"{actor.display_name} ({actor.role}) {verb} ticket {ticket.ticket_no}.",
            exclude=actor,
        )

    @classmethod
    def notify_ticket_closed(cls, ticket, actor):
        if not ticket.created_by_id:
            return 0
        return cls._bulk_notify(
            [ticket.created_by],
            ticket,
            NotificationType.TICKET_CLOSED,
            f"{ticket.ticket_no} closed",
            f"Closed by {ticket.closed_by} ({ticket.closed_by_role}).",
            exclude=actor,
        )

    @classmethod
    def get_unread_count(cls, user):
        return Notification.objects.filter(recipient=user, is_read=False).count()

    @classmethod
    def mark_all_read(cls, user):
        return Notification.objects.filter(recipient=user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
            updated_at=timezone.now(),
        )
