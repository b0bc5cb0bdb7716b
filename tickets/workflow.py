"""
Ticket workflow service.

All ticket mutations go through TicketWorkflow. Each operation:
1. checks the actor's role / ownership and raises WorkflowForbidden with a
   readable reason,
2. checks the status move against tickets.transitions and raises
   WorkflowConflict when it is not allowed,
3. writes the ticket row and its ActivityLog entry in one transaction,
4. fires notifications, which never fail the operation.

Usage:
    from tickets.workflow import TicketWorkflow

    ticket = TicketWorkflow.create_ticket(user, 'SPORT', fields)
    TicketWorkflow.escalate(ticket, officer, 'CHIEF_OF_CONTROL', reason='needs ruling')
    TicketWorkflow.close(ticket, chief)
"""

import logging
from types import MappingProxyType

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from authentication.models import User, UserRole, UserStatus
from core.exceptions import (
    ResourceNotFound,
    WorkflowConflict,
    WorkflowForbidden,
    WorkflowValidationError,
)
from notifications.services import NotificationService

from . import roles
from .models import (
    ActivityAction,
    ActivityLog,
    Attachment,
    AttachmentKind,
    ControlReport,
    LicenseAction,
    MedicalReport,
    PitGridReport,
    SafetyReport,
    Ticket,
    TicketStatus,
    TicketType,
)
from .transitions import EDITABLE_STATUSES, is_valid_transition

logger = logging.getLogger('incident.workflow')


# =============================================================================
# FIELD ALLOW-LISTS
# =============================================================================

TICKET_FIELDS = (
    'priority', 'event_name', 'venue', 'incident_date', 'incident_time',
    'location', 'post_number', 'description', 'drivers', 'witnesses',
    'reporter_name', 'reporter_signature', 'marshal_mobile',
)

EDITABLE_FIELDS = TICKET_FIELDS + ('status',)

MEDICAL_REPORT_FIELDS = (
    'patient_given_name', 'patient_surname', 'patient_name', 'patient_role',
    'patient_gender', 'patient_dob', 'car_number', 'motorsport_id',
    'permit_number', 'injury_type', 'consciousness_level', 'initial_condition',
    'treatment_given', 'transport_required', 'incident_description',
    'summary', 'recommendation', 'license_action',
)

CONTROL_REPORT_FIELDS = ('competitor_number', 'violation_type', 'lap_number', 'remarks')

SAFETY_REPORT_FIELDS = ('hazard_type', 'track_status', 'location_detail', 'action_taken')

PIT_GRID_REPORT_FIELDS = (
    'pit_number', 'session_category', 'car_number', 'lap_number',
    'speed_limit', 'speed_recorded', 'radar_operator_name',
    'radar_operator_phone', 'driving_on_white_line', 'refueling',
    'driver_change', 'excess_mechanics', 'remarks',
)

# report name -> (model, fields accepted from clients)
REPORT_SCHEMAS = MappingProxyType({
    'medical_report': (MedicalReport, MEDICAL_REPORT_FIELDS),
    'control_report': (ControlReport, CONTROL_REPORT_FIELDS),
    'safety_report': (SafetyReport, SAFETY_REPORT_FIELDS),
    'pit_grid_report': (PitGridReport, PIT_GRID_REPORT_FIELDS),
})

# Which report a ticket of each type may carry, in order of preference
REPORTS_BY_TYPE = MappingProxyType({
    TicketType.MEDICAL: ('medical_report',),
    TicketType.SPORT: ('pit_grid_report', 'control_report'),
    TicketType.SAFETY: ('safety_report',),
})

MAX_NUMBER_ATTEMPTS = 5


def pick_report(ticket_type, reports):
    """
    The nested report payload that belongs to ``ticket_type``.

    Returns (report name, allow-listed fields) or (None, None). Payloads for
    other ticket types and unknown keys are dropped.
    """
    for name in REPORTS_BY_TYPE[ticket_type]:
        payload = (reports or {}).get(name)
        if payload:
            _, allowed = REPORT_SCHEMAS[name]
            return name, {key: value for key, value in payload.items() if key in allowed}
    return None, None


def _notes(value):
    return value or 'N/A'


class TicketWorkflow:

    # =========================================================================
    # ACCESS
    # =========================================================================

    @classmethod
    def can_view(cls, user, ticket):
        if ticket.created_by_id is not None and ticket.created_by_id == user.id:
            return True
        if ticket.is_draft:
            return False
        if user.role in roles.OVERSIGHT:
            return True
        if ticket.assigned_to_id is not None and ticket.assigned_to_id == user.id:
            return True
        return user.role in roles.ALL_PROCESSORS or user.role in roles.DECISION_MAKERS

    @classmethod
    def ensure_can_view(cls, user, ticket):
        if cls.can_view(user, ticket):
            return
        if ticket.is_draft:
            raise WorkflowForbidden('Draft tickets are private.')
        raise WorkflowForbidden('Not authorized to view this ticket')

    @classmethod
    def can_edit(cls, user, ticket):
        if user.role == UserRole.ADMIN:
            return True
        if ticket.is_draft:
            return ticket.created_by_id == user.id
        if user.role in roles.PROCESSOR_GROUPS[ticket.type]:
            return True
        return user.role in roles.DECISION_MAKERS and ticket.assigned_to_id == user.id

    # =========================================================================
    # CREATION
    # =========================================================================

    @classmethod
    def create_ticket(cls, actor, requested_type, fields, reports=None, save_as_draft=False):
        """
        File a ticket as ``actor``.

        ``requested_type`` is honoured when the actor's role may file it,
        otherwise the role's primary type is used. The nested report for that
        type (if any) is created in the same transaction.
        """
        ticket_type = roles.can_create(actor.role, requested_type)
        if ticket_type is None:
            raise WorkflowForbidden(f"Your role ({actor.role}) cannot create tickets.")

        values = {key: value for key, value in fields.items() if key in TICKET_FIELDS}
        if not values.get('reporter_name'):
            values['reporter_name'] = actor.display_name
        if not values.get('marshal_mobile'):
            values['marshal_mobile'] = actor.mobile
        values['marshal_id'] = actor.marshal_id or ''

        ticket = cls._create(
            ticket_type=ticket_type,
            status=TicketStatus.DRAFT if save_as_draft else TicketStatus.OPEN,
            values=values,
            reports=reports,
            creator=actor,
            details=f"Ticket created ({ticket_type})",
        )
        logger.info(f"{ticket.ticket_no} created by {actor.id} ({actor.role}) as {ticket.status}")
        if not ticket.is_draft:
            cls._notify(NotificationService.notify_ticket_created, ticket)
        return ticket

    @classmethod
    def create_public_ticket(cls, ticket_type, values, reports, files=()):
        """
        Ticket from the public intake forms.

        No authenticated user: the ticket is linked to the marshal whose
        marshal id was entered, when one exists.
        """
        creator = None
        marshal_id = values.get('marshal_id')
        if marshal_id:
            creator = User.objects.filter(marshal_id=marshal_id).first()

        cls._check_upload_sizes(files)
        with transaction.atomic():
            ticket = cls._create(
                ticket_type=ticket_type,
                status=TicketStatus.OPEN,
                values=values,
                reports=reports,
                creator=creator,
                details=f"Ticket submitted via public intake ({ticket_type})",
            )
            if files:
                cls._store_attachments(ticket, None, files)

        logger.info(f"{ticket.ticket_no} submitted via public intake (marshal {marshal_id})")
        cls._notify(NotificationService.notify_ticket_created, ticket)
        return ticket

    @classmethod
    def _create(cls, ticket_type, status, values, reports, creator, details):
        report_name, report_fields = pick_report(ticket_type, reports)

        for attempt in range(MAX_NUMBER_ATTEMPTS):
            ticket_no = Ticket.generate_ticket_number(offset=attempt + 1)
            try:
                with transaction.atomic():
                    ticket = Ticket.objects.create(
                        ticket_no=ticket_no,
                        type=ticket_type,
                        status=status,
                        created_by=creator,
                        **values
                    )
                    if report_name:
                        model, _ = REPORT_SCHEMAS[report_name]
                        model.objects.create(ticket=ticket, author=creator, **report_fields)
                    ActivityLog.record(ticket, ActivityAction.TICKET_CREATED, actor=creator, details=details)
                return ticket
            except IntegrityError:
                if not Ticket.all_objects.filter(ticket_no=ticket_no).exists():
                    raise
                logger.warning(f"Ticket number {ticket_no} was taken concurrently, retrying")

        raise WorkflowConflict('Could not allocate a ticket number. Please retry.')

    # =========================================================================
    # STATUS CHANGES
    # =========================================================================

    @classmethod
    def _change_status(cls, ticket, actor, to_status, action, details, **changes):
        from_status = ticket.status
        if not is_valid_transition(from_status, to_status, actor.role):
            raise WorkflowConflict(f"Cannot move ticket from {from_status} to {to_status}.")

        with transaction.atomic():
            ticket.status = to_status
            for field, value in changes.items():
                setattr(ticket, field, value)
            ticket.save()
            ActivityLog.record(ticket, action, actor=actor, details=details)

        logger.info(
            f"{ticket.ticket_no}: {from_status} -> {to_status} "
            f"by {actor.id} ({actor.role})"
        )
        return ticket

    @classmethod
    def submit(cls, ticket, actor):
        """DRAFT -> OPEN, creator only."""
        if ticket.created_by_id != actor.id:
            raise WorkflowForbidden('Only creator can submit')
        if not ticket.is_draft:
            raise WorkflowConflict('Ticket is already submitted')

        cls._change_status(
            ticket, actor, TicketStatus.OPEN,
            ActivityAction.TICKET_SUBMITTED, 'Ticket submitted for processing',
        )
        cls._notify(NotificationService.notify_ticket_created, ticket)
        return ticket

    @classmethod
    def update_ticket(cls, ticket, actor, fields, reports=None):
        """
        Edit ticket details and, optionally, its specialized report.

        A plain edit may also move the status of a submitted ticket, but
        only into UNDER_REVIEW / AWAITING_MEDICAL / RESOLVED / OPEN. Drafts
        leave DRAFT through submit alone.
        """
        if not cls.can_edit(actor, ticket):
            raise WorkflowForbidden('Cannot edit this ticket in current status.')

        values = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        new_status = values.pop('status', None)
        from_status = ticket.status
        if new_status and new_status != from_status:
            if ticket.is_draft:
                raise WorkflowConflict('Draft tickets are sent for processing with submit.')
            if new_status not in EDITABLE_STATUSES or not is_valid_transition(from_status, new_status, actor.role):
                raise WorkflowConflict(f"Cannot move ticket from {from_status} to {new_status}.")

        report_name, report_fields = pick_report(ticket.type, reports)

        details = 'Details updated'
        with transaction.atomic():
            for field, value in values.items():
                setattr(ticket, field, value)
            if new_status and new_status != from_status:
                ticket.status = new_status
                details = f"Details updated. Status: {from_status} -> {new_status}"
            ticket.save()
            if report_name:
                cls._upsert_report(ticket, report_name, report_fields, actor)
            ActivityLog.record(ticket, ActivityAction.TICKET_UPDATED, actor=actor, details=details)

        return ticket

    @classmethod
    def escalate(cls, ticket, actor, to_role, reason='', notes='', assigned_to_id=None):
        """
        Hand the ticket to another role along the escalation graph.

        Without an assignee the ticket waits in the target role's queue
        (see tickets.visibility).
        """
        if not to_role or to_role not in UserRole.ALL:
            raise WorkflowValidationError('A valid target role is required.')

        if not roles.can_escalate(actor.role, to_role):
            raise WorkflowForbidden(
                f"Escalation not allowed. Your role ({actor.role}) cannot escalate to {to_role}."
            )

        changes = {'escalated_to_role': to_role}
        if assigned_to_id:
            assignee = cls._get_user(assigned_to_id)
            if assignee.role != to_role:
                raise WorkflowValidationError(f"Selected user does not hold the {to_role} role.")
            changes['assigned_to'] = assignee

        cls._change_status(
            ticket, actor, TicketStatus.ESCALATED, ActivityAction.TICKET_ESCALATED,
            f"Escalated to {to_role}. Reason: {_notes(reason)}. Notes: {_notes(notes)}",
            **changes
        )
        cls._notify(NotificationService.notify_ticket_escalated, ticket, actor, reason)
        return ticket

    @classmethod
    def transfer(cls, ticket, actor, to_role, assigned_to_id=None, reason='', notes=''):
        """Scrutineers <-> Judgement, always to a named user."""
        target_role = roles.TRANSFER_TARGETS.get(actor.role)
        if target_role is None:
            raise WorkflowForbidden('Only Scrutineers/Judgement can transfer.')
        if to_role != target_role:
            raise WorkflowForbidden(f"Your role ({actor.role}) can only transfer to {target_role}.")
        if not assigned_to_id:
            raise WorkflowValidationError('Must assign to a specific user.')

        assignee = cls._get_user(assigned_to_id)
        if assignee.role != target_role:
            raise WorkflowValidationError(f"Selected user does not hold the {target_role} role.")

        cls._change_status(
            ticket, actor, TicketStatus.AWAITING_DECISION, ActivityAction.TICKET_TRANSFERRED,
            f"Transferred to {to_role} ({assignee.display_name}). "
            f"Reason: {_notes(reason)}. Notes: {_notes(notes)}",
            assigned_to=assignee,
        )
        cls._notify(NotificationService.notify_ticket_assigned, ticket, actor, 'transferred')
        return ticket

    @classmethod
    def return_to_control(cls, ticket, actor, assigned_to_id=None, reason='', notes=''):
        """Scrutineers/Judgement hand a decision back to a control officer."""
        if actor.role not in roles.DECISION_MAKERS:
            raise WorkflowForbidden('Only Scrutineers/Judgement can return tickets to control.')
        if not assigned_to_id:
            raise WorkflowValidationError('Select a Control Officer to return to.')

        assignee = cls._get_user(assigned_to_id)
        if assignee.role not in roles.RETURN_TARGET_ROLES:
            raise WorkflowValidationError(
                'Tickets can only be returned to the Chief of Control '
                'or a Deputy Control Operation Officer.'
            )

        cls._change_status(
            ticket, actor, TicketStatus.RETURNED_TO_CONTROL, ActivityAction.TICKET_RETURNED,
            f"Returned to {assignee.role} ({assignee.display_name}). "
            f"Reason: {_notes(reason)}. Notes: {_notes(notes)}",
            assigned_to=assignee,
        )
        cls._notify(NotificationService.notify_ticket_assigned, ticket, actor, 'returned to you')
        return ticket

    @classmethod
    def reopen(cls, ticket, actor, reason=''):
        """
        CLOSED -> REOPENED.

        The Chief of Control takes the ticket. An admin reopening it assigns
        it to the first active Chief of Control.
        """
        if actor.role not in roles.OVERSIGHT:
            raise WorkflowForbidden('Only Admin or Chief of Control can reopen tickets.')
        if not ticket.is_closed:
            raise WorkflowConflict('Ticket is not closed.')

        if actor.role == UserRole.CHIEF_OF_CONTROL:
            assignee = actor
        else:
            assignee = User.objects.filter(
                role=UserRole.CHIEF_OF_CONTROL,
                status=UserStatus.ACTIVE,
                is_active=True,
            ).order_by('created_at').first()
            if assignee is None:
                raise ResourceNotFound('No Chief of Control found to assign the ticket to.')

        cls._change_status(
            ticket, actor, TicketStatus.REOPENED, ActivityAction.TICKET_REOPENED,
            f"Ticket reopened and assigned to {assignee.display_name}. Reason: {_notes(reason)}",
            assigned_to=assignee,
            closed_at=None,
            closed_by='',
            closed_by_role='',
        )
        if assignee != actor:
            cls._notify(NotificationService.notify_ticket_assigned, ticket, actor, 'reopened')
        return ticket

    @classmethod
    def close(cls, ticket, actor, notes=''):
        role = actor.role
        if role not in roles.ALLOWED_CLOSERS:
            raise WorkflowForbidden('Not authorized to close tickets')
        if ticket.is_closed:
            raise WorkflowConflict('Ticket is already closed.')
        if role not in roles.SUPER_CLOSERS:
            in_queue = ticket.escalated_to_role == role or ticket.assigned_to_id == actor.id
            if not in_queue:
                raise WorkflowForbidden('You can only close tickets escalated or assigned to you.')

        details = 'Ticket closed'
        if notes:
            details = f"Ticket closed. Notes: {notes}"

        cls._change_status(
            ticket, actor, TicketStatus.CLOSED, ActivityAction.TICKET_CLOSED, details,
            closed_at=timezone.now(),
            closed_by=actor.display_name,
            closed_by_role=role,
        )
        cls._notify(NotificationService.notify_ticket_closed, ticket, actor)
        return ticket

    # =========================================================================
    # MEDICAL ASSESSMENT
    # =========================================================================

    @classmethod
    def submit_medical_report(cls, ticket, actor, fields):
        """
        Create or update the medical report of a MEDICAL ticket.

        The original author is kept on update. A licence suspension sends the
        ticket to ESCALATED, anything else to AWAITING_DECISION.
        """
        if ticket.type != TicketType.MEDICAL:
            raise WorkflowConflict('Medical reports can only be filed on MEDICAL tickets.')

        values = {key: value for key, value in fields.items() if key in MEDICAL_REPORT_FIELDS}
        license_action = values.get('license_action') or LicenseAction.NONE
        values['license_action'] = license_action

        if license_action == LicenseAction.SUSPEND:
            to_status = TicketStatus.ESCALATED
        else:
            to_status = TicketStatus.AWAITING_DECISION

        if not is_valid_transition(ticket.status, to_status, actor.role):
            raise WorkflowConflict(f"Cannot move ticket from {ticket.status} to {to_status}.")

        with transaction.atomic():
            report = cls._upsert_report(ticket, 'medical_report', values, actor)
            cls._change_status(
                ticket, actor, to_status, ActivityAction.MEDICAL_REPORT_SUBMITTED,
                f"Medical report submitted. License Action: {license_action}. "
                f"Recommendation: {_notes(values.get('recommendation'))}",
            )
        return report

    @classmethod
    def _upsert_report(cls, ticket, name, values, actor):
        model, _ = REPORT_SCHEMAS[name]
        existing = ticket.specialized_report
        if existing is not None and not isinstance(existing, model):
            raise WorkflowValidationError(
                f"Ticket already has a {existing._meta.verbose_name}."
            )

        if existing is None:
            return model.objects.create(ticket=ticket, author=actor, **values)

        for field, value in values.items():
            setattr(existing, field, value)
        existing.save()
        return existing

    # =========================================================================
    # COMMENTS AND ATTACHMENTS
    # =========================================================================

    @classmethod
    def add_comment(cls, ticket, actor, text):
        text = (text or '').strip()
        if not text:
            raise WorkflowValidationError('Comment text is required')
        if ticket.is_closed:
            raise WorkflowConflict('Cannot comment on a closed ticket.')
        return ActivityLog.record(ticket, ActivityAction.COMMENT_ADDED, actor=actor, details=text)

    @classmethod
    def add_attachments(cls, ticket, actor, files):
        if not files:
            raise WorkflowValidationError('No files uploaded')
        if ticket.is_closed:
            raise WorkflowConflict('Cannot add attachments to a closed ticket.')

        with transaction.atomic():
            attachments = cls._store_attachments(ticket, actor, files)
            ActivityLog.record(
                ticket, ActivityAction.ATTACHMENT_ADDED, actor=actor,
                details=f"Uploaded {len(attachments)} attachments",
            )
        return attachments

    @classmethod
    def _check_upload_sizes(cls, files):
        max_size = settings.ATTACHMENT_MAX_UPLOAD_SIZE
        for uploaded in files:
            if uploaded.size > max_size:
                raise WorkflowValidationError(
                    f"{uploaded.name} exceeds the {max_size // (1024 * 1024)} MB upload limit."
                )

    @classmethod
    def _store_attachments(cls, ticket, actor, files):
        cls._check_upload_sizes(files)

        start = Attachment.all_objects.filter(ticket=ticket).count()
        attachments = []
        for index, uploaded in enumerate(files, start=1):
            mime_type = getattr(uploaded, 'content_type', '') or ''
            attachments.append(Attachment.objects.create(
                ticket=ticket,
                file=uploaded,
                kind=AttachmentKind.from_mime_type(mime_type),
                original_name=uploaded.name,
                mime_type=mime_type,
                size=uploaded.size,
                ref_id=f"{ticket.ticket_no}-A{start + index}",
                uploaded_by=actor,
            ))
        return attachments

    # =========================================================================
    # HELPERS
    # =========================================================================

    @classmethod
    def _get_user(cls, user_id):
        try:
            return User.objects.get(id=user_id)
        except (User.DoesNotExist, DjangoValidationError, ValueError):
            raise ResourceNotFound('Assigned user not found.')

    @classmethod
    def _notify(cls, method, *args):
        """Notifications are best effort: logged, never raised."""
        try:
            with transaction.atomic():
                method(*args)
        except Exception:
            logger.exception(f"Notification {method.__name__} failed")
