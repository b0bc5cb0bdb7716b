"""
Ticket models.

Contains:
- Ticket: an incident filed by a marshal or official, routed through the
  department workflow (see tickets.workflow)
- MedicalReport / ControlReport / SafetyReport / PitGridReport: the
  type-specific details, at most one per ticket
- Attachment: photos, videos and documents uploaded against a ticket
- ActivityLog: append-only timeline of everything that happened to a ticket
"""

import os
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from authentication.models import UserRole
from core.models import BaseModel


class TicketType:
    """Department a ticket belongs to."""
    MEDICAL = 'MEDICAL'
    SPORT = 'SPORT'
    SAFETY = 'SAFETY'

    CHOICES = [
        (MEDICAL, 'Medical'),
        (SPORT, 'Sport / Race Control'),
        (SAFETY, 'Safety'),
    ]

    ALL = [MEDICAL, SPORT, SAFETY]


class TicketStatus:
    """
    Ticket lifecycle status constants.

    Allowed moves between them are listed in tickets.transitions.
    """
    DRAFT = 'DRAFT'
    OPEN = 'OPEN'
    UNDER_REVIEW = 'UNDER_REVIEW'
    ESCALATED = 'ESCALATED'
    AWAITING_DECISION = 'AWAITING_DECISION'
    AWAITING_MEDICAL = 'AWAITING_MEDICAL'
    RETURNED_TO_CONTROL = 'RETURNED_TO_CONTROL'
    REOPENED = 'REOPENED'
    RESOLVED = 'RESOLVED'
    CLOSED = 'CLOSED'

    CHOICES = [
        (DRAFT, 'Draft'),
        (OPEN, 'Open'),
        (UNDER_REVIEW, 'Under Review'),
        (ESCALATED, 'Escalated'),
        (AWAITING_DECISION, 'Awaiting Decision'),
        (AWAITING_MEDICAL, 'Awaiting Medical'),
        (RETURNED_TO_CONTROL, 'Returned to Control'),
        (REOPENED, 'Reopened'),
        (RESOLVED, 'Resolved'),
        (CLOSED, 'Closed'),
    ]

    ALL = [value for value, _ in CHOICES]

    # Anything that is neither a private draft nor closed
    ACTIVE = [
        OPEN, UNDER_REVIEW, ESCALATED, AWAITING_DECISION, AWAITING_MEDICAL,
        RETURNED_TO_CONTROL, REOPENED, RESOLVED,
    ]


class TicketPriority:
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'
    CRITICAL = 'CRITICAL'

    CHOICES = [
        (LOW, 'Low'),
        (MEDIUM, 'Medium'),
        (HIGH, 'High'),
        (CRITICAL, 'Critical'),
    ]


class Ticket(BaseModel):
    """
    Incident ticket.

    ticket_no is the human readable reference (INC-<year>-<5 digits>) that
    appears on radio calls, printed reports and spreadsheets.
    """

    NUMBER_PREFIX = 'INC'

    ticket_no = models.CharField(
        max_length=24,
        unique=True,
        editable=False,
        help_text="Human readable reference, e.g. INC-2026-00042"
    )

    type = models.CharField(
        max_length=10,
        choices=TicketType.CHOICES,
        db_index=True
    )

    status = models.CharField(
        max_length=24,
        choices=TicketStatus.CHOICES,
        default=TicketStatus.OPEN,
        db_index=True
    )

    priority = models.CharField(
        max_length=10,
        choices=TicketPriority.CHOICES,
        default=TicketPriority.MEDIUM
    )

    # Where and when
    event_name = models.CharField(max_length=200, blank=True)
    venue = models.CharField(max_length=200, blank=True)
    incident_date = models.DateField(null=True, blank=True)
    incident_time = models.CharField(max_length=20, blank=True)
    location = models.CharField(max_length=255, blank=True)
    post_number = models.CharField(max_length=50, blank=True)

    description = models.TextField(blank=True)
    drivers = models.JSONField(default=list, blank=True)
    witnesses = models.JSONField(default=list, blank=True)

    # Reporter as printed on the form
    reporter_name = models.CharField(max_length=150, blank=True)
    reporter_signature = models.TextField(
        blank=True,
        help_text="Signature image as a data URL"
    )
    marshal_id = models.CharField(max_length=50, blank=True)
    marshal_mobile = models.CharField(max_length=30, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='tickets_created',
        help_text="Empty for public intake submissions from unknown marshals"
    )

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tickets_assigned'
    )

    escalated_to_role = models.CharField(
        max_length=32,
        choices=UserRole.CHOICES,
        blank=True,
        db_index=True,
        help_text="Role whose queue the ticket was last escalated to"
    )

    # Closure stamp
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.CharField(max_length=150, blank=True)
    closed_by_role = models.CharField(max_length=32, blank=True)

    class Meta:
        db_table = 'tickets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['type', 'status'], name='tickets_type_status_idx'),
            models.Index(fields=['created_by', 'status'], name='tickets_creator_status_idx'),
            models.Index(fields=['assigned_to', 'status'], name='tickets_assignee_status_idx'),
        ]

    def __str__(self):
        return f"{self.ticket_no} ({self.type}, {self.status})"

    @classmethod
    def generate_ticket_number(cls, offset=1):
        """
        Next free ticket number.

        Starts at the total ticket count plus ``offset`` and probes upwards
        past numbers already taken. Callers still have to handle the unique
        constraint firing when two requests allocate at the same time.
        """
        prefix = f"{cls.NUMBER_PREFIX}-{timezone.now().year}-"
        seq = cls.all_objects.count() + offset
        candidate = f"{prefix}{seq:05d}"
        while cls.all_objects.filter(ticket_no=candidate).exists():
            seq += 1
            candidate = f"{prefix}{seq:05d}"
        return candidate

    @property
    def is_draft(self):
        return self.status == TicketStatus.DRAFT

    @property
    def is_closed(self):
        return self.status == TicketStatus.CLOSED

    def get_report(self, name):
        """Related specialized report or None (reverse one-to-one raises otherwise)."""
        try:
            return getattr(self, name)
        except models.ObjectDoesNotExist:
            return None

    @property
    def specialized_report(self):
        for name in ('medical_report', 'control_report', 'pit_grid_report', 'safety_report'):
            report = self.get_report(name)
            if report is not None:
                return report
        return None


# =============================================================================
# SPECIALIZED REPORTS
# =============================================================================

class SpecializedReport(BaseModel):
    """Common columns of the per-type report records."""

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        abstract = True


class LicenseAction:
    NONE = 'NONE'
    CLEAR = 'CLEAR'
    WARNING = 'WARNING'
    SUSPEND = 'SUSPEND'

    CHOICES = [
        (NONE, 'None'),
        (CLEAR, 'Cleared to race'),
        (WARNING, 'Warning / review'),
        (SUSPEND, 'Suspend licence'),
    ]

    # No alert box on the printed report for these
    NO_ACTION = [NONE, CLEAR]


class MedicalReport(SpecializedReport):
    """Patient details and the medical department's assessment."""

    ticket = models.OneToOneField(Ticket, on_delete=models.CASCADE, related_name='medical_report')

    # Patient
    patient_given_name = models.CharField(max_length=100, blank=True)
    patient_surname = models.CharField(max_length=100, blank=True)
    patient_name = models.CharField(max_length=200, blank=True)
    patient_role = models.CharField(max_length=50, blank=True)
    patient_gender = models.CharField(max_length=20, blank=True)
    patient_dob = models.DateField(null=True, blank=True)
    car_number = models.CharField(max_length=20, blank=True)
    motorsport_id = models.CharField(max_length=50, blank=True)
    permit_number = models.CharField(max_length=50, blank=True)

    # Condition on scene
    injury_type = models.CharField(max_length=100, blank=True)
    consciousness_level = models.CharField(max_length=30, blank=True)
    initial_condition = models.TextField(blank=True)
    treatment_given = models.TextField(blank=True)
    transport_required = models.BooleanField(default=False)
    incident_description = models.TextField(blank=True)

    # Assessment
    summary = models.TextField(blank=True)
    recommendation = models.TextField(blank=True)
    license_action = models.CharField(
        max_length=10,
        choices=LicenseAction.CHOICES,
        default=LicenseAction.NONE
    )

    class Meta:
        db_table = 'medical_reports'

    def __str__(self):
        return f"Medical report for {self.ticket.ticket_no}"

    @property
    def patient_full_name(self):
        full = f"{self.patient_given_name} {self.patient_surname}".strip()
        return full or self.patient_name


class ControlReport(SpecializedReport):
    """Race control observation filed through the public control form."""

    ticket = models.OneToOneField(Ticket, on_delete=models.CASCADE, related_name='control_report')

    competitor_number = models.CharField(max_length=20, blank=True)
    violation_type = models.CharField(max_length=100, blank=True)
    lap_number = models.PositiveIntegerField(default=0)
    remarks = models.TextField(blank=True)

    class Meta:
        db_table = 'control_reports'

    def __str__(self):
        return f"Control report for {self.ticket.ticket_no}"


class TrackStatus:
    GREEN = 'GREEN'
    YELLOW = 'YELLOW'
    RED = 'RED'

    CHOICES = [
        (GREEN, 'Green'),
        (YELLOW, 'Yellow'),
        (RED, 'Red'),
    ]


class SafetyReport(SpecializedReport):
    """Track hazard report."""

    ticket = models.OneToOneField(Ticket, on_delete=models.CASCADE, related_name='safety_report')

    hazard_type = models.CharField(max_length=100, blank=True)
    track_status = models.CharField(max_length=10, choices=TrackStatus.CHOICES, blank=True)
    location_detail = models.CharField(max_length=255, blank=True)
    action_taken = models.TextField(blank=True)

    class Meta:
        db_table = 'safety_reports'

    def __str__(self):
        return f"Safety report for {self.ticket.ticket_no}"


class PitGridReport(SpecializedReport):
    """Pit lane / grid infringement (speeding, unsafe release, refuelling)."""

    ticket = models.OneToOneField(Ticket, on_delete=models.CASCADE, related_name='pit_grid_report')

    pit_number = models.CharField(max_length=20, blank=True)
    session_category = models.CharField(max_length=50, blank=True)
    car_number = models.CharField(max_length=20, blank=True)
    lap_number = models.PositiveIntegerField(null=True, blank=True)
    speed_limit = models.CharField(max_length=20, blank=True)
    speed_recorded = models.CharField(max_length=20, blank=True)
    radar_operator_name = models.CharField(max_length=150, blank=True)
    radar_operator_phone = models.CharField(max_length=30, blank=True)
    driving_on_white_line = models.BooleanField(default=False)
    refueling = models.BooleanField(default=False)
    driver_change = models.BooleanField(default=False)
    excess_mechanics = models.BooleanField(default=False)
    remarks = models.TextField(blank=True)

    class Meta:
        db_table = 'pit_grid_reports'

    def __str__(self):
        return f"Pit/grid report for {self.ticket.ticket_no}"

    @property
    def violations(self):
        labels = [
            (self.driving_on_white_line, 'Driving on white line'),
            (self.refueling, 'Refuelling'),
            (self.driver_change, 'Driver change'),
            (self.excess_mechanics, 'Excess mechanics'),
        ]
        return [label for flagged, label in labels if flagged]


# =============================================================================
# ATTACHMENTS
# =============================================================================

class AttachmentKind:
    IMAGE = 'IMAGE'
    VIDEO = 'VIDEO'
    DOCUMENT = 'DOCUMENT'

    CHOICES = [
        (IMAGE, 'Image'),
        (VIDEO, 'Video'),
        (DOCUMENT, 'Document'),
    ]

    @classmethod
    def from_mime_type(cls, mime_type):
        mime_type = (mime_type or '').lower()
        if mime_type.startswith('image/'):
            return cls.IMAGE
        if mime_type.startswith('video/'):
            return cls.VIDEO
        return cls.DOCUMENT


def attachment_path(instance, filename):
    """
    Storage path: attachments/<ticket uuid>/<attachment uuid>.<ext>

    The original filename is kept on the record, not in the path.
    """
    ext = os.path.splitext(filename)[1].lower() or '.bin'
    return os.path.join('attachments', str(instance.ticket_id), f"{instance.id}{ext}")


class Attachment(BaseModel):
    """File uploaded against a ticket."""

    ticket = models.ForeignKey(Ticket, on_delete=models.PROTECT, related_name='attachments')
    file = models.FileField(upload_to=attachment_path, max_length=255)
    kind = models.CharField(max_length=10, choices=AttachmentKind.CHOICES, db_index=True)
    original_name = models.CharField(max_length=255, blank=True)
    mime_type = models.CharField(max_length=100, blank=True)
    size = models.PositiveIntegerField(default=0)
    ref_id = models.CharField(
        max_length=40,
        blank=True,
        db_index=True,
        help_text="Human readable reference, e.g. INC-2026-00042-A3"
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        db_table = 'ticket_attachments'
        ordering = ['created_at']

    def __str__(self):
        return self.ref_id or f"Attachment {self.id}"

    @property
    def url(self):
        return self.file.url if self.file else ''


# =============================================================================
# ACTIVITY LOG
# =============================================================================

class ActivityAction:
    TICKET_CREATED = 'TICKET_CREATED'
    TICKET_SUBMITTED = 'TICKET_SUBMITTED'
    TICKET_UPDATED = 'TICKET_UPDATED'
    TICKET_ESCALATED = 'TICKET_ESCALATED'
    TICKET_TRANSFERRED = 'TICKET_TRANSFERRED'
    TICKET_RETURNED = 'TICKET_RETURNED'
    TICKET_REOPENED = 'TICKET_REOPENED'
    TICKET_CLOSED = 'TICKET_CLOSED'
    COMMENT_ADDED = 'COMMENT_ADDED'
    ATTACHMENT_ADDED = 'ATTACHMENT_ADDED'
    MEDICAL_REPORT_SUBMITTED = 'MEDICAL_REPORT_SUBMITTED'

    CHOICES = [
        (TICKET_CREATED, 'Ticket created'),
        (TICKET_SUBMITTED, 'Ticket submitted'),
        (TICKET_UPDATED, 'Ticket updated'),
        (TICKET_ESCALATED, 'Ticket escalated'),
        (TICKET_TRANSFERRED, 'Ticket transferred'),
        (TICKET_RETURNED, 'Ticket returned to control'),
        (TICKET_REOPENED, 'Ticket reopened'),
        (TICKET_CLOSED, 'Ticket closed'),
        (COMMENT_ADDED, 'Comment'),
        (ATTACHMENT_ADDED, 'Attachments added'),
        (MEDICAL_REPORT_SUBMITTED, 'Medical report submitted'),
    ]


class ActivityLogQuerySet(models.QuerySet):
    """Bulk modifications are refused."""

    def update(self, **kwargs):
        raise PermissionError("Activity logs are immutable and cannot be updated.")

    def delete(self):
        raise PermissionError("Activity logs are immutable and cannot be deleted.")


class ActivityLog(models.Model):
    """
    Append-only timeline entry.

    Not a BaseModel: entries are never updated, soft-deleted or removed.
    Comments are stored here too (action COMMENT_ADDED, text in details).
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    ticket = models.ForeignKey(Ticket, on_delete=models.PROTECT, related_name='activity')

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        help_text="Empty for public intake submissions"
    )

    action = models.CharField(max_length=32, choices=ActivityAction.CHOICES, db_index=True)
    details = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True, editable=False)

    objects = ActivityLogQuerySet.as_manager()

    class Meta:
        db_table = 'ticket_activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['ticket', 'created_at'], name='activity_ticket_created_idx'),
        ]

    def __str__(self):
        return f"{self.ticket.ticket_no}: {self.action}"

    def save(self, *args, **kwargs):
        """Only allows creation, not updates."""
        if not self._state.adding:
            raise PermissionError("Activity logs are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Activity logs are immutable and cannot be deleted.")

    @classmethod
    def record(cls, ticket, action, actor=None, details=''):
        return cls.objects.create(
            ticket=ticket,
            action=action,
            actor=actor,
            details=details,
        )
