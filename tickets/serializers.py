"""
Serializers for tickets.

Handles:
- Ticket listing and detail (reports, attachments and timeline nested)
- Ticket creation and editing, including the nested specialized report
- Workflow action payloads (escalate, transfer, return, reopen, close, comment)
- Public intake forms

Writes never save models directly: validated data is handed to
tickets.workflow.TicketWorkflow, which owns every mutation.
"""

from django.utils import timezone
from rest_framework import serializers

from authentication.serializers import UserSummarySerializer

from .models import (
    ActivityLog,
    Attachment,
    ControlReport,
    MedicalReport,
    PitGridReport,
    SafetyReport,
    Ticket,
    TicketPriority,
    TicketStatus,
    TicketType,
    TrackStatus,
)
from .workflow import (
    CONTROL_REPORT_FIELDS,
    MEDICAL_REPORT_FIELDS,
    PIT_GRID_REPORT_FIELDS,
    REPORT_SCHEMAS,
    SAFETY_REPORT_FIELDS,
    TicketWorkflow,
)


# =============================================================================
# SPECIALIZED REPORTS
# =============================================================================

REPORT_META_FIELDS = ['id', 'author_name', 'created_at', 'updated_at']


class _ReportSerializer(serializers.ModelSerializer):
    """Base for the per-type reports; doubles as the nested input schema."""

    author_name = serializers.SerializerMethodField()

    def get_author_name(self, obj):
        return obj.author.display_name if obj.author_id else None


class MedicalReportSerializer(_ReportSerializer):
    patient_full_name = serializers.CharField(read_only=True)

    class Meta:
        model = MedicalReport
        fields = REPORT_META_FIELDS + list(MEDICAL_REPORT_FIELDS) + ['patient_full_name']
        read_only_fields = ['id', 'created_at', 'updated_at']


class ControlReportSerializer(_ReportSerializer):

    class Meta:
        model = ControlReport
        fields = REPORT_META_FIELDS + list(CONTROL_REPORT_FIELDS)
        read_only_fields = ['id', 'created_at', 'updated_at']


class SafetyReportSerializer(_ReportSerializer):

    class Meta:
        model = SafetyReport
        fields = REPORT_META_FIELDS + list(SAFETY_REPORT_FIELDS)
        read_only_fields = ['id', 'created_at', 'updated_at']


class PitGridReportSerializer(_ReportSerializer):
    violations = serializers.ListField(read_only=True)

    class Meta:
        model = PitGridReport
        fields = REPORT_META_FIELDS + list(PIT_GRID_REPORT_FIELDS) + ['violations']
        read_only_fields = ['id', 'created_at', 'updated_at']


# =============================================================================
# READ SERIALIZERS
# =============================================================================

class AttachmentSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()
    uploaded_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = Attachment
        fields = [
            'id',
            'ref_id',
            'kind',
            'original_name',
            'mime_type',
            'size',
            'url',
            'uploaded_by',
            'created_at',
        ]
        read_only_fields = fields

    def get_url(self, obj):
        request = self.context.get('request')
        if request is not None and obj.url:
            return request.build_absolute_uri(obj.url)
        return obj.url


class ActivityLogSerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source='get_action_display', read_only=True)
    actor = UserSummarySerializer(read_only=True)

    class Meta:
        model = ActivityLog
        fields = ['id', 'action', 'action_display', 'details', 'actor', 'created_at']
        read_only_fields = fields


class TicketListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for ticket listing."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)
    type_display = serializers.CharField(source='get_type_display', read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)

    class Meta:
        model = Ticket
        fields = [
            'id',
            'ticket_no',
            'type',
            'type_display',
            'status',
            'status_display',
            'priority',
            'event_name',
            'location',
            'post_number',
            'description',
            'reporter_name',
            'marshal_id',
            'created_by',
            'assigned_to',
            'escalated_to_role',
            'incident_date',
            'created_at',
            'updated_at',
            'closed_at',
        ]
        read_only_fields = fields


class TicketDetailSerializer(TicketListSerializer):
    """
    Full ticket: every column, the specialized report, attachments and the
    activity timeline (newest first).
    """

    medical_report = serializers.SerializerMethodField()
    control_report = serializers.SerializerMethodField()
    safety_report = serializers.SerializerMethodField()
    pit_grid_report = serializers.SerializerMethodField()
    attachments = AttachmentSerializer(many=True, read_only=True)
    activity = ActivityLogSerializer(many=True, read_only=True)
    can_edit = serializers.SerializerMethodField()

    class Meta(TicketListSerializer.Meta):
        fields = TicketListSerializer.Meta.fields + [
            'venue',
            'incident_time',
            'drivers',
            'witnesses',
            'reporter_signature',
            'marshal_mobile',
            'closed_by',
            'closed_by_role',
            'medical_report',
            'control_report',
            'safety_report',
            'pit_grid_report',
            'attachments',
            'activity',
            'can_edit',
        ]
        read_only_fields = fields

    def _report(self, obj, name, serializer_class):
        report = obj.get_report(name)
        return serializer_class(report).data if report is not None else None

    def get_medical_report(self, obj):
        return self._report(obj, 'medical_report', MedicalReportSerializer)

    def get_control_report(self, obj):
        return self._report(obj, 'control_report', ControlReportSerializer)

    def get_safety_report(self, obj):
        return self._report(obj, 'safety_report', SafetyReportSerializer)

    def get_pit_grid_report(self, obj):
        return self._report(obj, 'pit_grid_report', PitGridReportSerializer)

    def get_can_edit(self, obj):
        request = self.context.get('request')
        if request is None:
            return False
        return TicketWorkflow.can_edit(request.user, obj)


# =============================================================================
# WRITE SERIALIZERS
# =============================================================================

class TicketUpdateSerializer(serializers.Serializer):
    """
    Ticket fields clients may write, plus the nested reports.

    Used with partial=True: only the keys sent are changed.
    """

    status = serializers.ChoiceField(choices=TicketStatus.CHOICES, required=False)
    priority = serializers.ChoiceField(choices=TicketPriority.CHOICES, required=False)
    event_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    venue = serializers.CharField(max_length=200, required=False, allow_blank=True)
    incident_date = serializers.DateField(required=False, allow_null=True)
    incident_time = serializers.CharField(max_length=20, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    post_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    drivers = serializers.ListField(required=False)
    witnesses = serializers.ListField(required=False)
    reporter_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    reporter_signature = serializers.CharField(required=False, allow_blank=True)
    marshal_mobile = serializers.CharField(max_length=30, required=False, allow_blank=True)

    medical_report = MedicalReportSerializer(required=False)
    control_report = ControlReportSerializer(required=False)
    safety_report = SafetyReportSerializer(required=False)
    pit_grid_report = PitGridReportSerializer(required=False)

    @staticmethod
    def split_reports(validated_data):
        """Pop the nested report payloads off ``validated_data``."""
        return {
            name: dict(validated_data.pop(name))
            for name in REPORT_SCHEMAS
            if name in validated_data
        }

    def update(self, instance, validated_data):
        reports = self.split_reports(validated_data)
        return TicketWorkflow.update_ticket(
            instance,
            self.context['request'].user,
            validated_data,
            reports=reports,
        )


class TicketCreateSerializer(TicketUpdateSerializer):
    """
    Create a ticket as the authenticated user.

    ``type`` is a request: roles that may not file it get their primary type.
    """

    type = serializers.ChoiceField(choices=TicketType.CHOICES, required=False)
    save_as_draft = serializers.BooleanField(required=False, default=False)

    def create(self, validated_data):
        validated_data.pop('status', None)
        requested_type = validated_data.pop('type', None)
        save_as_draft = validated_data.pop('save_as_draft', False)
        reports = self.split_reports(validated_data)
        return TicketWorkflow.create_ticket(
            self.context['request'].user,
            requested_type,
            validated_data,
            reports=reports,
            save_as_draft=save_as_draft,
        )


class _HandoffSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    assigned_to_id = serializers.UUIDField(required=False, allow_null=True)


class EscalateSerializer(_HandoffSerializer):
    to_role = serializers.CharField(required=False, allow_blank=True, default='')


class TransferSerializer(_HandoffSerializer):
    to_role = serializers.CharField(required=False, allow_blank=True, default='')


class ReturnSerializer(_HandoffSerializer):
    pass


class ReopenSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class CloseSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CommentSerializer(serializers.Serializer):
    text = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# PUBLIC INTAKE
# =============================================================================

class PublicIntakeSerializer(serializers.Serializer):
    """
    Common fields of the public marshal forms.

    Subclasses set ``ticket_type`` / ``report_name`` and build the report
    from an explicit list of their own fields in ``report_fields``.
    """

    ticket_type = None
    report_name = None

    marshal_id = serializers.CharField(max_length=50, required=False, allow_blank=True)
    marshal_mobile = serializers.CharField(max_length=30, required=False, allow_blank=True)
    post_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    incident_date = serializers.DateField(required=False, allow_null=True)
    incident_time = serializers.CharField(max_length=20, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    event_name = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def validate(self, attrs):
        required = ('marshal_id', 'post_number', 'description')
        if not all(attrs.get(field) for field in required):
            raise serializers.ValidationError(
                'Missing required fields (Marshal ID, Post #, Description)'
            )
        return attrs

    def ticket_fields(self, attrs):
        now = timezone.localtime()
        return {
            'marshal_id': attrs['marshal_id'],
            'marshal_mobile': attrs.get('marshal_mobile', ''),
            'post_number': attrs['post_number'],
            'description': attrs['description'],
            'incident_date': attrs.get('incident_date') or now.date(),
            'incident_time': attrs.get('incident_time') or now.strftime('%H:%M'),
            'location': attrs.get('location') or f"Post {attrs['post_number']}",
            'event_name': attrs.get('event_name', ''),
        }

    def report_fields(self, attrs):
        raise NotImplementedError

    def create(self, validated_data):
        return TicketWorkflow.create_public_ticket(
            self.ticket_type,
            self.ticket_fields(validated_data),
            {self.report_name: self.report_fields(validated_data)},
            files=self.context.get('files', ()),
        )


class PublicMedicalSerializer(PublicIntakeSerializer):
    ticket_type = TicketType.MEDICAL
    report_name = 'medical_report'

    patient_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    patient_role = serializers.CharField(max_length=50, required=False, allow_blank=True)
    injury_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    conscious = serializers.BooleanField(required=False, default=False)

    def report_fields(self, attrs):
        return {
            'patient_name': attrs.get('patient_name', ''),
            'patient_role': attrs.get('patient_role', ''),
            'injury_type': attrs.get('injury_type', ''),
            'consciousness_level': 'Conscious' if attrs.get('conscious') else 'Unconscious',
            'summary': attrs['description'],
        }


class PublicControlSerializer(PublicIntakeSerializer):
    ticket_type = TicketType.SPORT
    report_name = 'control_report'

    competitor_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    violation_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    lap_number = serializers.CharField(required=False, allow_blank=True)

    def report_fields(self, attrs):
        try:
            lap_number = max(int(attrs.get('lap_number') or 0), 0)
        except ValueError:
            lap_number = 0
        return {
            'competitor_number': attrs.get('competitor_number', ''),
            'violation_type': attrs.get('violation_type', ''),
            'lap_number': lap_number,
        }


class PublicSafetySerializer(PublicIntakeSerializer):
    ticket_type = TicketType.SAFETY
    report_name = 'safety_report'

    hazard_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    is_track_blocked = serializers.BooleanField(required=False, default=False)

    def report_fields(self, attrs):
        return {
            'hazard_type': attrs.get('hazard_type', ''),
            'track_status': TrackStatus.RED if attrs.get('is_track_blocked') else TrackStatus.YELLOW,
        }
