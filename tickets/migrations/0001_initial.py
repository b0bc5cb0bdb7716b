# Generated manually: tickets, specialized reports, attachments and the activity log

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import tickets.models

ROLE_CHOICES = [
    ('MEDICAL_MARSHAL', 'Medical Marshal'),
    ('MEDICAL_VENDOR', 'Medical Vendor'),
    ('MEDICAL_EVACUATION', 'Medical Evacuation'),
    ('SPORT_MARSHAL', 'Sport Marshal'),
    ('SAFETY_MARSHAL', 'Safety Marshal'),
    ('MEDICAL_OP_TEAM', 'Medical Operation Team'),
    ('DEPUTY_MEDICAL_OFFICER', 'Deputy Medical Officer'),
    ('CHIEF_MEDICAL_OFFICER', 'Chief Medical Officer'),
    ('SAFETY_OP_TEAM', 'Safety Operation Team'),
    ('DEPUTY_SAFETY_OFFICER', 'Deputy Safety Officer'),
    ('SAFETY_OFFICER_CHIEF', 'Chief Safety Officer'),
    ('CONTROL_OP_TEAM', 'Control Operation Team'),
    ('DEPUTY_CONTROL_OP_OFFICER', 'Deputy Control Operation Officer'),
    ('CHIEF_OF_CONTROL', 'Chief of Control'),
    ('SCRUTINEERS', 'Scrutineers'),
    ('JUDGEMENT', 'Judgement'),
    ('ADMIN', 'Administrator'),
]

STATUS_CHOICES = [
    ('DRAFT', 'Draft'),
    ('OPEN', 'Open'),
    ('UNDER_REVIEW', 'Under Review'),
    ('ESCALATED', 'Escalated'),
    ('AWAITING_DECISION', 'Awaiting Decision'),
    ('AWAITING_MEDICAL', 'Awaiting Medical'),
    ('RETURNED_TO_CONTROL', 'Returned to Control'),
    ('REOPENED', 'Reopened'),
    ('RESOLVED', 'Resolved'),
    ('CLOSED', 'Closed'),
]

ACTION_CHOICES = [
    ('TICKET_CREATED', 'Ticket created'),
    ('TICKET_SUBMITTED', 'Ticket submitted'),
    ('TICKET_UPDATED', 'Ticket updated'),
    ('TICKET_ESCALATED', 'Ticket escalated'),
    ('TICKET_TRANSFERRED', 'Ticket transferred'),
    ('TICKET_RETURNED', 'Ticket returned to control'),
    ('TICKET_REOPENED', 'Ticket reopened'),
    ('TICKET_CLOSED', 'Ticket closed'),
    ('COMMENT_ADDED', 'Comment'),
    ('ATTACHMENT_ADDED', 'Attachments added'),
    ('MEDICAL_REPORT_SUBMITTED', 'Medical report submitted'),
]


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID v4)', primary_key=True, serialize=False)),
        ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when record was created')),
        ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated')),
        ('is_deleted', models.BooleanField(db_index=True, default=False, help_text='Soft delete flag')),
        ('deleted_at', models.DateTimeField(blank=True, help_text='Timestamp when record was soft-deleted', null=True)),
    ]


def report_fields(related_name):
    return [
        ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
        ('ticket', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name=related_name, to='tickets.ticket')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Ticket',
            fields=base_fields() + [
                ('ticket_no', models.CharField(editable=False, help_text='Human readable reference, e.g. INC-2026-00042', max_length=24, unique=True)),
                ('type', models.CharField(choices=[('MEDICAL', 'Medical'), ('SPORT', 'Sport / Race Control'), ('SAFETY', 'Safety')], db_index=True, max_length=10)),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='OPEN', max_length=24)),
                ('priority', models.CharField(choices=[('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('CRITICAL', 'Critical')], default='MEDIUM', max_length=10)),
                ('event_name', models.CharField(blank=True, max_length=200)),
                ('venue', models.CharField(blank=True, max_length=200)),
                ('incident_date', models.DateField(blank=True, null=True)),
                ('incident_time', models.CharField(blank=True, max_length=20)),
                ('location', models.CharField(blank=True, max_length=255)),
                ('post_number', models.CharField(blank=True, max_length=50)),
                ('description', models.TextField(blank=True)),
                ('drivers', models.JSONField(blank=True, default=list)),
                ('witnesses', models.JSONField(blank=True, default=list)),
                ('reporter_name', models.CharField(blank=True, max_length=150)),
                ('reporter_signature', models.TextField(blank=True, help_text='Signature image as a data URL')),
                ('marshal_id', models.CharField(blank=True, max_length=50)),
                ('marshal_mobile', models.CharField(blank=True, max_length=30)),
                ('escalated_to_role', models.CharField(blank=True, choices=ROLE_CHOICES, db_index=True, help_text='Role whose queue the ticket was last escalated to', max_length=32)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('closed_by', models.CharField(blank=True, max_length=150)),
                ('closed_by_role', models.CharField(blank=True, max_length=32)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tickets_assigned', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, help_text='Empty for public intake submissions from unknown marshals', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='tickets_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tickets',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['type', 'status'], name='tickets_type_status_idx'),
                    models.Index(fields=['created_by', 'status'], name='tickets_creator_status_idx'),
                    models.Index(fields=['assigned_to', 'status'], name='tickets_assignee_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MedicalReport',
            fields=base_fields() + [
                ('patient_given_name', models.CharField(blank=True, max_length=100)),
                ('patient_surname', models.CharField(blank=True, max_length=100)),
                ('patient_name', models.CharField(blank=True, max_length=200)),
                ('patient_role', models.CharField(blank=True, max_length=50)),
                ('patient_gender', models.CharField(blank=True, max_length=20)),
                ('patient_dob', models.DateField(blank=True, null=True)),
                ('car_number', models.CharField(blank=True, max_length=20)),
                ('motorsport_id', models.CharField(blank=True, max_length=50)),
                ('permit_number', models.CharField(blank=True, max_length=50)),
                ('injury_type', models.CharField(blank=True, max_length=100)),
                ('consciousness_level', models.CharField(blank=True, max_length=30)),
                ('initial_condition', models.TextField(blank=True)),
                ('treatment_given', models.TextField(blank=True)),
                ('transport_required', models.BooleanField(default=False)),
                ('incident_description', models.TextField(blank=True)),
                ('summary', models.TextField(blank=True)),
                ('recommendation', models.TextField(blank=True)),
                ('license_action', models.CharField(choices=[('NONE', 'None'), ('CLEAR', 'Cleared to race'), ('WARNING', 'Warning / review'), ('SUSPEND', 'Suspend licence')], default='NONE', max_length=10)),
            ] + report_fields('medical_report'),
            options={'db_table': 'medical_reports'},
        ),
        migrations.CreateModel(
            name='ControlReport',
            fields=base_fields() + [
                ('competitor_number', models.CharField(blank=True, max_length=20)),
                ('violation_type', models.CharField(blank=True, max_length=100)),
                ('lap_number', models.PositiveIntegerField(default=0)),
                ('remarks', models.TextField(blank=True)),
            ] + report_fields('control_report'),
            options={'db_table': 'control_reports'},
        ),
        migrations.CreateModel(
            name='SafetyReport',
            fields=base_fields() + [
                ('hazard_type', models.CharField(blank=True, max_length=100)),
                ('track_status', models.CharField(blank=True, choices=[('GREEN', 'Green'), ('YELLOW', 'Yellow'), ('RED', 'Red')], max_length=10)),
                ('location_detail', models.CharField(blank=True, max_length=255)),
                ('action_taken', models.TextField(blank=True)),
            ] + report_fields('safety_report'),
            options={'db_table': 'safety_reports'},
        ),
        migrations.CreateModel(
            name='PitGridReport',
            fields=base_fields() + [
                ('pit_number', models.CharField(blank=True, max_length=20)),
                ('session_category', models.CharField(blank=True, max_length=50)),
                ('car_number', models.CharField(blank=True, max_length=20)),
                ('lap_number', models.PositiveIntegerField(blank=True, null=True)),
                ('speed_limit', models.CharField(blank=True, max_length=20)),
                ('speed_recorded', models.CharField(blank=True, max_length=20)),
                ('radar_operator_name', models.CharField(blank=True, max_length=150)),
                ('radar_operator_phone', models.CharField(blank=True, max_length=30)),
                ('driving_on_white_line', models.BooleanField(default=False)),
                ('refueling', models.BooleanField(default=False)),
                ('driver_change', models.BooleanField(default=False)),
                ('excess_mechanics', models.BooleanField(default=False)),
                ('remarks', models.TextField(blank=True)),
            ] + report_fields('pit_grid_report'),
            options={'db_table': 'pit_grid_reports'},
        ),
        migrations.CreateModel(
            name='Attachment',
            fields=base_fields() + [
                ('file', models.FileField(max_length=255, upload_to=tickets.models.attachment_path)),
                ('kind', models.CharField(choices=[('IMAGE', 'Image'), ('VIDEO', 'Video'), ('DOCUMENT', 'Document')], db_index=True, max_length=10)),
                ('original_name', models.CharField(blank=True, max_length=255)),
                ('mime_type', models.CharField(blank=True, max_length=100)),
                ('size', models.PositiveIntegerField(default=0)),
                ('ref_id', models.CharField(blank=True, db_index=True, help_text='Human readable reference, e.g. INC-2026-00042-A3', max_length=40)),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='attachments', to='tickets.ticket')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'ticket_attachments',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=ACTION_CHOICES, db_index=True, max_length=32)),
                ('details', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False)),
                ('actor', models.ForeignKey(blank=True, help_text='Empty for public intake submissions', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='activity', to='tickets.ticket')),
            ],
            options={
                'db_table': 'ticket_activity_logs',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['ticket', 'created_at'], name='activity_ticket_created_idx')],
            },
        ),
    ]
