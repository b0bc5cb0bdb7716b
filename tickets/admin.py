"""
Admin configuration for tickets.

Activity logs are read-only here as everywhere else.
"""

from django.contrib import admin

from .models import (
    ActivityLog,
    Attachment,
    ControlReport,
    MedicalReport,
    PitGridReport,
    SafetyReport,
    Ticket,
)


class AttachmentInline(admin.TabularInline):
    model = Attachment
    extra = 0
    fields = ['ref_id', 'kind', 'original_name', 'size', 'uploaded_by', 'created_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['ticket_no', 'type', 'status', 'priority', 'created_by', 'assigned_to', 'escalated_to_role', 'created_at']
    list_filter = ['type', 'status', 'priority', 'escalated_to_role', 'is_deleted']
    search_fields = ['ticket_no', 'description', 'location', 'marshal_id', 'reporter_name']
    readonly_fields = ['id', 'ticket_no', 'created_at', 'updated_at', 'closed_at', 'closed_by', 'closed_by_role']
    raw_id_fields = ['created_by', 'assigned_to']
    inlines = [AttachmentInline]
    actions = ['restore_tickets']

    def get_queryset(self, request):
        return Ticket.all_objects.select_related('created_by', 'assigned_to')

    def delete_queryset(self, request, queryset):
        # Bulk delete bypasses Model.delete, so soft delete row by row
        for ticket in queryset:
            ticket.soft_delete()

    @admin.action(description='Restore selected tickets')
    def restore_tickets(self, request, queryset):
        for ticket in queryset.filter(is_deleted=True):
            ticket.restore()


@admin.register(MedicalReport, ControlReport, SafetyReport, PitGridReport)
class SpecializedReportAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'author', 'created_at']
    raw_id_fields = ['ticket', 'author']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['ticket', 'action', 'actor', 'created_at']
    list_filter = ['action']
    search_fields = ['ticket__ticket_no', 'details']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
