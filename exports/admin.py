from django.contrib import admin

from .models import TicketExport


@admin.register(TicketExport)
class TicketExportAdmin(admin.ModelAdmin):
    list_display = ['verify_token', 'ticket', 'exported_by', 'created_at']
    search_fields = ['verify_token', 'ticket__ticket_no']
    readonly_fields = ['id', 'ticket', 'verify_token', 'snapshot', 'exported_by', 'created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
