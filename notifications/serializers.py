"""
Serializers for notifications.
"""

from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notification list/detail."""

    notification_type_display = serializers.CharField(
        source='get_notification_type_display',
        read_only=True
    )
    ticket_id = serializers.SerializerMethodField()
    ticket_no = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            'id',
            'title',
            'message',
            'notification_type',
            'notification_type_display',
            'ticket_id',
            'ticket_no',
            'is_read',
            'read_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_ticket_id(self, obj):
        return str(obj.ticket_id) if obj.ticket_id else None

    def get_ticket_no(self, obj):
        return obj.ticket.ticket_no if obj.ticket_id else None
