"""
Notification views.

Provides API endpoints for:
- List user notifications
- Mark notification as read
- Mark all as read
- Get unread count
"""

from rest_framework import generics, views
from rest_framework.response import Response

from core.exceptions import ResourceNotFound

from .models import Notification
from .serializers import NotificationSerializer
from .services import NotificationService


class NotificationListView(generics.ListAPIView):
    """
    List notifications for the authenticated user.

    GET /api/v1/notifications/

    Query parameters:
    - is_read: Filter by read status (true/false)
    - type: Filter by notification type

    Returns: Paginated list of notifications, newest first.
    """

    serializer_class = NotificationSerializer

    def get_queryset(self):
        queryset = Notification.objects.filter(
            recipient=self.request.user
        ).select_related('ticket')

        is_read = self.request.query_params.get('is_read')
        if is_read is not None:
            queryset = queryset.filter(is_read=is_read.lower() == 'true')

        notification_type = self.request.query_params.get('type')
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)

        return queryset.order_by('-created_at')


class MarkNotificationReadView(views.APIView):
    """
    Mark a notification as read.

    POST /api/v1/notifications/{id}/read/
    """

    def post(self, request, pk):
        try:
            notification = Notification.objects.get(id=pk, recipient=request.user)
        except Notification.DoesNotExist:
            raise ResourceNotFound('Notification not found.')

        notification.mark_as_read()

        return Response({
            'id': str(notification.id),
            'is_read': notification.is_read,
            'read_at': notification.read_at.isoformat() if notification.read_at else None,
        })


class MarkAllReadView(views.APIView):
    """
    Mark all notifications as read for the authenticated user.

    POST /api/v1/notifications/read-all/
    """

    def post(self, request):
        count = NotificationService.mark_all_read(request.user)

        return Response({
            'message': f'Marked {count} notifications as read.',
            'count': count,
        })


class UnreadCountView(views.APIView):
    """
    GET /api/v1/notifications/unread-count/
    """

    def get(self, request):
        return Response({
            'unread_count': NotificationService.get_unread_count(request.user),
        })
