"""
URL configuration for the race incident backend.

API Structure:
- /api/v1/auth/           - OTP login, token refresh, logout, profile
- /api/v1/tickets/        - Ticket workflow, attachments, comments, exports
- /api/v1/public/submit/  - Unauthenticated marshal intake
- /api/v1/verify/<token>/ - Public PDF authenticity check
- /api/v1/notifications/  - Notification inbox
- /admin/                 - Django admin (restricted)
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include

from exports.views import VerifyReportView


def health_check(request):
    """Health check endpoint for load balancers."""
    return JsonResponse({
        'status': 'healthy',
        'service': 'race-incident-backend'
    })


def api_root(request):
    """API root endpoint with version info."""
    return JsonResponse({
        'name': 'Race Incident API',
        'version': 'v1',
        'endpoints': {
            'auth': '/api/v1/auth/',
            'tickets': '/api/v1/tickets/',
            'public': '/api/v1/public/submit/',
            'verify': '/api/v1/verify/<token>/',
            'notifications': '/api/v1/notifications/',
        }
    })


urlpatterns = [
    path('health/', health_check, name='health-check'),
    path('api/health/', health_check, name='api-health-check'),

    path('api/v1/', api_root, name='api-root'),

    path('api/v1/auth/', include('authentication.urls', namespace='auth')),
    path('api/v1/tickets/', include('exports.urls', namespace='exports')),
    path('api/v1/tickets/', include('tickets.urls', namespace='tickets')),
    path('api/v1/public/submit/', include('tickets.public_urls', namespace='public')),
    path('api/v1/verify/<str:token>/', VerifyReportView.as_view(), name='verify-report'),
    path('api/v1/notifications/', include('notifications.urls', namespace='notifications')),

    path('admin/', admin.site.urls),
]

# Serve uploaded attachments during development (DEBUG=True)
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
