"""
WSGI config for the incident backend.

Exposes the WSGI callable as a module-level variable named ``application``.
Served by gunicorn in production (see gunicorn.conf.py).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'incident_backend.settings')

application = get_wsgi_application()
