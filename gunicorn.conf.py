# =============================================================================
# GUNICORN CONFIGURATION
# Race Incident Backend - Production WSGI Server
#
#   gunicorn incident_backend.wsgi:application -c gunicorn.conf.py
# =============================================================================

import multiprocessing
import os

# =============================================================================
# SERVER SOCKET
# =============================================================================

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# =============================================================================
# WORKER PROCESSES
# =============================================================================

# (2 x num_cores) + 1 unless overridden
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))

# PDF rendering and uploads are synchronous, sync workers fit
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "sync")

max_requests = 1000
max_requests_jitter = 100

# Attachment uploads from the track can be slow
timeout = int(os.getenv("GUNICORN_TIMEOUT", 120))
graceful_timeout = 30
keepalive = 5

# =============================================================================
# SECURITY
# =============================================================================

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# =============================================================================
# LOGGING
# =============================================================================

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

capture_output = True
enable_stdio_inheritance = True

# =============================================================================
# PROCESS NAMING
# =============================================================================

proc_name = "race-incident"


def worker_abort(worker):
    """Called when a worker receives SIGABRT (timeout)."""
    worker.log.warning(f"Worker {worker.pid} aborted, request exceeded {timeout}s")
