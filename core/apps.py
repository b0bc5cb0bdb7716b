import logging

from django.apps import AppConfig
from django.conf import settings

startup_logger = logging.getLogger('incident.startup')


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = 'Core'

    def ready(self):
        startup_logger.info('=' * 60)
        startup_logger.info('RACE INCIDENT BACKEND STARTUP CONFIG')
        startup_logger.info(f'  DEBUG              = {settings.DEBUG}')
        startup_logger.info(f'  ALLOWED_HOSTS      = {settings.ALLOWED_HOSTS}')
        startup_logger.info(f'  CORS_ALLOW_ALL     = {settings.CORS_ALLOW_ALL_ORIGINS}')
        startup_logger.info(f'  MEDIA_ROOT         = {settings.MEDIA_ROOT}')
        startup_logger.info(f'  OTP_FIXED_CODE set = {bool(settings.OTP_FIXED_CODE)}')
        startup_logger.info('=' * 60)
