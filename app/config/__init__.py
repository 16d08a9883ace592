# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, WSGI application and Celery configuration.
#
# The Celery app is imported here so that it is loaded when Django starts
# and @shared_task functions bind to it.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
