"""
Celery configuration for the rental settlement service.

Celery runs the work that must not block a web request:
- Processing verified Stripe webhook events
- Re-queueing failed webhook events
- Sweeping distribution rows stuck mid-transfer

Uses Redis as both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(webhook_event.id)

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
