"""
Celery configuration for the Django application.

Celery runs the payment background work:
- Applying provider webhook events (payments.workers.process_payment_event)
- Polling providers for pending transactions (reconciliation sweep, every 5 s)
- Purging expired checkout intents (hourly)

This configuration uses Redis as both the message broker and result backend.
Periodic schedules live in the database (django-celery-beat) and are created
by payments migration 0002_reconciliation_beat_schedule.

Usage:
    # Worker and beat
    celery -A config worker -l info
    celery -A config beat -l info

    # Queue a task
    from payments.tasks import poll_reconciliation_job
    poll_reconciliation_job.delay(str(job.id))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Create Celery application instance
# The name should match the Django project name
app = Celery("config")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all registered Django apps
# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
