# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, the WSGI application and the Celery app for the order and
# payment reconciliation service.
#
# The Celery app is imported here so that Django loads it on startup and
# the reconciliation and webhook tasks in payments.workers are registered.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
