"""
Celery tasks for payment processing.

Celery autodiscovers tasks.py in each app; the task implementations live
in payments.workers and are re-exported here so they are registered.

Usage:
    from payments.tasks import process_payment_event

    # Queue a stored webhook event for processing
    process_payment_event.delay(str(event.id))
"""

from payments.workers import (
    poll_due_reconciliation_jobs,
    poll_reconciliation_job,
    process_payment_event,
    purge_expired_checkout_intents,
)

__all__ = [
    "poll_due_reconciliation_jobs",
    "poll_reconciliation_job",
    "process_payment_event",
    "purge_expired_checkout_intents",
]
