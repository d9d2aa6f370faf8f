"""
Workers for async payment processing.

This module contains Celery tasks for background payment operations:
- poll_due_reconciliation_jobs: Periodic sweep of due reconciliation jobs
- poll_reconciliation_job: Poll the provider for one job
- process_payment_event: Apply a stored webhook event
- purge_expired_checkout_intents: Periodic checkout intent cleanup

Usage:
    from payments.workers import poll_reconciliation_job

    poll_reconciliation_job.delay(str(job.id))
"""

from payments.workers.reconciliation_worker import (
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
