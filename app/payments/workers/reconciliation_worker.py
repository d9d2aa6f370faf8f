"""
Reconciliation worker for pending UPI payments.

Celery tasks that keep transactions in step with the provider:

Tasks:
- poll_due_reconciliation_jobs: Periodic sweep; dispatches one poll per due job
- poll_reconciliation_job: Poll the provider once for a single job
- process_payment_event: Apply a stored webhook event to its transaction
- purge_expired_checkout_intents: Periodic cleanup of unused checkout intents

Usage:
    # Typically called via celery-beat schedule (see migration
    # 0002_reconciliation_beat_schedule)
    from payments.workers import poll_due_reconciliation_jobs

    poll_due_reconciliation_jobs.delay()

    # Poll a specific job now (admin "poll now" action)
    poll_reconciliation_job.delay(str(job.id))

Celery Beat Schedule:
    poll_due_reconciliation_jobs     every 5 seconds
    purge_expired_checkout_intents   every hour
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_EVENT_RETRIES = 5


# =============================================================================
# Periodic Task: Sweep Due Jobs
# =============================================================================


@shared_task(bind=True)
def poll_due_reconciliation_jobs(self, limit: int | None = None) -> dict:
    """
    Dispatch polls for pending jobs whose next poll time has arrived.

    Claimed jobs are leased (next_poll_at pushed forward) before dispatch,
    so a slow worker does not get the same job queued twice.

    Returns:
        Dict with status and the number of dispatched jobs
    """
    from payments.services import ReconciliationService

    job_ids = ReconciliationService.claim_due_jobs(limit=limit)
    for job_id in job_ids:
        poll_reconciliation_job.delay(job_id)

    if job_ids:
        logger.info("Dispatched reconciliation polls", extra={"count": len(job_ids)})
    return {"status": "completed", "dispatched": len(job_ids)}


# =============================================================================
# On-demand Task: Poll One Job
# =============================================================================


@shared_task(bind=True)
def poll_reconciliation_job(self, job_id: str) -> dict:
    """
    Poll the provider for one reconciliation job.

    Provider errors are recorded on the job and never raised, so Celery
    does not retry; the job's own schedule handles that.

    Args:
        job_id: UUID of the ReconciliationJob

    Returns:
        Dict with:
        - status: "polled", "skipped" (job no longer pending) or "not_found"
        - job_status: Job status after the poll
        - error: Provider error message, if the poll failed
    """
    from payments.services import ReconciliationService

    result = ReconciliationService.poll_job(UUID(str(job_id)))
    if not result.success:
        logger.error(
            "Reconciliation job not found",
            extra={"job_id": str(job_id), "error_code": result.error_code},
        )
        return {"status": "not_found", "job_id": str(job_id)}

    outcome = result.data
    return {
        "status": "polled" if outcome.polled else "skipped",
        "job_id": str(job_id),
        "job_status": outcome.job.status,
        "attempt": outcome.job.attempt,
        "error": outcome.error,
    }


# =============================================================================
# Event Processing
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_EVENT_RETRIES},
    acks_late=True,
)
def process_payment_event(self, event_id: str) -> dict:
    """
    Apply a stored webhook event to its transaction.

    Idempotent: events with processed_at set are skipped. Unexpected
    exceptions are recorded on the event and re-raised for Celery retry.

    Args:
        event_id: UUID of the PaymentEvent

    Returns:
        Dict with status: "processed", "already_processed", "handler_failed"
        or "not_found"
    """
    from payments.models import PaymentEvent
    from payments.webhooks.handlers import dispatch_payment_event

    try:
        event = PaymentEvent.objects.select_related("transaction").get(id=UUID(str(event_id)))
    except PaymentEvent.DoesNotExist:
        logger.error("PaymentEvent not found", extra={"event_id": str(event_id)})
        return {"status": "not_found", "event_id": str(event_id)}

    if event.is_processed:
        logger.info("PaymentEvent already processed, skipping", extra={"event_id": str(event_id)})
        return {"status": "already_processed", "event_id": str(event_id)}

    try:
        result = dispatch_payment_event(event)
    except Exception as e:
        event.processing_error = f"{type(e).__name__}: {e}"
        event.save(update_fields=["processing_error", "updated_at"])
        logger.exception(
            "PaymentEvent processing failed with exception",
            extra={"event_id": str(event_id), "event_key": event.event_key},
        )
        raise

    event.processed_at = timezone.now()
    event.processing_error = "" if result.success else (result.error or "Handler returned failure")
    event.save(update_fields=["processed_at", "processing_error", "updated_at"])

    if not result.success:
        logger.warning(
            "PaymentEvent handler failed",
            extra={
                "event_id": str(event_id),
                "event_key": event.event_key,
                "error_code": result.error_code,
            },
        )
        return {"status": "handler_failed", "event_id": str(event_id), "error": result.error}

    logger.info("PaymentEvent processed", extra={"event_id": str(event_id), "event_key": event.event_key})
    return {"status": "processed", "event_id": str(event_id)}


# =============================================================================
# Periodic Task: Checkout Intent Cleanup
# =============================================================================


@shared_task
def purge_expired_checkout_intents() -> dict:
    """Delete checkout intents that expired unused."""
    from orders.services import CheckoutIntentStore

    deleted = CheckoutIntentStore.purge_expired()
    return {"status": "completed", "deleted": deleted}
