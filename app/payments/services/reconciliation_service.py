"""
Server-side reconciliation of pending UPI payments.

Each provider-backed transaction gets one ReconciliationJob. A beat task
(payments.workers.reconciliation_worker.poll_due_reconciliation_jobs)
sweeps due jobs every few seconds and dispatches one poll per job:

    attempt:   1    2    3    4     5     6 ...
    delay:    15s  30s  60s  120s  240s  240s ...

Delays are capped by the time left in the reconciliation window; a job
polled at or after expire_at is marked expired and never polled again.

Usage:
    from payments.services import ReconciliationService

    job = ReconciliationService.ensure_job(transaction)
    ReconciliationService.poll_job(job.id)
    snapshot = ReconciliationService.snapshot(order)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction as db_transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult
from payments.adapters import get_adapter
from payments.exceptions import PaymentNotFoundError, ProviderError
from payments.models import PaymentEvent, ReconciliationJob
from payments.services.transaction_state import StatusUpdate, TransactionStateService
from payments.state_machines import (
    TERMINAL_FAILURE_STATUSES,
    TERMINAL_SUCCESS_STATUSES,
    PaymentEventType,
    ReconciliationStatus,
    TransactionStatus,
)

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from orders.models import Order
    from payments.adapters import ProviderStatus
    from payments.models import PaymentTransaction


def poll_interval(attempt: int) -> int:
    """Seconds to wait after `attempt` polls; the last interval repeats."""
    intervals = settings.RECONCILIATION_POLL_INTERVALS
    return int(intervals[min(attempt, len(intervals) - 1)])


def classify_provider_status(status: ProviderStatus) -> str:
    """
    Reduce a provider status to the transaction status it implies.

    The raw status decides first (captured, paid, timedout, ...); the
    adapter's mapping covers provider-specific spellings.
    """
    raw = status.raw_status.strip().lower()
    if raw in TERMINAL_SUCCESS_STATUSES or status.status == TransactionStatus.COMPLETED:
        return TransactionStatus.COMPLETED
    if status.status in (TransactionStatus.FAILED, TransactionStatus.CANCELLED):
        return status.status
    if raw in TERMINAL_FAILURE_STATUSES:
        return TransactionStatus.CANCELLED if raw in ("cancelled", "canceled") else TransactionStatus.FAILED
    return TransactionStatus.PENDING


@dataclass
class PollOutcome:
    job: ReconciliationJob
    polled: bool
    transaction_status: str | None = None
    error: str | None = None


class ReconciliationService(BaseService):
    """Creates, polls and reports reconciliation jobs."""

    @classmethod
    def _next_poll_at(cls, attempt: int, now: datetime, expire_at: datetime) -> datetime:
        remaining = max((expire_at - now).total_seconds(), 0)
        return now + timedelta(seconds=min(poll_interval(attempt), remaining))

    @classmethod
    def ensure_job(
        cls,
        payment_transaction: PaymentTransaction,
        now: datetime | None = None,
    ) -> ReconciliationJob:
        """
        Get or create the job for a transaction.

        A transaction that is already terminal gets a closed job so the
        order's reconciliation snapshot reflects the outcome.
        """
        now = now or timezone.now()
        expire_at = payment_transaction.created_at + timedelta(
            seconds=settings.RECONCILIATION_WINDOW_SECONDS
        )

        if payment_transaction.status == TransactionStatus.COMPLETED:
            status, completed_at = ReconciliationStatus.COMPLETED, now
        elif payment_transaction.is_terminal:
            status, completed_at = ReconciliationStatus.FAILED, now
        else:
            status, completed_at = ReconciliationStatus.PENDING, None

        job, created = ReconciliationJob.objects.get_or_create(
            transaction=payment_transaction,
            defaults={
                "order_id": payment_transaction.order_id,
                "merchant_transaction_id": payment_transaction.merchant_transaction_id,
                "status": status,
                "next_poll_at": cls._next_poll_at(0, now, expire_at),
                "expire_at": expire_at,
                "completed_at": completed_at,
            },
        )
        if created:
            cls.get_logger().info(
                "Reconciliation job created",
                extra={
                    "job_id": str(job.id),
                    "merchant_transaction_id": job.merchant_transaction_id,
                    "status": job.status,
                },
            )
        return job

    @classmethod
    def claim_due_jobs(cls, now: datetime | None = None, limit: int | None = None) -> list[str]:
        """
        Lease due jobs for dispatch.

        Each claimed job's next_poll_at is pushed forward by one interval
        (capped at expire_at) so the next sweep does not dispatch it again
        while its poll is queued. Returns the claimed job ids.
        """
        now = now or timezone.now()
        limit = limit or settings.RECONCILIATION_BATCH_SIZE
        claimed = []
        due = ReconciliationJob.objects.due(now=now).values_list(
            "id", "attempt", "next_poll_at", "expire_at"
        )[:limit]
        for job_id, attempt, next_poll_at, expire_at in due:
            lease_until = min(now + timedelta(seconds=poll_interval(attempt)), expire_at)
            updated = ReconciliationJob.objects.filter(
                pk=job_id,
                status=ReconciliationStatus.PENDING,
                next_poll_at=next_poll_at,
            ).update(next_poll_at=lease_until, updated_at=now)
            if updated:
                claimed.append(str(job_id))
        return claimed

    @classmethod
    def poll_job(cls, job_id, now: datetime | None = None) -> ServiceResult[PollOutcome]:
        """
        Poll the provider once for a job.

        Provider errors are recorded on the job (last_error) and the job is
        rescheduled; they never fail the result.
        """
        logger = cls.get_logger()
        now = now or timezone.now()

        job = (
            ReconciliationJob.objects.select_related("transaction", "transaction__order")
            .filter(pk=job_id)
            .first()
        )
        if job is None:
            return ServiceResult.from_exception(
                PaymentNotFoundError("Reconciliation job not found", error_code="RECONCILIATION_JOB_NOT_FOUND")
            )

        log_context = {
            "job_id": str(job.id),
            "merchant_transaction_id": job.merchant_transaction_id,
            "provider": job.transaction.provider,
            "attempt": job.attempt,
        }

        if not job.is_pending:
            return ServiceResult.success(PollOutcome(job=job, polled=False))

        if now >= job.expire_at:
            job.status = ReconciliationStatus.EXPIRED
            job.completed_at = now
            job.save(update_fields=["status", "completed_at", "updated_at"])
            logger.info("Reconciliation window expired", extra=log_context)
            return ServiceResult.success(PollOutcome(job=job, polled=False))

        payment_transaction = job.transaction
        try:
            adapter = get_adapter(payment_transaction.provider)
            provider_status = adapter.fetch_status(job.merchant_transaction_id)
        except ProviderError as e:
            job.attempt += 1
            job.last_polled_at = now
            job.last_error = e.message
            job.next_poll_at = cls._next_poll_at(job.attempt, now, job.expire_at)
            job.save(
                update_fields=["attempt", "last_polled_at", "last_error", "next_poll_at", "updated_at"]
            )
            logger.warning(
                "Reconciliation poll failed",
                extra={**log_context, "error_code": e.error_code, "http_status": e.http_status},
            )
            return ServiceResult.success(PollOutcome(job=job, polled=True, error=e.message))

        target = classify_provider_status(provider_status)
        with db_transaction.atomic():
            job.attempt += 1
            job.last_polled_at = now
            job.last_status = provider_status.raw_status[:64]
            job.last_response_code = provider_status.response_code[:64]
            job.last_error = ""
            job.next_poll_at = cls._next_poll_at(job.attempt, now, job.expire_at)
            job.save(
                update_fields=[
                    "attempt",
                    "last_polled_at",
                    "last_status",
                    "last_response_code",
                    "last_error",
                    "next_poll_at",
                    "updated_at",
                ]
            )

            if target != TransactionStatus.PENDING:
                update = StatusUpdate.from_provider_status(provider_status)
                update.status = target
                cls._record_poll_event(payment_transaction, update)
                TransactionStateService.apply_provider_status(
                    payment_transaction, update, source=PaymentEventType.POLL
                )
            elif payment_transaction.status == TransactionStatus.INITIATED:
                TransactionStateService.apply_provider_status(
                    payment_transaction,
                    StatusUpdate.from_provider_status(provider_status),
                    source=PaymentEventType.POLL,
                )

        job.refresh_from_db()
        logger.info(
            "Reconciliation poll completed",
            extra={**log_context, "attempt": job.attempt, "job_status": job.status, "result": target},
        )
        return ServiceResult.success(PollOutcome(job=job, polled=True, transaction_status=target))

    @classmethod
    def _record_poll_event(cls, payment_transaction: PaymentTransaction, update: StatusUpdate) -> None:
        event_key = (
            f"{payment_transaction.provider}:poll:"
            f"{payment_transaction.merchant_transaction_id}:{update.raw_status}".lower()
        )
        PaymentEvent.objects.get_or_create(
            event_key=event_key,
            defaults={
                "provider": payment_transaction.provider,
                "event_type": PaymentEventType.POLL,
                "order_id": payment_transaction.order_id,
                "transaction": payment_transaction,
                "payload": update.to_payload(),
                "processed_at": timezone.now(),
            },
        )

    @classmethod
    def bring_forward(cls, payment_transaction: PaymentTransaction, now: datetime | None = None) -> bool:
        """Make a pending job due immediately. Returns False if none is pending."""
        now = now or timezone.now()
        updated = ReconciliationJob.objects.filter(
            transaction=payment_transaction,
            status=ReconciliationStatus.PENDING,
        ).update(next_poll_at=now, updated_at=now)
        return bool(updated)

    @classmethod
    def snapshot(cls, order: Order) -> dict[str, Any] | None:
        """
        Reconciliation state of the order's latest transaction.

        Returns None for orders without provider transactions. A transaction
        without a job is either about to get one (pending, polled after the
        default delay) or already settled before polling started, e.g. the
        gateway call failed; the latter reports its own outcome.
        """
        payment_transaction = order.latest_transaction()
        if payment_transaction is None:
            return None

        job = ReconciliationJob.objects.filter(transaction=payment_transaction).first()
        if job is None and payment_transaction.is_terminal:
            succeeded = payment_transaction.status == TransactionStatus.COMPLETED
            return {
                "status": (ReconciliationStatus.COMPLETED if succeeded else ReconciliationStatus.FAILED).value,
                "attempt": 0,
                "nextPollAt": None,
                "expiresAt": None,
                "lastPolledAt": None,
                "lastStatus": payment_transaction.status,
                "lastResponseCode": payment_transaction.error_code or None,
                "lastError": payment_transaction.failure_reason or None,
                "completedAt": (
                    payment_transaction.completed_at
                    or payment_transaction.failed_at
                    or payment_transaction.cancelled_at
                ),
            }
        if job is None:
            return {
                "status": ReconciliationStatus.PENDING.value,
                "attempt": 0,
                "nextPollAt": payment_transaction.created_at
                + timedelta(seconds=settings.RECONCILIATION_DEFAULT_DELAY_SECONDS),
                "expiresAt": None,
                "lastPolledAt": None,
                "lastStatus": None,
                "lastResponseCode": None,
                "lastError": None,
                "completedAt": None,
            }

        return {
            "status": job.status,
            "attempt": job.attempt,
            "nextPollAt": job.next_poll_at,
            "expiresAt": job.expire_at,
            "lastPolledAt": job.last_polled_at,
            "lastStatus": job.last_status or None,
            "lastResponseCode": job.last_response_code or None,
            "lastError": job.last_error or None,
            "completedAt": job.completed_at,
        }
