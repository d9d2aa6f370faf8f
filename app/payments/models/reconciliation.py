"""
ReconciliationJob model: server-side status polling for one transaction.

UPI payments are confirmed asynchronously. After a transaction is handed
to the provider, a job polls the provider's status API on a backoff
schedule until the provider reports a terminal status or the
reconciliation window elapses.

Usage:
    from payments.models import ReconciliationJob

    due = ReconciliationJob.objects.due(now=timezone.now())
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import ReconciliationStatus


class ReconciliationJobQuerySet(models.QuerySet):
    def pending(self):
        return self.filter(status=ReconciliationStatus.PENDING)

    def due(self, now=None):
        """Pending jobs whose next poll time has arrived, oldest first."""
        now = now or timezone.now()
        return self.pending().filter(next_poll_at__lte=now).order_by("next_poll_at")


class ReconciliationJob(UUIDPrimaryKeyMixin, BaseModel):
    """
    Polling state for one payment transaction.

    Invariants:
        - At most one job per transaction.
        - next_poll_at never exceeds expire_at while the job is pending.
        - Once completed, failed or expired, a job is never polled again.

    Fields:
        attempt: Number of polls performed so far
        last_status: Raw status string from the last provider response
        last_response_code: Provider response code from the last poll
        last_error: Error message from the last failed poll, if any
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="reconciliation_jobs",
    )
    transaction = models.OneToOneField(
        "payments.PaymentTransaction",
        on_delete=models.CASCADE,
        related_name="reconciliation_job",
    )
    merchant_transaction_id = models.CharField(max_length=64, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=ReconciliationStatus.choices,
        default=ReconciliationStatus.PENDING,
        db_index=True,
    )
    attempt = models.PositiveIntegerField(default=0)
    next_poll_at = models.DateTimeField(db_index=True)
    expire_at = models.DateTimeField()
    last_polled_at = models.DateTimeField(null=True, blank=True)
    last_status = models.CharField(max_length=64, blank=True)
    last_response_code = models.CharField(max_length=64, blank=True)
    last_error = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    objects = ReconciliationJobQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Reconciliation Job"
        verbose_name_plural = "Reconciliation Jobs"
        indexes = [
            models.Index(fields=["status", "next_poll_at"], name="recon_status_next_poll_idx"),
        ]

    def __str__(self) -> str:
        return f"ReconciliationJob({self.merchant_transaction_id}, {self.status}, attempt={self.attempt})"

    @property
    def is_pending(self) -> bool:
        return self.status == ReconciliationStatus.PENDING
