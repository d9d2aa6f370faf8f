"""
Tests for ReconciliationService.

Tests cover:
- Poll interval schedule and provider status classification
- Job creation (window, first poll, terminal transactions)
- Lease-based claiming of due jobs
- Polling: pending, success, failure, provider errors, expiry
- Bringing a job forward and the order-info snapshot
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from orders.states import OrderPaymentStatus
from payments.exceptions import ProviderTimeoutError
from payments.models import PaymentEvent, ReconciliationJob
from payments.services import ReconciliationService, classify_provider_status, poll_interval
from payments.state_machines import PaymentEventType, ReconciliationStatus, TransactionStatus
from payments.tests.factories import (
    PaymentTransactionFactory,
    ReconciliationJobFactory,
    provider_status,
)

# =============================================================================
# Schedule & Classification
# =============================================================================


class TestPollInterval:
    @pytest.mark.parametrize(
        "attempt,expected",
        [(0, 15), (1, 30), (2, 60), (3, 120), (4, 240), (5, 240), (40, 240)],
    )
    def test_backoff_schedule(self, attempt, expected):
        assert poll_interval(attempt) == expected

    def test_uses_settings(self, settings):
        settings.RECONCILIATION_POLL_INTERVALS = [2, 4]

        assert poll_interval(0) == 2
        assert poll_interval(7) == 4


class TestClassifyProviderStatus:
    @pytest.mark.parametrize("raw", ["captured", "PAID", "Success", "completed", "succeeded"])
    def test_success_spellings(self, raw):
        status = provider_status(raw, TransactionStatus.PENDING)

        assert classify_provider_status(status) == TransactionStatus.COMPLETED

    @pytest.mark.parametrize("raw", ["failed", "TIMEDOUT", "expired"])
    def test_failure_spellings(self, raw):
        status = provider_status(raw, TransactionStatus.PENDING)

        assert classify_provider_status(status) == TransactionStatus.FAILED

    def test_cancelled_spelling(self):
        status = provider_status("canceled", TransactionStatus.PENDING)

        assert classify_provider_status(status) == TransactionStatus.CANCELLED

    def test_adapter_mapping_used(self):
        """Should trust the adapter's mapping for provider-specific statuses."""
        status = provider_status("USER_DROPPED", TransactionStatus.CANCELLED)

        assert classify_provider_status(status) == TransactionStatus.CANCELLED

    def test_unknown_is_pending(self):
        status = provider_status("ACTIVE", TransactionStatus.PENDING)

        assert classify_provider_status(status) == TransactionStatus.PENDING


# =============================================================================
# Job Creation
# =============================================================================


class TestEnsureJob:
    def test_creates_pending_job(self, pending_transaction):
        now = pending_transaction.created_at

        job = ReconciliationService.ensure_job(pending_transaction, now=now)

        assert job.status == ReconciliationStatus.PENDING
        assert job.order == pending_transaction.order
        assert job.merchant_transaction_id == pending_transaction.merchant_transaction_id
        assert job.attempt == 0
        assert job.next_poll_at == now + timedelta(seconds=15)
        assert job.expire_at == pending_transaction.created_at + timedelta(seconds=900)

    def test_idempotent(self, pending_transaction):
        first = ReconciliationService.ensure_job(pending_transaction)
        second = ReconciliationService.ensure_job(pending_transaction)

        assert first.pk == second.pk
        assert ReconciliationJob.objects.count() == 1

    def test_first_poll_capped_by_window(self, pending_transaction, settings):
        settings.RECONCILIATION_WINDOW_SECONDS = 10
        now = pending_transaction.created_at

        job = ReconciliationService.ensure_job(pending_transaction, now=now)

        assert job.next_poll_at == job.expire_at

    def test_completed_transaction_gets_closed_job(self, completed_transaction):
        job = ReconciliationService.ensure_job(completed_transaction)

        assert job.status == ReconciliationStatus.COMPLETED
        assert job.completed_at is not None

    def test_failed_transaction_gets_failed_job(self, failed_transaction):
        job = ReconciliationService.ensure_job(failed_transaction)

        assert job.status == ReconciliationStatus.FAILED


# =============================================================================
# Claiming
# =============================================================================


class TestClaimDueJobs:
    def test_claims_due_jobs_and_leases_them(self, pending_job):
        now = timezone.now()
        pending_job.next_poll_at = now - timedelta(seconds=1)
        pending_job.save()

        claimed = ReconciliationService.claim_due_jobs(now=now)

        assert claimed == [str(pending_job.id)]
        pending_job.refresh_from_db()
        assert pending_job.next_poll_at == now + timedelta(seconds=15)

    def test_leased_job_not_claimed_twice(self, pending_job):
        """Should not dispatch a job again while its poll is queued."""
        now = timezone.now()
        pending_job.next_poll_at = now
        pending_job.save()

        first = ReconciliationService.claim_due_jobs(now=now)
        second = ReconciliationService.claim_due_jobs(now=now)

        assert first == [str(pending_job.id)]
        assert second == []

    def test_lease_capped_at_expiry(self, pending_job):
        now = timezone.now()
        pending_job.next_poll_at = now
        pending_job.expire_at = now + timedelta(seconds=3)
        pending_job.save()

        ReconciliationService.claim_due_jobs(now=now)

        pending_job.refresh_from_db()
        assert pending_job.next_poll_at == pending_job.expire_at

    def test_respects_limit(self, db):
        now = timezone.now()
        for _ in range(3):
            ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=5))

        assert len(ReconciliationService.claim_due_jobs(now=now, limit=2)) == 2

    def test_ignores_closed_and_future_jobs(self, db):
        now = timezone.now()
        ReconciliationJobFactory(next_poll_at=now + timedelta(seconds=5))
        ReconciliationJobFactory(next_poll_at=now, status=ReconciliationStatus.EXPIRED)

        assert ReconciliationService.claim_due_jobs(now=now) == []


# =============================================================================
# Polling
# =============================================================================


class TestPollJob:
    """Tests for ReconciliationService.poll_job."""

    def test_pending_reschedules(self, pending_job, fake_adapter):
        now = timezone.now()

        result = ReconciliationService.poll_job(pending_job.id, now=now)

        assert result.success
        outcome = result.data
        assert outcome.polled is True
        assert outcome.transaction_status == TransactionStatus.PENDING
        job = outcome.job
        assert job.status == ReconciliationStatus.PENDING
        assert job.attempt == 1
        assert job.last_polled_at == now
        assert job.last_status == "ACTIVE"
        assert job.next_poll_at == now + timedelta(seconds=30)
        fake_adapter.fetch_status.assert_called_once_with(pending_job.merchant_transaction_id)

    def test_backoff_grows_with_attempts(self, pending_job, fake_adapter):
        now = timezone.now()
        pending_job.attempt = 3
        pending_job.save()

        result = ReconciliationService.poll_job(pending_job.id, now=now)

        assert result.data.job.next_poll_at == now + timedelta(seconds=240)

    def test_next_poll_capped_at_expiry(self, pending_job, fake_adapter):
        now = timezone.now()
        pending_job.expire_at = now + timedelta(seconds=10)
        pending_job.save()

        result = ReconciliationService.poll_job(pending_job.id, now=now)

        assert result.data.job.next_poll_at == pending_job.expire_at

    def test_success_completes_payment(self, pending_job, fake_adapter):
        fake_adapter.fetch_status.return_value = provider_status(
            "SUCCESS",
            TransactionStatus.COMPLETED,
            utr="412345678901",
            payer_handle="rahul.sharma@okaxis",
        )

        result = ReconciliationService.poll_job(pending_job.id)

        assert result.data.transaction_status == TransactionStatus.COMPLETED
        assert result.data.job.status == ReconciliationStatus.COMPLETED
        transaction = pending_job.transaction
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.upi_utr == "412345678901"
        transaction.order.refresh_from_db()
        assert transaction.order.payment_status == OrderPaymentStatus.PAID

    def test_terminal_result_recorded_as_event(self, pending_job, fake_adapter):
        fake_adapter.fetch_status.return_value = provider_status("FAILED", TransactionStatus.FAILED)

        ReconciliationService.poll_job(pending_job.id)

        event = PaymentEvent.objects.get(event_type=PaymentEventType.POLL)
        assert event.transaction == pending_job.transaction
        assert event.event_key == f"cashfree:poll:{pending_job.merchant_transaction_id}:failed".lower()
        assert event.payload["status"] == "failed"
        assert event.is_processed

    def test_failure_fails_job(self, pending_job, fake_adapter):
        fake_adapter.fetch_status.return_value = provider_status("TIMEDOUT", TransactionStatus.CANCELLED)

        result = ReconciliationService.poll_job(pending_job.id)

        assert result.data.job.status == ReconciliationStatus.FAILED
        pending_job.transaction.refresh_from_db()
        assert pending_job.transaction.status == TransactionStatus.CANCELLED

    def test_provider_error_recorded(self, pending_job, fake_adapter):
        """Should record the error and reschedule instead of failing."""
        now = timezone.now()
        fake_adapter.fetch_status.side_effect = ProviderTimeoutError(
            "Cashfree request timed out", provider="cashfree"
        )

        result = ReconciliationService.poll_job(pending_job.id, now=now)

        assert result.success
        assert result.data.error == "Cashfree request timed out"
        job = result.data.job
        assert job.status == ReconciliationStatus.PENDING
        assert job.attempt == 1
        assert job.last_error == "Cashfree request timed out"
        assert job.next_poll_at == now + timedelta(seconds=30)
        pending_job.transaction.refresh_from_db()
        assert pending_job.transaction.status == TransactionStatus.PENDING

    def test_successful_poll_clears_last_error(self, pending_job, fake_adapter):
        pending_job.last_error = "Cashfree request timed out"
        pending_job.save()

        result = ReconciliationService.poll_job(pending_job.id)

        assert result.data.job.last_error == ""

    def test_expired_window(self, pending_job, fake_adapter):
        """Should expire the job without calling the provider."""
        with freeze_time(pending_job.expire_at):
            result = ReconciliationService.poll_job(pending_job.id)

        assert result.success
        assert result.data.polled is False
        pending_job.refresh_from_db()
        assert pending_job.status == ReconciliationStatus.EXPIRED
        assert pending_job.completed_at is not None
        fake_adapter.fetch_status.assert_not_called()

    def test_expiry_leaves_transaction_pending(self, pending_job, fake_adapter):
        """A late webhook can still complete an expired transaction."""
        ReconciliationService.poll_job(pending_job.id, now=pending_job.expire_at + timedelta(seconds=1))

        pending_job.transaction.refresh_from_db()
        assert pending_job.transaction.status == TransactionStatus.PENDING

    def test_closed_job_skipped(self, pending_job, fake_adapter):
        pending_job.status = ReconciliationStatus.COMPLETED
        pending_job.save()

        result = ReconciliationService.poll_job(pending_job.id)

        assert result.data.polled is False
        fake_adapter.fetch_status.assert_not_called()

    def test_unknown_job(self, db):
        result = ReconciliationService.poll_job("00000000-0000-0000-0000-000000000000")

        assert not result.success
        assert result.error_code == "RECONCILIATION_JOB_NOT_FOUND"
        assert result.status_code == 404


# =============================================================================
# Bring Forward & Snapshot
# =============================================================================


class TestBringForward:
    def test_makes_pending_job_due(self, pending_job):
        now = timezone.now()

        assert ReconciliationService.bring_forward(pending_job.transaction, now=now) is True

        pending_job.refresh_from_db()
        assert pending_job.next_poll_at == now

    def test_closed_job_untouched(self, pending_job):
        pending_job.status = ReconciliationStatus.EXPIRED
        pending_job.save()

        assert ReconciliationService.bring_forward(pending_job.transaction) is False


class TestSnapshot:
    def test_order_without_transactions(self, upi_order):
        assert ReconciliationService.snapshot(upi_order) is None

    def test_job_state(self, pending_job):
        pending_job.attempt = 2
        pending_job.last_status = "ACTIVE"
        pending_job.save()

        snapshot = ReconciliationService.snapshot(pending_job.order)

        assert snapshot["status"] == ReconciliationStatus.PENDING
        assert snapshot["attempt"] == 2
        assert snapshot["nextPollAt"] == pending_job.next_poll_at
        assert snapshot["expiresAt"] == pending_job.expire_at
        assert snapshot["lastStatus"] == "ACTIVE"
        assert snapshot["lastError"] is None
        assert snapshot["completedAt"] is None

    def test_transaction_without_job(self, pending_transaction):
        """Should suggest the default delay until a job exists."""
        snapshot = ReconciliationService.snapshot(pending_transaction.order)

        assert snapshot["status"] == "pending"
        assert snapshot["attempt"] == 0
        assert snapshot["nextPollAt"] == pending_transaction.created_at + timedelta(seconds=5)
        assert snapshot["expiresAt"] is None

    def test_gateway_failed_transaction(self, upi_order):
        """A transaction that failed before polling started reports its own outcome."""
        failed = PaymentTransactionFactory(
            order=upi_order,
            status=TransactionStatus.FAILED,
            failed_at=timezone.now(),
            failure_reason="Cashfree is unreachable",
            error_code="PROVIDER_UNAVAILABLE",
        )

        snapshot = ReconciliationService.snapshot(upi_order)

        assert snapshot["status"] == ReconciliationStatus.FAILED
        assert snapshot["nextPollAt"] is None
        assert snapshot["lastStatus"] == TransactionStatus.FAILED
        assert snapshot["lastResponseCode"] == "PROVIDER_UNAVAILABLE"
        assert snapshot["lastError"] == "Cashfree is unreachable"
        assert snapshot["completedAt"] == failed.failed_at

    def test_latest_transaction_used(self, upi_order):
        with freeze_time("2026-01-01 12:00:00"):
            first = PaymentTransactionFactory(order=upi_order, attempt_number=1)
            ReconciliationJobFactory(transaction=first, status=ReconciliationStatus.EXPIRED)
        with freeze_time("2026-01-01 12:20:00"):
            second = PaymentTransactionFactory(order=upi_order, attempt_number=2)
            ReconciliationJobFactory(transaction=second)

        snapshot = ReconciliationService.snapshot(upi_order)

        assert snapshot["status"] == ReconciliationStatus.PENDING
