"""
Tests for payment Celery tasks.

Tests cover:
- process_payment_event: idempotency, handler failures, exceptions
- poll_due_reconciliation_jobs: sweep and dispatch
- poll_reconciliation_job: single poll results
- purge_expired_checkout_intents
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from orders.models import CheckoutIntent
from orders.tests.factories import CheckoutIntentFactory
from payments.state_machines import ReconciliationStatus, TransactionStatus
from payments.tasks import (
    poll_due_reconciliation_jobs,
    poll_reconciliation_job,
    process_payment_event,
    purge_expired_checkout_intents,
)
from payments.tests.factories import PaymentEventFactory, ReconciliationJobFactory, provider_status

DISPATCH_PATH = "payments.webhooks.handlers.dispatch_payment_event"


# =============================================================================
# process_payment_event
# =============================================================================


class TestProcessPaymentEvent:
    """Tests for the process_payment_event task."""

    def test_processes_event(self, webhook_event):
        result = process_payment_event(str(webhook_event.id))

        assert result["status"] == "processed"
        webhook_event.refresh_from_db()
        assert webhook_event.is_processed
        assert webhook_event.processing_error == ""
        webhook_event.transaction.refresh_from_db()
        assert webhook_event.transaction.status == TransactionStatus.COMPLETED

    def test_already_processed(self, webhook_event):
        webhook_event.processed_at = timezone.now()
        webhook_event.save()

        with patch(DISPATCH_PATH) as mock_dispatch:
            result = process_payment_event(str(webhook_event.id))

        assert result["status"] == "already_processed"
        mock_dispatch.assert_not_called()

    def test_not_found(self, db):
        result = process_payment_event("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"

    def test_handler_failure_recorded(self, db):
        """Should mark the event processed with the handler's error."""
        event = PaymentEventFactory(transaction=None, order=None, provider="cashfree")

        result = process_payment_event(str(event.id))

        assert result["status"] == "handler_failed"
        event.refresh_from_db()
        assert event.is_processed
        assert event.processing_error == "Webhook refers to an unknown transaction"

    def test_exception_recorded_and_raised(self, webhook_event):
        """Should store the error and re-raise so Celery retries."""
        with patch(DISPATCH_PATH, side_effect=RuntimeError("database unavailable")):
            with pytest.raises(RuntimeError):
                process_payment_event(str(webhook_event.id))

        webhook_event.refresh_from_db()
        assert webhook_event.processing_error == "RuntimeError: database unavailable"
        assert not webhook_event.is_processed


# =============================================================================
# Reconciliation Tasks
# =============================================================================


class TestPollDueReconciliationJobs:
    def test_dispatches_due_jobs(self, db):
        now = timezone.now()
        due = ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=1))
        ReconciliationJobFactory(next_poll_at=now + timedelta(seconds=60))

        with patch("payments.workers.reconciliation_worker.poll_reconciliation_job.delay") as mock_delay:
            result = poll_due_reconciliation_jobs()

        assert result == {"status": "completed", "dispatched": 1}
        mock_delay.assert_called_once_with(str(due.id))

    def test_nothing_due(self, db):
        result = poll_due_reconciliation_jobs()

        assert result["dispatched"] == 0

    def test_limit(self, db):
        now = timezone.now()
        for _ in range(3):
            ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=1))

        with patch("payments.workers.reconciliation_worker.poll_reconciliation_job.delay"):
            result = poll_due_reconciliation_jobs(limit=2)

        assert result["dispatched"] == 2


class TestPollReconciliationJob:
    def test_polls_job(self, pending_job, fake_adapter):
        fake_adapter.fetch_status.return_value = provider_status("SUCCESS", TransactionStatus.COMPLETED)

        result = poll_reconciliation_job(str(pending_job.id))

        assert result["status"] == "polled"
        assert result["job_status"] == ReconciliationStatus.COMPLETED
        assert result["attempt"] == 1
        assert result["error"] is None

    def test_skips_closed_job(self, pending_job, fake_adapter):
        pending_job.status = ReconciliationStatus.FAILED
        pending_job.save()

        result = poll_reconciliation_job(str(pending_job.id))

        assert result["status"] == "skipped"

    def test_not_found(self, db):
        result = poll_reconciliation_job("00000000-0000-0000-0000-000000000000")

        assert result["status"] == "not_found"


# =============================================================================
# Checkout Intent Cleanup
# =============================================================================


class TestPurgeExpiredCheckoutIntents:
    def test_deletes_only_expired_unused_intents(self, db):
        expired = CheckoutIntentFactory(expires_at=timezone.now() - timedelta(minutes=1))
        open_intent = CheckoutIntentFactory()

        result = purge_expired_checkout_intents()

        assert result["status"] == "completed"
        assert result["deleted"] >= 1
        assert not CheckoutIntent.objects.filter(pk=expired.pk).exists()
        assert CheckoutIntent.objects.filter(pk=open_intent.pk).exists()
