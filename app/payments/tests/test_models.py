"""
Tests for payment models.

Tests cover:
- Merchant transaction id format and uniqueness
- PaymentTransaction FSM transitions
- ReconciliationJob due query
- PaymentEvent processing state
"""

import re
from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from payments.models import PaymentTransaction, ReconciliationJob, generate_merchant_transaction_id
from payments.state_machines import ReconciliationStatus, TransactionStatus
from payments.tests.factories import (
    PaymentEventFactory,
    PaymentRefundFactory,
    PaymentTransactionFactory,
    ReconciliationJobFactory,
)

MERCHANT_TRANSACTION_ID = re.compile(r"^TXN_\d{13}_[0-9a-z]{9}$")


# =============================================================================
# Merchant Transaction Id
# =============================================================================


class TestMerchantTransactionId:
    def test_format(self):
        """Should be TXN_<epoch ms>_<9 base36 chars>."""
        assert MERCHANT_TRANSACTION_ID.match(generate_merchant_transaction_id())

    def test_unique_per_call(self):
        ids = {generate_merchant_transaction_id() for _ in range(50)}

        assert len(ids) == 50

    def test_default_on_create(self, db, upi_order):
        transaction = PaymentTransaction.objects.create(
            order=upi_order,
            provider="cashfree",
            amount=upi_order.total,
            amount_minor=upi_order.amount_minor,
        )

        assert MERCHANT_TRANSACTION_ID.match(transaction.merchant_transaction_id)
        assert transaction.status == TransactionStatus.INITIATED

    def test_attempt_number_unique_per_order(self, db, upi_order):
        PaymentTransactionFactory(order=upi_order, attempt_number=1)

        with pytest.raises(IntegrityError):
            PaymentTransactionFactory(order=upi_order, attempt_number=1)


# =============================================================================
# Transaction State Machine
# =============================================================================


class TestTransactionTransitions:
    """Tests for PaymentTransaction FSM transitions."""

    def test_mark_pending(self, initiated_transaction):
        initiated_transaction.mark_pending()

        assert initiated_transaction.status == TransactionStatus.PENDING

    def test_complete_sets_timestamp(self, pending_transaction):
        pending_transaction.complete()
        pending_transaction.save()

        pending_transaction.refresh_from_db()
        assert pending_transaction.status == TransactionStatus.COMPLETED
        assert pending_transaction.completed_at is not None
        assert pending_transaction.is_terminal

    def test_complete_from_initiated(self, initiated_transaction):
        """Should allow completion when the provider order already finished."""
        initiated_transaction.complete()

        assert initiated_transaction.status == TransactionStatus.COMPLETED

    def test_fail_records_reason(self, pending_transaction):
        pending_transaction.fail(reason="Provider reported FAILED", error_code="PAYMENT_DECLINED")

        assert pending_transaction.status == TransactionStatus.FAILED
        assert pending_transaction.failure_reason == "Provider reported FAILED"
        assert pending_transaction.error_code == "PAYMENT_DECLINED"
        assert pending_transaction.failed_at is not None

    def test_cancel(self, pending_transaction):
        pending_transaction.cancel(reason="User dropped")

        assert pending_transaction.status == TransactionStatus.CANCELLED
        assert pending_transaction.cancelled_at is not None

    @pytest.mark.parametrize("method", ["mark_pending", "complete", "fail", "cancel"])
    def test_completed_is_final(self, completed_transaction, method):
        """Should never leave a terminal state."""
        with pytest.raises(TransitionNotAllowed):
            getattr(completed_transaction, method)()

    def test_failed_cannot_complete(self, failed_transaction):
        with pytest.raises(TransitionNotAllowed):
            failed_transaction.complete()

    def test_pending_cannot_go_back(self, pending_transaction):
        with pytest.raises(TransitionNotAllowed):
            pending_transaction.mark_pending()

    def test_str(self, pending_transaction):
        assert pending_transaction.merchant_transaction_id in str(pending_transaction)


# =============================================================================
# Reconciliation Job
# =============================================================================


class TestReconciliationJobQuerySet:
    def test_due_returns_pending_jobs_past_next_poll(self, db):
        now = timezone.now()
        due = ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=1))
        ReconciliationJobFactory(next_poll_at=now + timedelta(seconds=30))
        ReconciliationJobFactory(
            next_poll_at=now - timedelta(seconds=1),
            status=ReconciliationStatus.COMPLETED,
        )

        assert list(ReconciliationJob.objects.due(now=now)) == [due]

    def test_due_oldest_first(self, db):
        now = timezone.now()
        later = ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=1))
        earlier = ReconciliationJobFactory(next_poll_at=now - timedelta(seconds=10))

        assert list(ReconciliationJob.objects.due(now=now)) == [earlier, later]

    def test_one_job_per_transaction(self, pending_job):
        with pytest.raises(IntegrityError):
            ReconciliationJobFactory(transaction=pending_job.transaction)

    def test_is_pending(self, pending_job):
        assert pending_job.is_pending

        pending_job.status = ReconciliationStatus.EXPIRED
        assert not pending_job.is_pending


# =============================================================================
# Payment Event
# =============================================================================


class TestPaymentEvent:
    def test_is_processed(self, webhook_event):
        assert webhook_event.is_processed is False

        webhook_event.processed_at = timezone.now()
        assert webhook_event.is_processed is True

    def test_event_key_unique(self, webhook_event):
        with pytest.raises(IntegrityError):
            PaymentEventFactory(event_key=webhook_event.event_key)


class TestPaymentRefund:
    def test_belongs_to_transaction_order(self, db):
        refund = PaymentRefundFactory()

        assert refund.order == refund.transaction.order
        assert str(refund).startswith("PaymentRefund(RFD_")
