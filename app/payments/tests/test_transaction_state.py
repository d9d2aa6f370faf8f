"""
Tests for TransactionStateService.

Tests cover:
- Applying provider statuses (complete, fail, cancel, stay pending)
- UPI metadata recording
- Terminal transactions are never reopened
- Reconciliation job closure and order projection
"""

from orders.states import OrderPaymentStatus, OrderStatus
from payments.services import StatusUpdate, TransactionStateService
from payments.state_machines import PaymentEventType, ReconciliationStatus, TransactionStatus
from payments.tests.factories import provider_status


def success_update(**kwargs) -> StatusUpdate:
    defaults = {
        "status": TransactionStatus.COMPLETED,
        "raw_status": "SUCCESS",
        "response_code": "SUCCESS",
        "utr": "412345678901",
        "payer_handle": "rahul.sharma@okaxis",
        "payment_mode": "UPI",
        "provider_payment_id": "5114917039291",
    }
    return StatusUpdate(**{**defaults, **kwargs})


# =============================================================================
# StatusUpdate
# =============================================================================


class TestStatusUpdate:
    def test_from_provider_status(self):
        status = provider_status(
            "PAYMENT_SUCCESS",
            TransactionStatus.COMPLETED,
            utr="412345678901",
            payer_handle="rahul.sharma@okaxis",
        )

        update = StatusUpdate.from_provider_status(status)

        assert update.status == TransactionStatus.COMPLETED
        assert update.raw_status == "PAYMENT_SUCCESS"
        assert update.utr == "412345678901"

    def test_payload_round_trip_ignores_unknown_keys(self):
        payload = {**success_update().to_payload(), "unexpected": "value"}

        update = StatusUpdate.from_payload(payload)

        assert update.status == "completed"
        assert update.payer_handle == "rahul.sharma@okaxis"


# =============================================================================
# apply_provider_status
# =============================================================================


class TestApplyProviderStatus:
    """Tests for TransactionStateService.apply_provider_status."""

    def test_success_completes_transaction_and_order(self, pending_job):
        transaction = pending_job.transaction

        result = TransactionStateService.apply_provider_status(transaction, success_update())

        assert result.success
        assert result.data.changed is True
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.upi_utr == "412345678901"
        assert transaction.upi_payer_handle == "rahul.sharma@okaxis"
        assert transaction.payment_mode == "UPI"
        assert transaction.provider_payment_id == "5114917039291"

        pending_job.refresh_from_db()
        assert pending_job.status == ReconciliationStatus.COMPLETED
        assert pending_job.completed_at is not None

        order = transaction.order
        order.refresh_from_db()
        assert order.payment_status == OrderPaymentStatus.PAID
        assert order.status == OrderStatus.CONFIRMED

    def test_failure_fails_transaction_and_job(self, pending_job):
        transaction = pending_job.transaction
        update = StatusUpdate(
            status=TransactionStatus.FAILED,
            raw_status="FAILED",
            response_code="PAYMENT_DECLINED",
        )

        result = TransactionStateService.apply_provider_status(transaction, update)

        assert result.success
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.error_code == "PAYMENT_DECLINED"
        assert transaction.failure_reason == "Provider reported FAILED"
        pending_job.refresh_from_db()
        assert pending_job.status == ReconciliationStatus.FAILED
        transaction.order.refresh_from_db()
        assert transaction.order.payment_status == OrderPaymentStatus.FAILED
        assert transaction.order.status == OrderStatus.PENDING

    def test_cancelled_closes_job_as_failed(self, pending_job):
        update = StatusUpdate(status=TransactionStatus.CANCELLED, raw_status="USER_DROPPED")

        TransactionStateService.apply_provider_status(pending_job.transaction, update)

        pending_job.refresh_from_db()
        assert pending_job.status == ReconciliationStatus.FAILED

    def test_pending_for_pending_is_noop(self, pending_job):
        update = StatusUpdate(status=TransactionStatus.PENDING, raw_status="ACTIVE")

        result = TransactionStateService.apply_provider_status(pending_job.transaction, update)

        assert result.success
        assert result.data.changed is False
        pending_job.refresh_from_db()
        assert pending_job.status == ReconciliationStatus.PENDING

    def test_initiated_moves_to_pending(self, initiated_transaction):
        update = StatusUpdate(status=TransactionStatus.PENDING, raw_status="PAYMENT_PENDING")

        result = TransactionStateService.apply_provider_status(initiated_transaction, update)

        assert result.data.changed is True
        initiated_transaction.refresh_from_db()
        assert initiated_transaction.status == TransactionStatus.PENDING

    def test_terminal_transaction_ignored(self, completed_transaction):
        """Should never reopen a completed transaction."""
        update = StatusUpdate(status=TransactionStatus.FAILED, raw_status="FAILED")

        result = TransactionStateService.apply_provider_status(completed_transaction, update)

        assert result.success
        assert result.data.ignored is True
        completed_transaction.refresh_from_db()
        assert completed_transaction.status == TransactionStatus.COMPLETED

    def test_invalid_transition(self, pending_transaction):
        """Should reject statuses the state machine cannot reach."""
        update = StatusUpdate(status=TransactionStatus.INITIATED, raw_status="CREATED")

        result = TransactionStateService.apply_provider_status(pending_transaction, update)

        assert not result.success
        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert result.status_code == 409
        pending_transaction.refresh_from_db()
        assert pending_transaction.status == TransactionStatus.PENDING

    def test_webhook_payload_stored_separately(self, pending_transaction):
        update = success_update(raw_response={"type": "PAYMENT_SUCCESS_WEBHOOK"})

        TransactionStateService.apply_provider_status(
            pending_transaction, update, source=PaymentEventType.WEBHOOK
        )

        pending_transaction.refresh_from_db()
        assert pending_transaction.webhook_data == {"type": "PAYMENT_SUCCESS_WEBHOOK"}
        assert pending_transaction.gateway_response == {}

    def test_provider_transaction_id_not_overwritten(self, pending_transaction):
        pending_transaction.provider_transaction_id = "T2406011200"
        pending_transaction.save()

        TransactionStateService.apply_provider_status(
            pending_transaction, success_update(provider_transaction_id="OTHER")
        )

        pending_transaction.refresh_from_db()
        assert pending_transaction.provider_transaction_id == "T2406011200"
