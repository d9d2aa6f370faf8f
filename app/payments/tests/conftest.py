"""
Pytest fixtures for payment tests.

This module provides fixtures for creating payment-related test data.
Fixtures are designed to provide transactions and jobs in various states
for testing reconciliation and state transitions, plus a fake provider
adapter so that no test talks to a real gateway.

Usage:
    def test_poll_completes_payment(pending_job, fake_adapter):
        fake_adapter.fetch_status.return_value = provider_status("SUCCESS", TransactionStatus.COMPLETED)
        ReconciliationService.poll_job(pending_job.id)
"""

from unittest.mock import MagicMock, patch

import pytest

from orders.states import PaymentMethod
from orders.tests.factories import OrderFactory
from payments.adapters import ProviderPaymentResult
from payments.state_machines import TransactionStatus
from payments.tests.factories import (
    PaymentEventFactory,
    PaymentTransactionFactory,
    ReconciliationJobFactory,
    provider_status,
)


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def upi_order(db, user):
    """Pending Cashfree order for ₹250.00 owned by the test user."""
    return OrderFactory(user=user, payment_method=PaymentMethod.CASHFREE)


# =============================================================================
# Transaction Fixtures
# =============================================================================


@pytest.fixture
def initiated_transaction(db, upi_order):
    return PaymentTransactionFactory(order=upi_order, status=TransactionStatus.INITIATED)


@pytest.fixture
def pending_transaction(db, upi_order):
    return PaymentTransactionFactory(order=upi_order, status=TransactionStatus.PENDING)


@pytest.fixture
def completed_transaction(db, upi_order):
    return PaymentTransactionFactory(order=upi_order, status=TransactionStatus.COMPLETED)


@pytest.fixture
def failed_transaction(db, upi_order):
    return PaymentTransactionFactory(order=upi_order, status=TransactionStatus.FAILED)


# =============================================================================
# Reconciliation Fixtures
# =============================================================================


@pytest.fixture
def pending_job(db, pending_transaction):
    """Pending job for the pending transaction."""
    return ReconciliationJobFactory(transaction=pending_transaction)


@pytest.fixture
def webhook_event(db, pending_transaction):
    """Unprocessed success webhook for the pending transaction."""
    return PaymentEventFactory(transaction=pending_transaction)


# =============================================================================
# Provider Adapter Fixtures
# =============================================================================


@pytest.fixture
def provider_result():
    """Successful create_payment result for a fresh Cashfree order."""
    return ProviderPaymentResult(
        provider_order_id="TXN_PROVIDER_ORDER",
        status=TransactionStatus.PENDING,
        provider_session_token="session_abc123",
        redirect_url="https://sandbox.cashfree.com/pg/view/order/TXN_PROVIDER_ORDER/session_abc123",
        provider_transaction_id="2149460581",
        raw_response={"order_status": "ACTIVE"},
    )


@pytest.fixture
def fake_adapter(provider_result):
    """
    Stand-in provider adapter, patched into every service that looks one up.

    create_payment returns provider_result; fetch_status reports PENDING
    until a test sets another return value.
    """
    adapter = MagicMock()
    adapter.config.return_url_for.return_value = "http://localhost:3000/payment/return?provider=cashfree"
    adapter.config.notify_url_for.return_value = "http://localhost:8000/api/v1/payments/webhooks/cashfree/"
    adapter.create_payment.return_value = provider_result
    adapter.fetch_status.return_value = provider_status("ACTIVE", TransactionStatus.PENDING)

    with (
        patch("payments.services.payment_initiation.get_adapter", return_value=adapter),
        patch("payments.services.reconciliation_service.get_adapter", return_value=adapter),
    ):
        yield adapter
