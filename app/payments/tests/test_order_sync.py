"""
Tests for the order payment projection.

Tests cover:
- derive_payment_status precedence rules
- OrderPaymentSync writes (paid_at, confirmation, failure timestamp)
"""

import pytest

from orders.states import OrderPaymentStatus, OrderStatus
from payments.services import OrderPaymentSync, derive_payment_status
from payments.state_machines import TransactionStatus
from payments.tests.factories import PaymentTransactionFactory


class TestDerivePaymentStatus:
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            ([], OrderPaymentStatus.PENDING),
            ([TransactionStatus.INITIATED], OrderPaymentStatus.PENDING),
            ([TransactionStatus.PENDING], OrderPaymentStatus.PENDING),
            ([TransactionStatus.COMPLETED], OrderPaymentStatus.PAID),
            ([TransactionStatus.FAILED], OrderPaymentStatus.FAILED),
            ([TransactionStatus.CANCELLED], OrderPaymentStatus.FAILED),
        ],
    )
    def test_single_transaction(self, statuses, expected):
        assert derive_payment_status(statuses) == expected

    def test_latest_transaction_decides(self):
        """Should follow the newest transaction when none completed."""
        statuses = [TransactionStatus.PENDING, TransactionStatus.FAILED]

        assert derive_payment_status(statuses) == OrderPaymentStatus.PENDING

    def test_any_completed_wins(self):
        """Should stay paid when a later attempt failed."""
        statuses = [TransactionStatus.FAILED, TransactionStatus.COMPLETED]

        assert derive_payment_status(statuses) == OrderPaymentStatus.PAID


class TestOrderPaymentSync:
    """Tests for OrderPaymentSync.sync."""

    def test_order_without_transactions_unchanged(self, upi_order):
        OrderPaymentSync.sync(upi_order)

        upi_order.refresh_from_db()
        assert upi_order.payment_status == OrderPaymentStatus.PENDING
        assert upi_order.status == OrderStatus.PENDING

    def test_completed_confirms_order(self, upi_order):
        PaymentTransactionFactory(order=upi_order, status=TransactionStatus.COMPLETED)

        OrderPaymentSync.sync(upi_order)

        upi_order.refresh_from_db()
        assert upi_order.payment_status == OrderPaymentStatus.PAID
        assert upi_order.status == OrderStatus.CONFIRMED
        assert upi_order.paid_at is not None

    def test_failed_keeps_order_pending(self, upi_order):
        """Should mark payment failed without cancelling the order."""
        PaymentTransactionFactory(order=upi_order, status=TransactionStatus.FAILED)

        OrderPaymentSync.sync(upi_order)

        upi_order.refresh_from_db()
        assert upi_order.payment_status == OrderPaymentStatus.FAILED
        assert upi_order.status == OrderStatus.PENDING
        assert upi_order.payment_failed_at is not None

    def test_new_attempt_clears_failure(self, upi_order):
        PaymentTransactionFactory(order=upi_order, status=TransactionStatus.FAILED, attempt_number=1)
        OrderPaymentSync.sync(upi_order)

        PaymentTransactionFactory(order=upi_order, status=TransactionStatus.PENDING, attempt_number=2)
        OrderPaymentSync.sync(upi_order)

        upi_order.refresh_from_db()
        assert upi_order.payment_status == OrderPaymentStatus.PENDING
        assert upi_order.payment_failed_at is None

    def test_no_write_when_unchanged(self, upi_order, django_assert_num_queries):
        PaymentTransactionFactory(order=upi_order, status=TransactionStatus.PENDING)

        with django_assert_num_queries(1):
            OrderPaymentSync.sync(upi_order)
