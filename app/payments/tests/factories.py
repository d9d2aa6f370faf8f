"""
Factory Boy factories for payment test data.

This module provides factories for creating test instances of payment models.
Factories generate realistic test data while allowing easy customization.

Usage:
    from payments.tests.factories import (
        PaymentEventFactory,
        PaymentTransactionFactory,
        ReconciliationJobFactory,
    )

    # Pending Cashfree transaction for a new UPI order
    transaction = PaymentTransactionFactory()

    # Transaction in a specific state
    transaction = PaymentTransactionFactory(status=TransactionStatus.COMPLETED)

    # Job due for polling now
    job = ReconciliationJobFactory(transaction=transaction, next_poll_at=timezone.now())
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from orders.states import PaymentMethod
from orders.tests.factories import OrderFactory
from payments.adapters import ProviderStatus
from payments.models import (
    PaymentEvent,
    PaymentRefund,
    PaymentTransaction,
    ReconciliationJob,
)
from payments.state_machines import (
    PaymentEventType,
    PaymentProvider,
    ReconciliationStatus,
    RefundStatus,
    TransactionStatus,
)


class PaymentTransactionFactory(factory.django.DjangoModelFactory):
    """
    Factory for PaymentTransaction instances.

    Default creates a PENDING Cashfree transaction for the order's total.
    The order is created as a Cashfree order so that payment_method and
    provider agree.

    Example:
        # PhonePe attempt for an existing order
        transaction = PaymentTransactionFactory(
            order=order,
            provider=PaymentProvider.PHONEPE,
            attempt_number=2,
        )
    """

    class Meta:
        model = PaymentTransaction

    order = factory.SubFactory(OrderFactory, payment_method=PaymentMethod.CASHFREE)
    provider = PaymentProvider.CASHFREE
    status = TransactionStatus.PENDING
    attempt_number = 1
    amount = factory.LazyAttribute(lambda o: o.order.total)
    amount_minor = factory.LazyAttribute(lambda o: o.order.amount_minor)
    currency = "INR"
    provider_order_id = factory.LazyAttribute(lambda o: o.merchant_transaction_id)
    merchant_transaction_id = factory.Sequence(lambda n: f"TXN_1767225600000_{n:09d}")
    metadata = factory.LazyFunction(dict)


class ReconciliationJobFactory(factory.django.DjangoModelFactory):
    """
    Factory for ReconciliationJob instances.

    Default job is pending, first poll in 15 seconds, window 15 minutes.
    """

    class Meta:
        model = ReconciliationJob

    transaction = factory.SubFactory(PaymentTransactionFactory)
    order = factory.SelfAttribute("transaction.order")
    merchant_transaction_id = factory.SelfAttribute("transaction.merchant_transaction_id")
    status = ReconciliationStatus.PENDING
    attempt = 0
    next_poll_at = factory.LazyFunction(lambda: timezone.now() + timedelta(seconds=15))
    expire_at = factory.LazyFunction(lambda: timezone.now() + timedelta(seconds=900))


class PaymentEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for PaymentEvent instances.

    Default creates an unprocessed webhook event reporting success.
    """

    class Meta:
        model = PaymentEvent

    transaction = factory.SubFactory(PaymentTransactionFactory)
    order = factory.SelfAttribute("transaction.order")
    provider = factory.SelfAttribute("transaction.provider")
    event_type = PaymentEventType.WEBHOOK
    event_key = factory.Sequence(lambda n: f"cashfree:webhook:txn_{n}:payment_success_webhook:success")
    payload = factory.LazyFunction(
        lambda: {
            "status": TransactionStatus.COMPLETED.value,
            "raw_status": "SUCCESS",
            "response_code": "PAYMENT_SUCCESS_WEBHOOK",
            "provider_payment_id": "5114917039291",
            "utr": "412345678901",
            "payer_handle": "rahul.sharma@okaxis",
            "payment_mode": "upi",
        }
    )
    processed_at = None


class PaymentRefundFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PaymentRefund

    transaction = factory.SubFactory(PaymentTransactionFactory, status=TransactionStatus.COMPLETED)
    order = factory.SelfAttribute("transaction.order")
    status = RefundStatus.COMPLETED
    amount = Decimal("50.00")
    amount_minor = 5000
    merchant_refund_id = factory.Sequence(lambda n: f"RFD_{n:06d}")


def provider_status(raw_status: str, status: TransactionStatus, **kwargs) -> ProviderStatus:
    """Build a ProviderStatus as an adapter's fetch_status would return it."""
    return ProviderStatus(
        order_id=kwargs.pop("order_id", "TXN_1767225600000_000000001"),
        raw_status=raw_status,
        status=status,
        response_code=kwargs.pop("response_code", raw_status),
        **kwargs,
    )
