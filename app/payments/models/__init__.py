"""
Payment domain models.

This module contains all payment-related models:
- PaymentTransaction: One attempt to collect payment for an order
- PaymentRefund: Money returned against a completed transaction
- ReconciliationJob: Server-side status polling for a transaction
- PaymentEvent: Deduplicated log of returns, webhooks and poll results
"""

from payments.models.payment_event import PaymentEvent
from payments.models.reconciliation import ReconciliationJob
from payments.models.refund import PaymentRefund
from payments.models.transaction import (
    PaymentTransaction,
    generate_merchant_transaction_id,
)

__all__ = [
    "PaymentEvent",
    "PaymentRefund",
    "PaymentTransaction",
    "ReconciliationJob",
    "generate_merchant_transaction_id",
]
