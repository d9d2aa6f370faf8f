"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration;
PaymentTransaction.status is driven by django-fsm.

State Machines Overview:

PaymentTransaction States:
    initiated → pending → completed
    initiated/pending → failed
    initiated/pending → cancelled
    initiated → completed (provider order reused after it already finished)

ReconciliationJob States:
    pending → completed | failed | expired

Refund States:
    initiated → pending → completed
    initiated/pending → failed
"""

from django.db import models


class TransactionStatus(models.TextChoices):
    """
    States for the PaymentTransaction lifecycle.

    Terminal states: COMPLETED, FAILED, CANCELLED. A terminal transaction
    is never reopened; paying again creates a new transaction.
    """

    INITIATED = "initiated", "Initiated"
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"

    @classmethod
    def terminal(cls) -> frozenset[str]:
        return frozenset({cls.COMPLETED, cls.FAILED, cls.CANCELLED})

    @classmethod
    def is_terminal(cls, value: str) -> bool:
        return value in cls.terminal()


class PaymentProvider(models.TextChoices):
    """
    External payment providers.

    Values double as the stored Order.payment_method for provider-backed
    orders.
    """

    CASHFREE = "cashfree", "Cashfree"
    PHONEPE = "phonepe", "PhonePe"


class ReconciliationStatus(models.TextChoices):
    """
    Status of a server-side reconciliation (status polling) job.

    State Flow:
        PENDING → COMPLETED (provider reported success)
        PENDING → FAILED (provider reported failure or cancellation)
        PENDING → EXPIRED (window elapsed without a terminal status)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    EXPIRED = "expired", "Expired"


class RefundStatus(models.TextChoices):
    INITIATED = "initiated", "Initiated"
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PaymentEventType(models.TextChoices):
    """Source of an out-of-band payment signal."""

    RETURN = "return", "Browser return"
    WEBHOOK = "webhook", "Webhook"
    POLL = "poll", "Status poll"


# Raw provider statuses, lowercased, that end a reconciliation job
TERMINAL_SUCCESS_STATUSES = frozenset({"captured", "completed", "paid", "succeeded", "success"})
TERMINAL_FAILURE_STATUSES = frozenset({"failed", "cancelled", "canceled", "timedout", "expired"})


__all__ = [
    "PaymentEventType",
    "PaymentProvider",
    "ReconciliationStatus",
    "RefundStatus",
    "TERMINAL_FAILURE_STATUSES",
    "TERMINAL_SUCCESS_STATUSES",
    "TransactionStatus",
]
