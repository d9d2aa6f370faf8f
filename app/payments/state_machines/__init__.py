"""
State machine enums and helpers for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    TERMINAL_FAILURE_STATUSES,
    TERMINAL_SUCCESS_STATUSES,
    PaymentEventType,
    PaymentProvider,
    ReconciliationStatus,
    RefundStatus,
    TransactionStatus,
)

__all__ = [
    "PaymentEventType",
    "PaymentProvider",
    "ReconciliationStatus",
    "RefundStatus",
    "TERMINAL_FAILURE_STATUSES",
    "TERMINAL_SUCCESS_STATUSES",
    "TransactionStatus",
]
