"""
Payment services for initiating and reconciling UPI payments.

This module provides:
- PaymentInitiationService: Hands an order to a provider
- TransactionStateService: Applies provider-reported statuses
- OrderPaymentSync: Projects transactions onto order.payment_status
- ReconciliationService: Polls providers for pending transactions
- OrderInfoService / PaymentReturnService / PaymentRetryService: API reads
  and actions behind the payments endpoints

Usage:
    from payments.services import PaymentInitiationService

    result = PaymentInitiationService.initiate(order, PaymentProvider.PHONEPE)

    # Poll one job (normally done by the beat sweep)
    from payments.services import ReconciliationService

    ReconciliationService.poll_job(job_id)

    # Order payment state for the client poller
    from payments.services import OrderInfoService

    result = OrderInfoService.get_order_info(order_id, request.user)
"""

from payments.services.order_info import OrderAccess, OrderInfo, OrderInfoService
from payments.services.order_sync import OrderPaymentSync, derive_payment_status
from payments.services.payment_initiation import (
    PaymentInitiation,
    PaymentInitiationService,
    customer_for_order,
)
from payments.services.payment_retry import PaymentRetryService, RetryOutcome
from payments.services.payment_return import PaymentReturnService, ReturnOutcome
from payments.services.reconciliation_service import (
    PollOutcome,
    ReconciliationService,
    classify_provider_status,
    poll_interval,
)
from payments.services.transaction_state import (
    StatusUpdate,
    TransactionStateService,
    TransitionOutcome,
)

__all__ = [
    "OrderAccess",
    "OrderInfo",
    "OrderInfoService",
    "OrderPaymentSync",
    "PaymentInitiation",
    "PaymentInitiationService",
    "PaymentRetryService",
    "PaymentReturnService",
    "PollOutcome",
    "ReconciliationService",
    "RetryOutcome",
    "ReturnOutcome",
    "StatusUpdate",
    "TransactionStateService",
    "TransitionOutcome",
    "classify_provider_status",
    "customer_for_order",
    "derive_payment_status",
    "poll_interval",
]
