"""
Retry payment for an order whose reconciliation window expired.

The expired transaction is left untouched (a late confirmation still pays
the order); a new transaction and job are created instead. Retries are
limited by PAYMENT_MAX_EXPIRY_RETRIES.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from orders.states import OrderPaymentStatus
from payments.exceptions import PaymentRetryError
from payments.models import ReconciliationJob
from payments.services.order_info import OrderAccess
from payments.services.payment_initiation import PaymentInitiation, PaymentInitiationService
from payments.services.reconciliation_service import ReconciliationService
from payments.state_machines import PaymentProvider, ReconciliationStatus

if TYPE_CHECKING:
    from typing import Any

    from orders.models import Order

RETRY_OF_KEY = "retry_of"


@dataclass
class RetryOutcome:
    order: Order
    initiation: PaymentInitiation
    reconciliation: dict[str, Any] | None


class PaymentRetryService(BaseService):
    @classmethod
    def check_retryable(cls, order: Order, provider: PaymentProvider) -> ReconciliationJob:
        """
        Returns:
            The expired job the new attempt replaces

        Raises:
            PaymentRetryError: With the refusal reason as error_code
        """
        if order.payment_method != provider:
            raise PaymentRetryError(
                "Order was not placed with this payment provider",
                error_code="PAYMENT_METHOD_MISMATCH",
                details={"paymentMethod": order.payment_method},
            )
        if order.payment_status == OrderPaymentStatus.PAID:
            raise PaymentRetryError("Order is already paid", error_code="ORDER_ALREADY_PAID")

        # Latest job of the order, not of the latest transaction: a retry whose
        # gateway call failed leaves no job, and the expired one still counts
        job = ReconciliationJob.objects.filter(order=order).order_by("-created_at").first()
        if job is None or job.status != ReconciliationStatus.EXPIRED:
            raise PaymentRetryError(
                "Payment can only be retried after the previous attempt expired",
                error_code="PAYMENT_RETRY_NOT_ALLOWED",
            )

        retries = order.transactions.filter(metadata__has_key=RETRY_OF_KEY).count()
        if retries >= settings.PAYMENT_MAX_EXPIRY_RETRIES:
            raise PaymentRetryError(
                "Maximum number of payment retries reached",
                error_code="PAYMENT_RETRY_LIMIT_REACHED",
                details={"maxRetries": settings.PAYMENT_MAX_EXPIRY_RETRIES},
            )
        return job

    @classmethod
    def retry(cls, order_id, provider: str, user) -> ServiceResult[RetryOutcome]:
        try:
            provider = PaymentProvider(provider)
            order = OrderAccess.get_for_user(order_id, user)
            expired_job = cls.check_retryable(order, provider)
        except ValueError:
            return ServiceResult.failure(
                "Unknown payment provider", error_code="PROVIDER_NOT_FOUND", status_code=404
            )
        except BaseApplicationError as e:
            cls.get_logger().info(
                "Payment retry refused",
                extra={"order_id": str(order_id), "provider": str(provider), "error_code": e.error_code},
            )
            return ServiceResult.from_exception(e)

        result = PaymentInitiationService.initiate(
            order,
            provider,
            metadata={RETRY_OF_KEY: expired_job.merchant_transaction_id},
        )
        if not result.success:
            return result

        order.refresh_from_db()
        return ServiceResult.success(
            RetryOutcome(
                order=order,
                initiation=result.data,
                reconciliation=ReconciliationService.snapshot(order),
            )
        )
