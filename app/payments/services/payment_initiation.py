"""
Hand an order to a payment provider.

Flow:
    1. Create a PaymentTransaction (initiated) with a fresh merchant
       transaction id and the next attempt number
    2. adapter.create_payment through with_retry (transient errors only)
    3. Success: store provider ids, apply the returned status, create the
       ReconciliationJob, sync the order
    4. Retries exhausted: fail the transaction and sync the order; the
       order itself stays pending so payment can be retried

Usage:
    from payments.services import PaymentInitiationService

    result = PaymentInitiationService.initiate(order, PaymentProvider.CASHFREE)
    if result.success:
        redirect_to(result.data.transaction.redirect_url)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import Max

from core.exceptions import ExternalServiceError
from core.services import BaseService, ServiceResult
from payments.adapters import CreatePaymentParams, CustomerDetails, get_adapter
from payments.exceptions import ProviderError, is_retryable_provider_error
from payments.models import PaymentTransaction
from payments.retry import RetryPolicy, with_retry
from payments.services.order_sync import OrderPaymentSync
from payments.services.reconciliation_service import ReconciliationService
from payments.services.transaction_state import TransactionStateService
from payments.state_machines import PaymentProvider, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from orders.models import Order
    from payments.adapters import ProviderPaymentResult
    from payments.models import ReconciliationJob


def customer_for_order(order: Order) -> CustomerDetails:
    """Payer details sent to the provider, taken from the order's user."""
    user = order.user
    return CustomerDetails(
        customer_id=str(user.pk),
        phone=order.contact_phone or None,
        email=user.email or None,
        name=user.get_full_name() or user.get_username(),
    )


@dataclass
class PaymentInitiation:
    transaction: PaymentTransaction
    job: ReconciliationJob
    provider_result: ProviderPaymentResult

    @property
    def payment_payload(self) -> dict[str, Any]:
        txn = self.transaction
        return {
            "provider": txn.provider,
            "transactionId": str(txn.id),
            "merchantTransactionId": txn.merchant_transaction_id,
            "providerOrderId": txn.provider_order_id,
            "paymentSessionId": txn.provider_session_token or None,
            "redirectUrl": txn.redirect_url or None,
            "status": txn.status,
            "amountMinor": txn.amount_minor,
            "expiresAt": txn.expires_at,
            "reused": self.provider_result.reused,
        }


class PaymentInitiationService(BaseService):
    """Creates provider payments for orders."""

    @classmethod
    def initiate(
        cls,
        order: Order,
        provider: PaymentProvider | str,
        customer: CustomerDetails | None = None,
        metadata: dict[str, Any] | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ServiceResult[PaymentInitiation]:
        """
        Create a transaction for order and register it with the provider.

        Args:
            order: Order to charge (order.amount_minor)
            provider: Provider to use
            customer: Payer details, defaults to the order's user
            metadata: Extra metadata stored on the transaction
            policy: Retry parameters, defaults to settings
            sleep: Sleep function between retries

        Returns:
            ServiceResult with PaymentInitiation, or a GATEWAY_UNAVAILABLE
            failure (502) once retries are exhausted
        """
        logger = cls.get_logger()
        provider = PaymentProvider(provider)
        customer = customer or customer_for_order(order)
        policy = policy or RetryPolicy.from_settings()

        last_attempt = order.transactions.aggregate(last=Max("attempt_number"))["last"] or 0
        payment_transaction = PaymentTransaction.objects.create(
            order=order,
            provider=provider,
            attempt_number=last_attempt + 1,
            amount=order.total,
            amount_minor=order.amount_minor,
            metadata=metadata or {},
        )
        log_context = {
            "order_id": str(order.id),
            "transaction_id": str(payment_transaction.id),
            "merchant_transaction_id": payment_transaction.merchant_transaction_id,
            "provider": provider.value,
            "attempt": payment_transaction.attempt_number,
        }

        def log_retry(error: Exception, attempt: int, delay: float) -> None:
            logger.warning(
                "Provider call failed, retrying",
                extra={**log_context, "retry": attempt, "delay": delay, "error": str(error)},
            )

        try:
            adapter = get_adapter(provider)
            return_url = adapter.config.return_url_for(payment_transaction.merchant_transaction_id)
            params = CreatePaymentParams(
                order_id=payment_transaction.merchant_transaction_id,
                amount_minor=payment_transaction.amount_minor,
                currency=payment_transaction.currency,
                customer=customer,
                success_url=return_url,
                failure_url=return_url,
                notify_url=adapter.config.notify_url_for(),
                expire_after_seconds=settings.RECONCILIATION_WINDOW_SECONDS,
            )
            provider_result = with_retry(
                lambda: adapter.create_payment(params),
                **policy.as_kwargs(),
                on_retry=log_retry,
                retry_if=is_retryable_provider_error,
                sleep=sleep,
            )
        except ProviderError as e:
            return cls._record_gateway_failure(order, payment_transaction, e, log_context)

        with db_transaction.atomic():
            payment_transaction.provider_order_id = provider_result.provider_order_id
            payment_transaction.provider_session_token = provider_result.provider_session_token
            payment_transaction.provider_transaction_id = provider_result.provider_transaction_id
            payment_transaction.redirect_url = provider_result.redirect_url
            payment_transaction.gateway_response = provider_result.raw_response
            payment_transaction.expires_at = payment_transaction.created_at + timedelta(
                seconds=settings.RECONCILIATION_WINDOW_SECONDS
            )

            target = provider_result.status
            if target == TransactionStatus.INITIATED:
                target = TransactionStatus.PENDING
            TransactionStateService.transition(
                payment_transaction,
                target,
                reason="Provider order already finished",
            )
            payment_transaction.save()

            job = ReconciliationService.ensure_job(payment_transaction)
            OrderPaymentSync.sync(order)

        logger.info(
            "Payment initiated",
            extra={**log_context, "status": payment_transaction.status, "reused": provider_result.reused},
        )
        return ServiceResult.success(
            PaymentInitiation(
                transaction=payment_transaction,
                job=job,
                provider_result=provider_result,
            )
        )

    @classmethod
    def _record_gateway_failure(
        cls,
        order: Order,
        payment_transaction: PaymentTransaction,
        error: ProviderError,
        log_context: dict[str, Any],
    ) -> ServiceResult[PaymentInitiation]:
        with db_transaction.atomic():
            payment_transaction.fail(reason=error.message, error_code=error.error_code)
            payment_transaction.save()
            OrderPaymentSync.sync(order)

        cls.get_logger().error(
            "Payment gateway unavailable",
            extra={**log_context, "error_code": error.error_code, "http_status": error.http_status},
        )
        return ServiceResult.from_exception(
            ExternalServiceError(
                "Payment gateway unavailable",
                error_code="GATEWAY_UNAVAILABLE",
                details={
                    "provider": payment_transaction.provider,
                    "transactionId": str(payment_transaction.id),
                    "merchantTransactionId": payment_transaction.merchant_transaction_id,
                    "reason": error.message,
                },
            )
        )
