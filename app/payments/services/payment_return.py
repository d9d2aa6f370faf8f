"""
Browser return from the provider's hosted page.

The return is only a hint: it records a `return` PaymentEvent once per
(transaction, provider reference) and makes the reconciliation job due
now. The payment outcome is still decided by polling or webhooks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService, ServiceResult
from payments.exceptions import PaymentNotFoundError
from payments.models import PaymentEvent, PaymentTransaction
from payments.services.reconciliation_service import ReconciliationService
from payments.state_machines import PaymentEventType, PaymentProvider

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

TRANSACTION_ID_PARAMS = ("merchantTransactionId", "transactionId", "order_id", "orderId")


@dataclass
class ReturnOutcome:
    transaction: PaymentTransaction
    event: PaymentEvent
    duplicate: bool

    @property
    def is_complete(self) -> bool:
        return self.transaction.is_terminal


class PaymentReturnService(BaseService):
    @classmethod
    def handle_return(
        cls,
        provider: str,
        params: Mapping[str, str],
        now: datetime | None = None,
    ) -> ServiceResult[ReturnOutcome]:
        try:
            provider = PaymentProvider(provider)
        except ValueError:
            return ServiceResult.from_exception(
                PaymentNotFoundError("Unknown payment provider", error_code="PROVIDER_NOT_FOUND")
            )

        merchant_transaction_id = next(
            (params[key] for key in TRANSACTION_ID_PARAMS if params.get(key)), None
        )
        payment_transaction = (
            PaymentTransaction.objects.select_related("order")
            .filter(provider=provider, merchant_transaction_id=merchant_transaction_id)
            .first()
            if merchant_transaction_id
            else None
        )
        if payment_transaction is None:
            return ServiceResult.from_exception(
                PaymentNotFoundError("Payment transaction not found", error_code="TRANSACTION_NOT_FOUND")
            )

        now = now or timezone.now()
        reference = params.get("providerReferenceId") or ""
        event, created = PaymentEvent.objects.get_or_create(
            event_key=f"{provider.value}:return:{merchant_transaction_id}:{reference}".lower(),
            defaults={
                "provider": provider,
                "event_type": PaymentEventType.RETURN,
                "order_id": payment_transaction.order_id,
                "transaction": payment_transaction,
                "payload": dict(params.items()),
                "processed_at": now,
            },
        )

        if not payment_transaction.is_terminal:
            ReconciliationService.bring_forward(payment_transaction, now=now)

        cls.get_logger().info(
            "Payment return received",
            extra={
                "order_id": str(payment_transaction.order_id),
                "merchant_transaction_id": merchant_transaction_id,
                "provider": provider.value,
                "duplicate": not created,
            },
        )
        return ServiceResult.success(
            ReturnOutcome(transaction=payment_transaction, event=event, duplicate=not created)
        )
