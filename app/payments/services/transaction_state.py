"""
Single entry point for payment transaction state changes.

Every out-of-band update (status poll, webhook) goes through
TransactionStateService.apply_provider_status, which:

1. Locks the transaction row (select_for_update)
2. Ignores updates to terminal transactions
3. Records UPI metadata (payer handle, UTR, payment mode)
4. Applies the FSM transition
5. Closes the reconciliation job when the transaction became terminal
6. Re-derives the order's payment status

Usage:
    from payments.services import StatusUpdate, TransactionStateService

    TransactionStateService.apply_provider_status(
        transaction,
        StatusUpdate.from_provider_status(status),
        source=PaymentEventType.POLL,
    )
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from django.db import transaction as db_transaction
from django.utils import timezone
from django_fsm import can_proceed

from core.services import BaseService, ServiceResult
from payments.exceptions import InvalidStateTransitionError
from payments.models import PaymentTransaction, ReconciliationJob
from payments.services.order_sync import OrderPaymentSync
from payments.state_machines import (
    PaymentEventType,
    ReconciliationStatus,
    TransactionStatus,
)

if TYPE_CHECKING:
    from typing import Any

    from payments.adapters import ProviderStatus, ProviderWebhook


@dataclass
class StatusUpdate:
    """
    Provider-reported state of a transaction, independent of its source.
    """

    status: str
    raw_status: str = ""
    response_code: str = ""
    provider_payment_id: str = ""
    provider_transaction_id: str = ""
    utr: str = ""
    payer_handle: str = ""
    payment_mode: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_provider_status(cls, status: ProviderStatus) -> StatusUpdate:
        return cls(
            status=status.status,
            raw_status=status.raw_status,
            response_code=status.response_code,
            provider_payment_id=status.provider_payment_id,
            provider_transaction_id=status.provider_transaction_id,
            utr=status.utr,
            payer_handle=status.payer_handle,
            payment_mode=status.payment_mode,
            raw_response=status.raw_response,
        )

    @classmethod
    def from_webhook(cls, webhook: ProviderWebhook) -> StatusUpdate:
        return cls(
            status=webhook.status,
            raw_status=webhook.raw_status,
            response_code=webhook.event_type,
            provider_payment_id=webhook.provider_payment_id,
            provider_transaction_id=webhook.provider_transaction_id,
            utr=webhook.utr,
            payer_handle=webhook.payer_handle,
            payment_mode=webhook.payment_mode,
            raw_response=webhook.payload,
        )

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StatusUpdate:
        """Rebuild an update stored on a PaymentEvent by to_payload()."""
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in payload.items() if k in known})

    def to_payload(self) -> dict[str, Any]:
        return {**asdict(self), "status": str(self.status)}


@dataclass
class TransitionOutcome:
    transaction: PaymentTransaction
    changed: bool
    ignored: bool = False


class TransactionStateService(BaseService):
    """Applies provider-reported states to payment transactions."""

    TRANSITIONS: dict[str, str] = {
        TransactionStatus.PENDING: "mark_pending",
        TransactionStatus.COMPLETED: "complete",
        TransactionStatus.FAILED: "fail",
        TransactionStatus.CANCELLED: "cancel",
    }

    @classmethod
    def transition(
        cls,
        payment_transaction: PaymentTransaction,
        target: str,
        reason: str | None = None,
        error_code: str | None = None,
    ) -> bool:
        """
        Move an in-memory transaction to target (caller saves).

        Returns:
            True if the state changed, False if it was already in target

        Raises:
            InvalidStateTransitionError: The FSM does not allow the move
        """
        if payment_transaction.status == target:
            return False

        method_name = cls.TRANSITIONS.get(target)
        method = getattr(payment_transaction, method_name) if method_name else None
        if method is None or not can_proceed(method):
            raise InvalidStateTransitionError(
                f"Cannot move transaction from '{payment_transaction.status}' to '{target}'",
                details={
                    "transaction_id": str(payment_transaction.id),
                    "current_state": payment_transaction.status,
                    "target_state": str(target),
                },
            )

        if target == TransactionStatus.FAILED:
            method(reason=reason, error_code=error_code)
        elif target == TransactionStatus.CANCELLED:
            method(reason=reason)
        else:
            method()
        return True

    @classmethod
    def close_reconciliation_job(cls, payment_transaction: PaymentTransaction, now=None) -> int:
        """Close the pending job of a terminal transaction. Returns rows updated."""
        now = now or timezone.now()
        job_status = (
            ReconciliationStatus.COMPLETED
            if payment_transaction.status == TransactionStatus.COMPLETED
            else ReconciliationStatus.FAILED
        )
        return ReconciliationJob.objects.filter(
            transaction=payment_transaction,
            status=ReconciliationStatus.PENDING,
        ).update(status=job_status, completed_at=now, updated_at=now)

    @classmethod
    def apply_provider_status(
        cls,
        payment_transaction: PaymentTransaction,
        update: StatusUpdate,
        source: str = PaymentEventType.POLL,
    ) -> ServiceResult[TransitionOutcome]:
        """
        Apply a provider-reported status to a transaction.

        Terminal transactions are never reopened: updates to them are
        acknowledged and ignored.
        """
        logger = cls.get_logger()
        log_context = {
            "transaction_id": str(payment_transaction.pk),
            "provider": payment_transaction.provider,
            "source": str(source),
            "raw_status": update.raw_status,
        }

        with db_transaction.atomic():
            locked = (
                PaymentTransaction.objects.select_for_update()
                .select_related("order")
                .get(pk=payment_transaction.pk)
            )

            if locked.is_terminal:
                logger.info("Ignoring update for terminal transaction", extra=log_context)
                return ServiceResult.success(
                    TransitionOutcome(transaction=locked, changed=False, ignored=True)
                )

            cls._record_details(locked, update, source)

            try:
                changed = cls.transition(
                    locked,
                    update.status,
                    reason=f"Provider reported {update.raw_status or update.status}",
                    error_code=update.response_code or None,
                )
            except InvalidStateTransitionError as e:
                logger.warning("Rejected provider status update", extra=log_context)
                return ServiceResult.from_exception(e)

            locked.save()

            if locked.is_terminal:
                cls.close_reconciliation_job(locked)

            OrderPaymentSync.sync(locked.order)

        if changed:
            logger.info(
                "Transaction status updated",
                extra={**log_context, "status": locked.status},
            )
        return ServiceResult.success(TransitionOutcome(transaction=locked, changed=changed))

    @staticmethod
    def _record_details(
        payment_transaction: PaymentTransaction,
        update: StatusUpdate,
        source: str,
    ) -> None:
        if update.payer_handle:
            payment_transaction.upi_payer_handle = update.payer_handle
        if update.utr:
            payment_transaction.upi_utr = update.utr
        if update.payment_mode:
            payment_transaction.payment_mode = update.payment_mode
        if update.provider_payment_id:
            payment_transaction.provider_payment_id = update.provider_payment_id
        if update.provider_transaction_id and not payment_transaction.provider_transaction_id:
            payment_transaction.provider_transaction_id = update.provider_transaction_id

        if source == PaymentEventType.WEBHOOK:
            payment_transaction.webhook_data = update.raw_response
        elif update.raw_response:
            payment_transaction.gateway_response = update.raw_response
