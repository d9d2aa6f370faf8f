"""
PaymentTransaction model: one attempt to collect payment for an order.

An order may accumulate several transactions (a failed gateway call,
an expired UPI session followed by a retry, ...). The order's
payment_status is always derived from them by
payments.services.order_sync.

Usage:
    from payments.models import PaymentTransaction
    from payments.state_machines import PaymentProvider

    transaction = PaymentTransaction.objects.create(
        order=order,
        provider=PaymentProvider.CASHFREE,
        amount=order.total,
        amount_minor=order.amount_minor,
    )

    # State transitions using django-fsm
    transaction.mark_pending()  # initiated -> pending
    transaction.save()
"""

from __future__ import annotations

import secrets
import string
import time

from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PaymentProvider, TransactionStatus

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def generate_merchant_transaction_id() -> str:
    """
    Return a fresh merchant transaction id: TXN_<epoch-ms>_<9 base36 chars>.

    This id is the provider-facing order reference, so it must never be
    reused across transactions.
    """
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


class PaymentTransaction(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    A single payment attempt with one provider.

    State Flow:
        INITIATED -> PENDING -> COMPLETED
        INITIATED/PENDING -> FAILED
        INITIATED/PENDING -> CANCELLED

    Terminal transactions are never reopened. Retrying payment creates
    a new transaction with a new merchant_transaction_id.

    Fields:
        order: Order being paid
        provider: Payment provider handling this attempt
        status: Current FSM state
        amount / amount_minor: Amount in rupees and in paise
        merchant_transaction_id: Our reference, sent to the provider as order id
        provider_*: Identifiers assigned by the provider
        upi_*: UPI payer details (stored unmasked; masked on every read API)
        gateway_response: Last raw create/status response from the provider
        webhook_data: Last verified webhook payload
        attempt_number: 1-based sequence of transactions for the order
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    # ==========================================================================
    # Provider & State
    # ==========================================================================

    provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
    )

    status = FSMField(
        default=TransactionStatus.INITIATED,
        choices=TransactionStatus.choices,
        db_index=True,
        help_text="Current state of the transaction (managed by FSM)",
    )

    attempt_number = models.PositiveIntegerField(
        default=1,
        help_text="Sequence number of this transaction within its order",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(max_digits=10, decimal_places=2)
    amount_minor = models.PositiveIntegerField(help_text="Amount in paise")
    currency = models.CharField(max_length=3, default="INR")

    # ==========================================================================
    # Identifiers
    # ==========================================================================

    merchant_transaction_id = models.CharField(
        max_length=64,
        unique=True,
        default=generate_merchant_transaction_id,
    )
    provider_order_id = models.CharField(max_length=128, blank=True, db_index=True)
    provider_session_token = models.TextField(blank=True)
    provider_payment_id = models.CharField(max_length=128, blank=True)
    provider_transaction_id = models.CharField(max_length=128, blank=True)
    provider_reference_id = models.CharField(max_length=128, blank=True)

    # ==========================================================================
    # UPI details
    # ==========================================================================

    payment_mode = models.CharField(max_length=50, blank=True)
    upi_payer_handle = models.CharField(max_length=255, blank=True)
    upi_utr = models.CharField(max_length=64, blank=True)
    upi_instrument_label = models.CharField(max_length=100, blank=True)

    # ==========================================================================
    # URLs, Payloads & Error Info
    # ==========================================================================

    redirect_url = models.URLField(max_length=1024, blank=True)
    receipt_url = models.URLField(max_length=1024, blank=True)
    failure_reason = models.TextField(blank=True)
    error_code = models.CharField(max_length=100, blank=True)
    gateway_response = models.JSONField(default=dict, blank=True)
    webhook_data = models.JSONField(default=dict, blank=True)

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    expires_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Transaction"
        verbose_name_plural = "Payment Transactions"
        indexes = [
            models.Index(fields=["order", "-created_at"], name="txn_order_created_idx"),
            models.Index(fields=["provider", "status"], name="txn_provider_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "attempt_number"],
                name="unique_transaction_attempt_per_order",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_minor__gt=0),
                name="transaction_amount_minor_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentTransaction({self.merchant_transaction_id}, {self.provider}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return TransactionStatus.is_terminal(self.status)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=TransactionStatus.INITIATED,
        target=TransactionStatus.PENDING,
    )
    def mark_pending(self):
        """
        Provider accepted the payment request.

        Transition: INITIATED -> PENDING

        The customer can now approve the payment in their UPI app.
        """

    @transition(
        field=status,
        source=[TransactionStatus.INITIATED, TransactionStatus.PENDING],
        target=TransactionStatus.COMPLETED,
    )
    def complete(self):
        """
        Provider confirmed the payment.

        Transition: INITIATED/PENDING -> COMPLETED
        """
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[TransactionStatus.INITIATED, TransactionStatus.PENDING],
        target=TransactionStatus.FAILED,
    )
    def fail(self, reason: str | None = None, error_code: str | None = None):
        """
        Mark the attempt as failed.

        Transition: INITIATED/PENDING -> FAILED

        Called when the provider reports failure or when the gateway
        could not be reached after all retries.

        Args:
            reason: Optional failure reason for debugging
            error_code: Machine-readable provider or internal error code
        """
        self.failed_at = timezone.now()
        if reason:
            self.failure_reason = reason
        if error_code:
            self.error_code = error_code

    @transition(
        field=status,
        source=[TransactionStatus.INITIATED, TransactionStatus.PENDING],
        target=TransactionStatus.CANCELLED,
    )
    def cancel(self, reason: str | None = None):
        """
        Customer or provider abandoned the attempt.

        Transition: INITIATED/PENDING -> CANCELLED
        """
        self.cancelled_at = timezone.now()
        if reason:
            self.failure_reason = reason
