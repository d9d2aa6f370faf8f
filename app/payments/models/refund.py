"""
PaymentRefund model.

Refunds are recorded for bookkeeping and listed in the admin; issuing
them against the provider is handled outside this service.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import RefundStatus


class PaymentRefund(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money returned against a completed transaction.

    Fields:
        transaction: Transaction being refunded
        order: Denormalized order reference for reporting
        merchant_refund_id: Our unique refund reference
        provider_refund_id: Provider-assigned refund id, once known
    """

    transaction = models.ForeignKey(
        "payments.PaymentTransaction",
        on_delete=models.PROTECT,
        related_name="refunds",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
    )
    status = models.CharField(
        max_length=20,
        choices=RefundStatus.choices,
        default=RefundStatus.INITIATED,
        db_index=True,
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    amount_minor = models.PositiveIntegerField(help_text="Amount in paise")
    merchant_refund_id = models.CharField(max_length=64, unique=True)
    provider_refund_id = models.CharField(max_length=128, blank=True)
    reason = models.TextField(blank=True)
    gateway_response = models.JSONField(default=dict, blank=True)
    error_code = models.CharField(max_length=100, blank=True)
    error_message = models.TextField(blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Refund"
        verbose_name_plural = "Payment Refunds"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_minor__gt=0),
                name="refund_amount_minor_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentRefund({self.merchant_refund_id}, {self.status})"
