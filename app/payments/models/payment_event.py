"""
PaymentEvent model for out-of-band payment signals.

Every browser return, verified provider webhook and status poll result is
stored once. The unique event_key makes repeated deliveries of the same
signal no-ops.

Usage:
    from payments.models import PaymentEvent

    event, created = PaymentEvent.objects.get_or_create(
        event_key="cashfree:webhook:TXN_1700000000000_abc123xyz:PAYMENT_SUCCESS_WEBHOOK",
        defaults={
            "provider": "cashfree",
            "event_type": PaymentEventType.WEBHOOK,
            "payload": payload,
        },
    )
    if not created:
        # Duplicate delivery - already recorded
        ...
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import PaymentEventType, PaymentProvider


class PaymentEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Deduplicated log of out-of-band payment signals.

    Processing Flow:
        1. Signal arrives (webhook verified, or return probe)
        2. get_or_create by event_key
        3. If it already existed -> acknowledge, do nothing
        4. Otherwise hand off to processing and stamp processed_at
           (or processing_error)
    """

    provider = models.CharField(max_length=20, choices=PaymentProvider.choices)
    event_type = models.CharField(max_length=20, choices=PaymentEventType.choices)
    event_key = models.CharField(max_length=255, unique=True)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_events",
    )
    transaction = models.ForeignKey(
        "payments.PaymentTransaction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="events",
    )
    payload = models.JSONField(default=dict, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    processing_error = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Event"
        verbose_name_plural = "Payment Events"
        indexes = [
            models.Index(fields=["provider", "event_type"], name="event_provider_type_idx"),
        ]

    def __str__(self) -> str:
        return f"PaymentEvent({self.event_key})"

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None
