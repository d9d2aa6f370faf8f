"""
CheckoutIntent model: a short-lived, single-use priced checkout snapshot.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from orders.states import PaymentMethod


class CheckoutIntent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Priced checkout staged before the order is placed.

    The intent freezes subtotal, discount, shipping and total together with
    the cart lines and their unit prices, so the amount charged is the amount
    shown even if prices or offer rules change before the order is placed.

    An intent is usable only by the session that created it, only before
    expires_at, and only once: is_consumed flips exactly once (see
    orders.services.CheckoutIntentStore.consume).
    """

    session_id = models.CharField(max_length=64, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="checkout_intents",
    )
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    shipping_charge = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=10, decimal_places=2)
    cart_snapshot = models.JSONField(
        default=list,
        help_text="List of {productId, quantity, price} at intent creation",
    )
    delivery_address = models.ForeignKey(
        "orders.Address",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout_intents",
    )
    offer = models.ForeignKey(
        "orders.Offer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout_intents",
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    expires_at = models.DateTimeField(db_index=True)
    is_consumed = models.BooleanField(default=False)
    consumed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        state = "consumed" if self.is_consumed else "open"
        return f"CheckoutIntent {self.id} ({state})"

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()
