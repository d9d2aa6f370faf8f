"""
Discount offers and their redemptions.

Offer rules are evaluated by orders.pricing.OfferResolver; these models
only hold the configuration and the usage counters.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from orders.states import DiscountType


class Offer(UUIDPrimaryKeyMixin, BaseModel):
    """
    A coupon code with a percentage or flat discount.

    Percentage offers may be capped by max_discount. Usage is limited
    globally (global_usage_limit) and per user (per_user_usage_limit).
    """

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(
        max_length=20,
        choices=DiscountType.choices,
    )
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    max_discount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Upper bound for percentage discounts",
    )
    min_cart_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0"),
    )
    global_usage_limit = models.PositiveIntegerField(null=True, blank=True)
    per_user_usage_limit = models.PositiveIntegerField(default=1)
    current_usage = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["code"]

    def __str__(self) -> str:
        return self.code


class OfferRedemption(UUIDPrimaryKeyMixin, BaseModel):
    """Record of an offer applied to an order."""

    offer = models.ForeignKey(
        Offer,
        on_delete=models.PROTECT,
        related_name="redemptions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="offer_redemptions",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="offer_redemptions",
    )
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self) -> str:
        return f"{self.offer_id} on {self.order_id}"
