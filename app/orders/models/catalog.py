"""
Product and session cart models.

The catalog itself is managed elsewhere; orders only need the current
price of a product and the session-keyed cart lines that reference it.
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Product(UUIDPrimaryKeyMixin, BaseModel):
    """A purchasable product and its current unit price."""

    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Current unit price in rupees",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class CartItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    One line of a session cart.

    Carts are keyed by session id rather than user so that guests can shop
    before signing in; order intake receives the session id explicitly.
    """

    session_id = models.CharField(max_length=64, db_index=True)
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["session_id", "product"],
                name="unique_cart_line_per_product",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.product_id} ({self.session_id})"

    @property
    def line_total(self):
        return self.product.price * self.quantity
