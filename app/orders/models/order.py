"""
Order and OrderItem models.

An Order is created once per successful checkout together with its
OrderItems, in a single database transaction. Afterwards only the
payment projection (payment_status, status, paid_at, payment_failed_at)
changes it; orders are never deleted.

Usage:
    from orders.models import Order

    order = Order.objects.get(id=order_id)
    order.latest_transaction()  # most recent PaymentTransaction or None
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from orders.states import OrderPaymentStatus, OrderStatus, PaymentMethod


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A placed order and its priced totals.

    Totals are stored in rupees; amount_minor is the same total in paise,
    rounded half-up, and is what payment providers are charged.

    Fields:
        payment_method: Concrete method (cod, cashfree or phonepe)
        payment_status: Projection of the order's payment transactions
        status: Fulfilment status; moves to confirmed on payment
        checkout_intent: Intent consumed to create this order, if any
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=OrderPaymentStatus.choices,
        default=OrderPaymentStatus.PENDING,
        db_index=True,
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
    )
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    shipping_charge = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=10, decimal_places=2)
    amount_minor = models.PositiveIntegerField(
        help_text="Order total in paise, round(total * 100)",
    )
    delivery_address = models.ForeignKey(
        "orders.Address",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    offer = models.ForeignKey(
        "orders.Offer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    checkout_intent = models.OneToOneField(
        "orders.CheckoutIntent",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order",
    )
    contact_phone = models.CharField(max_length=20, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_failed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="order_user_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Order {self.id} ({self.status}/{self.payment_status})"

    @property
    def requires_provider(self) -> bool:
        """Whether payment is confirmed by an external provider."""
        return self.payment_method != PaymentMethod.COD

    def latest_transaction(self):
        """Return the most recently created payment transaction, if any."""
        return self.transactions.order_by("-created_at", "-attempt_number").first()


class OrderItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    Immutable snapshot of a purchased product line.

    price is the unit price at the time of purchase.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "orders.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.product_id} @ {self.price}"

    @property
    def line_total(self):
        return self.price * self.quantity
