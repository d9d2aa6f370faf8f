"""
Choice enums for order models.

Order lifecycle:
    pending → confirmed → processing → shipped → delivered
    pending → cancelled (explicit action only)

Order payment status is a projection of the order's payment
transactions (see payments.services.order_sync):
    pending | paid | failed
"""

from django.db import models


class OrderStatus(models.TextChoices):
    """
    Fulfilment status of an order.

    Only a confirmed payment moves an order from PENDING to CONFIRMED.
    A failed payment leaves the order PENDING so it can be paid again.
    """

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class OrderPaymentStatus(models.TextChoices):
    """Externally visible payment status of an order."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"


class PaymentMethod(models.TextChoices):
    """
    Payment methods accepted at checkout.

    UPI is a request-only alias: it is resolved to the highest-priority
    enabled provider before anything is persisted, so stored orders carry
    COD, CASHFREE or PHONEPE.
    """

    COD = "cod", "Cash on delivery"
    UPI = "upi", "UPI"
    CASHFREE = "cashfree", "Cashfree"
    PHONEPE = "phonepe", "PhonePe"


class DiscountType(models.TextChoices):
    """How an offer's discount_value is interpreted."""

    PERCENTAGE = "percentage", "Percentage"
    FLAT = "flat", "Flat"
