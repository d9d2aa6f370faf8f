"""
Factory Boy factories for order test data.

This module provides factories for creating test instances of order models.
Factories generate realistic test data while allowing easy customization.

Usage:
    from orders.tests.factories import (
        AddressFactory,
        CartItemFactory,
        OrderFactory,
        ProductFactory,
    )

    # Cart line in a specific session
    line = CartItemFactory(session_id=session_key, quantity=2)

    # UPI order paid through Cashfree
    order = OrderFactory(payment_method=PaymentMethod.CASHFREE)
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from orders.models import (
    Address,
    CartItem,
    CheckoutIntent,
    Offer,
    Order,
    OrderItem,
    Product,
)
from orders.states import DiscountType, PaymentMethod


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for django.contrib.auth users."""

    class Meta:
        model = "auth.User"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"customer{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = "Asha"
    last_name = "Rao"
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True


class ProductFactory(factory.django.DjangoModelFactory):
    """
    Factory for Product instances.

    Default price is ₹100.00.
    """

    class Meta:
        model = Product

    name = factory.Sequence(lambda n: f"Product {n}")
    price = Decimal("100.00")
    is_active = True


class CartItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CartItem

    session_id = factory.Sequence(lambda n: f"session{n:04d}")
    product = factory.SubFactory(ProductFactory)
    quantity = 1


class AddressFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Address

    user = factory.SubFactory(UserFactory)
    name = "Home"
    address = "12 MG Road"
    city = "Bengaluru"
    pincode = "560001"
    is_preferred = True


class OfferFactory(factory.django.DjangoModelFactory):
    """
    Factory for Offer instances.

    Default creates an active 10% offer without a cap.

    Example:
        # Flat ₹200 off above ₹1000
        offer = OfferFactory(
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("200.00"),
            min_cart_value=Decimal("1000.00"),
        )
    """

    class Meta:
        model = Offer

    code = factory.Sequence(lambda n: f"SAVE{n}")
    name = factory.LazyAttribute(lambda o: f"Offer {o.code}")
    discount_type = DiscountType.PERCENTAGE
    discount_value = Decimal("10.00")
    min_cart_value = Decimal("0.00")
    per_user_usage_limit = 1
    is_active = True


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for Order instances.

    Default creates a pending cash-on-delivery order for ₹250.00
    (₹200.00 subtotal + ₹50.00 shipping).

    Example:
        order = OrderFactory(payment_method=PaymentMethod.PHONEPE)
    """

    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    payment_method = PaymentMethod.COD
    subtotal = Decimal("200.00")
    discount_amount = Decimal("0.00")
    shipping_charge = Decimal("50.00")
    total = Decimal("250.00")
    amount_minor = 25000
    delivery_address = factory.SubFactory(
        AddressFactory,
        user=factory.SelfAttribute("..user"),
    )
    contact_phone = "9876543210"


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory(ProductFactory)
    quantity = 2
    price = Decimal("100.00")


class CheckoutIntentFactory(factory.django.DjangoModelFactory):
    """
    Factory for CheckoutIntent instances.

    Default intent is open (unconsumed) and expires in one hour.
    """

    class Meta:
        model = CheckoutIntent

    session_id = factory.Sequence(lambda n: f"session{n:04d}")
    user = factory.SubFactory(UserFactory)
    subtotal = Decimal("200.00")
    discount_amount = Decimal("0.00")
    shipping_charge = Decimal("50.00")
    total = Decimal("250.00")
    cart_snapshot = factory.LazyFunction(list)
    payment_method = PaymentMethod.COD
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(hours=1))
    is_consumed = False
