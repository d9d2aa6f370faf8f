"""
Pytest fixtures for order tests.

Usage:
    def test_place_cod_order(user, cart_lines, cart):
        result = OrderIntakeService.place_order(cart, OrderRequest(payment_method="cod", ...))
        assert result.success
"""

from decimal import Decimal

import pytest

from orders.cart import CartContext
from orders.tests.factories import (
    AddressFactory,
    CartItemFactory,
    OfferFactory,
    ProductFactory,
)


@pytest.fixture
def address(db, user):
    """Saved, preferred address of the test user."""
    return AddressFactory(user=user)


@pytest.fixture
def product(db):
    return ProductFactory(name="Filter Coffee 500g", price=Decimal("100.00"))


@pytest.fixture
def cart_session(db):
    """Session id used for service-level cart tests."""
    return "cartsession0001"


@pytest.fixture
def cart(user, cart_session):
    """Cart context for the test user's session."""
    return CartContext(session_id=cart_session, user_id=user.pk)


@pytest.fixture
def cart_lines(cart_session, product):
    """Two units of the ₹100.00 product: subtotal ₹200.00."""
    return [CartItemFactory(session_id=cart_session, product=product, quantity=2)]


@pytest.fixture
def client_cart_lines(session_key, product):
    """Cart lines in the API test client's session."""
    return [CartItemFactory(session_id=session_key, product=product, quantity=2)]


@pytest.fixture
def offer(db):
    """10% off, capped at ₹15."""
    return OfferFactory(code="WELCOME10", max_discount=Decimal("15.00"))
