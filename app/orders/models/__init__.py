"""
Order models.

Models:
    - Product: Purchasable product and current price
    - CartItem: Session-keyed cart line
    - Address: User delivery address
    - Offer / OfferRedemption: Discount codes and their usage
    - CheckoutIntent: Single-use priced checkout snapshot
    - Order / OrderItem: Placed order and immutable line snapshots
"""

from orders.models.address import Address
from orders.models.catalog import CartItem, Product
from orders.models.checkout_intent import CheckoutIntent
from orders.models.offer import Offer, OfferRedemption
from orders.models.order import Order, OrderItem

__all__ = [
    "Address",
    "CartItem",
    "CheckoutIntent",
    "Offer",
    "OfferRedemption",
    "Order",
    "OrderItem",
    "Product",
]
