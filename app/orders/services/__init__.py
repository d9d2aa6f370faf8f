"""
Order services.

- CheckoutIntentService / CheckoutIntentStore: priced, single-use checkout snapshots
- OrderIntakeService: order placement and payment hand-off
- AddressResolver / PaymentMethodResolver: request input resolution
"""

from orders.services.checkout_intent import (
    CheckoutIntentService,
    CheckoutIntentStore,
    StagedIntent,
)
from orders.services.order_intake import OrderIntakeService, OrderPlacement, OrderRequest
from orders.services.resolvers import AddressResolver, PaymentMethodResolver

__all__ = [
    "AddressResolver",
    "CheckoutIntentService",
    "CheckoutIntentStore",
    "OrderIntakeService",
    "OrderPlacement",
    "OrderRequest",
    "PaymentMethodResolver",
    "StagedIntent",
]
