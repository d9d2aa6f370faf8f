"""
Orders app configuration.

This app turns a session cart into a durable order:
- Priced checkout intents (single-use snapshots of the cart)
- Order intake (address, payment method, pricing, persistence)
- Offer redemption bookkeeping
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Configuration for the orders application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
