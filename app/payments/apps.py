"""
Payments app configuration.

This app provides UPI payment processing for orders:
- Provider adapters (Cashfree, PhonePe)
- Payment transactions with FSM-managed state
- Webhook handling and reconciliation polling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
