"""
Webhook handling for payment provider callbacks.

Callbacks are verified by the provider adapter, stored idempotently as
PaymentEvent rows, and applied asynchronously via Celery tasks.

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/<str:provider>/", provider_webhook, name="provider-webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_payment_event, register_handler
from payments.webhooks.views import provider_webhook

__all__ = [
    "dispatch_payment_event",
    "provider_webhook",
    "register_handler",
]
