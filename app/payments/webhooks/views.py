"""
Webhook endpoint views for payment providers.

One view serves every provider; the provider comes from the URL. The view:
1. Verifies the callback through the provider adapter
2. Creates/retrieves the PaymentEvent record (idempotent via event_key)
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/<str:provider>/", provider_webhook, name="provider-webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import get_adapter
from payments.exceptions import ProviderNotConfiguredError, WebhookVerificationError
from payments.models import PaymentEvent, PaymentTransaction
from payments.services import StatusUpdate
from payments.state_machines import PaymentEventType, PaymentProvider

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def provider_webhook(request: HttpRequest, provider: str) -> HttpResponse:
    """
    Receive and queue a provider webhook.

    Security:
    - Signature verification is done by the provider adapter
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - PaymentEvent.event_key is unique per (provider, transaction, event, status)
    - Duplicate deliveries return 200 without reprocessing

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new, duplicate, or for an unknown transaction)
        - 400: Invalid signature or payload
        - 404: Unknown provider
        - 503: Provider credentials not configured
    """
    try:
        adapter = get_adapter(provider)
    except ValueError:
        return HttpResponse("Unknown provider", status=404)

    # Step 1: Verify signature and parse
    try:
        webhook = adapter.parse_webhook(request.body, request.headers)
    except WebhookVerificationError as e:
        logger.warning(
            "Webhook verification failed",
            extra={"provider": provider, "error_code": e.error_code},
        )
        return HttpResponse("Invalid signature", status=400)
    except ProviderNotConfiguredError:
        logger.error("Webhook received for unconfigured provider", extra={"provider": provider})
        return HttpResponse("Provider not configured", status=503)

    provider = PaymentProvider(provider)
    event_key = f"{provider.value}:{webhook.event_key}"
    log_context = {
        "provider": provider.value,
        "event_key": event_key,
        "merchant_transaction_id": webhook.order_id,
    }
    logger.info("Received provider webhook", extra=log_context)

    payment_transaction = PaymentTransaction.objects.filter(
        provider=provider,
        merchant_transaction_id=webhook.order_id,
    ).first()

    # Step 2: Create/get PaymentEvent (idempotent)
    event, created = PaymentEvent.objects.get_or_create(
        event_key=event_key,
        defaults={
            "provider": provider,
            "event_type": PaymentEventType.WEBHOOK,
            "transaction": payment_transaction,
            "order_id": payment_transaction.order_id if payment_transaction else None,
            "payload": StatusUpdate.from_webhook(webhook).to_payload(),
        },
    )

    if not created and event.is_processed:
        logger.info("Webhook already processed, returning success", extra=log_context)
        return HttpResponse("Already processed", status=200)

    if payment_transaction is None:
        # Acknowledge so the provider stops retrying; kept for investigation
        logger.warning("Webhook for unknown transaction", extra=log_context)
        if created:
            event.processing_error = "Unknown merchant transaction id"
            event.save(update_fields=["processing_error", "updated_at"])
        return HttpResponse("Accepted", status=200)

    # Step 3: Queue for async processing
    try:
        from payments.tasks import process_payment_event

        process_payment_event.delay(str(event.id))
        logger.info(
            "Webhook queued for processing",
            extra={**log_context, "payment_event_id": str(event.id)},
        )
    except Exception as e:
        # If queuing fails, log but still return 200
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra=log_context,
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
