"""
Handlers for stored payment events.

This module provides a handler registry keyed by PaymentEventType.
Webhook events are stored by the view and applied here by the
process_payment_event task. Return and poll events are recorded already
processed, so they have no handler.

Usage:
    from payments.webhooks.handlers import dispatch_payment_event, register_handler

    @register_handler(PaymentEventType.WEBHOOK)
    def handle_webhook(event: PaymentEvent) -> ServiceResult:
        ...

    result = dispatch_payment_event(event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult
from payments.exceptions import PaymentNotFoundError
from payments.models import PaymentEvent
from payments.services import StatusUpdate, TransactionStateService
from payments.state_machines import PaymentEventType

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event types to handler functions
EVENT_HANDLERS: dict[str, Callable[[PaymentEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a payment event handler.

    Args:
        event_type: A PaymentEventType value

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[PaymentEvent], ServiceResult]) -> Callable:
        EVENT_HANDLERS[str(event_type)] = func
        logger.debug(f"Registered payment event handler for {event_type}")
        return func

    return decorator


def dispatch_payment_event(event: PaymentEvent) -> ServiceResult:
    """
    Dispatch a payment event to the handler for its type.

    Events without a handler are logged and treated as success.
    """
    handler = EVENT_HANDLERS.get(event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {event.event_type}",
            extra={"event_key": event.event_key},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {event.event_type} event to handler",
        extra={"event_key": event.event_key},
    )
    return handler(event)


# =============================================================================
# Webhook Handler
# =============================================================================


@register_handler(PaymentEventType.WEBHOOK)
def handle_provider_webhook(event: PaymentEvent) -> ServiceResult:
    """
    Apply the status carried by a verified provider webhook.

    The event payload is the StatusUpdate stored by the webhook view.
    Updates to terminal transactions are ignored by the state service.
    """
    if event.transaction_id is None:
        return ServiceResult.from_exception(
            PaymentNotFoundError(
                "Webhook refers to an unknown transaction",
                error_code="TRANSACTION_NOT_FOUND",
            )
        )

    update = StatusUpdate.from_payload(event.payload)
    return TransactionStateService.apply_provider_status(
        event.transaction,
        update,
        source=PaymentEventType.WEBHOOK,
    )
