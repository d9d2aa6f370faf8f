"""
User-visible copy for each payment view status.
"""

from __future__ import annotations

PENDING = "pending"
PROCESSING = "processing"
PAID = "paid"
FAILED = "failed"
EXPIRED = "expired"
AUTHORIZATION = "authorization"

STATUS_MESSAGES: dict[str, str] = {
    PENDING: "Your order is placed. Payment is pending.",
    PROCESSING: "We are confirming your payment with the provider. This can take a minute.",
    PAID: "Payment received. Your order is confirmed.",
    FAILED: "Your payment could not be completed. You can try again.",
    EXPIRED: "We could not confirm your payment in time. Start again to retry the payment.",
    AUTHORIZATION: "Please sign in again to see the status of this order.",
}


def status_message(view_status: str | None) -> str:
    """Message for view_status; unknown statuses read as pending."""
    return STATUS_MESSAGES.get(view_status or PENDING, STATUS_MESSAGES[PENDING])
