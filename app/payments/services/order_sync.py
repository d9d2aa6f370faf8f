"""
Projection of payment transactions onto the order.

Order.payment_status is never set directly; it is recomputed from the
order's transactions whenever one of them changes:

    | transaction status | order.payment_status | order.status                  |
    |--------------------|----------------------|-------------------------------|
    | initiated/pending  | pending              | unchanged                     |
    | completed          | paid                 | confirmed (on entering paid)  |
    | failed/cancelled   | failed               | unchanged                     |

Any completed transaction makes the order paid; otherwise the latest
transaction decides. An order without transactions is pending.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService
from orders.states import OrderPaymentStatus, OrderStatus
from payments.state_machines import TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from orders.models import Order

TRANSACTION_PROJECTION: dict[str, str] = {
    TransactionStatus.INITIATED: OrderPaymentStatus.PENDING,
    TransactionStatus.PENDING: OrderPaymentStatus.PENDING,
    TransactionStatus.COMPLETED: OrderPaymentStatus.PAID,
    TransactionStatus.FAILED: OrderPaymentStatus.FAILED,
    TransactionStatus.CANCELLED: OrderPaymentStatus.FAILED,
}


def derive_payment_status(statuses: Sequence[str]) -> str:
    """
    Derive the order payment status.

    Args:
        statuses: Transaction statuses ordered newest first
    """
    if not statuses:
        return OrderPaymentStatus.PENDING
    if TransactionStatus.COMPLETED in statuses:
        return OrderPaymentStatus.PAID
    return TRANSACTION_PROJECTION[statuses[0]]


class OrderPaymentSync(BaseService):
    """Writes the derived payment status back to the order."""

    @classmethod
    def sync(cls, order: Order, now: datetime | None = None) -> Order:
        """
        Recompute and persist the order's payment projection.

        Only payment_status, status, paid_at, payment_failed_at and
        updated_at are written. No-op when nothing changed.
        """
        statuses = list(
            order.transactions.order_by("-created_at", "-attempt_number").values_list(
                "status", flat=True
            )
        )
        derived = derive_payment_status(statuses)
        if derived == order.payment_status:
            return order

        now = now or timezone.now()
        previous = order.payment_status
        order.payment_status = derived
        update_fields = ["payment_status", "updated_at"]

        if derived == OrderPaymentStatus.PAID:
            order.paid_at = now
            order.status = OrderStatus.CONFIRMED
            update_fields += ["paid_at", "status"]
        elif derived == OrderPaymentStatus.FAILED:
            order.payment_failed_at = now
            update_fields.append("payment_failed_at")
        elif previous == OrderPaymentStatus.FAILED:
            order.payment_failed_at = None
            update_fields.append("payment_failed_at")

        order.save(update_fields=update_fields)
        cls.get_logger().info(
            "Order payment status changed",
            extra={
                "order_id": str(order.id),
                "from_status": previous,
                "to_status": derived,
            },
        )
        return order
