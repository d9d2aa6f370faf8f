"""
Read model for an order's payment state (order-info endpoint).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Sum

from core.exceptions import BaseApplicationError, PermissionDeniedError
from core.services import BaseService, ServiceResult
from orders.models import Order
from payments.exceptions import PaymentNotFoundError
from payments.services.reconciliation_service import ReconciliationService
from payments.state_machines import RefundStatus, TransactionStatus

if TYPE_CHECKING:
    from typing import Any

    from payments.models import PaymentTransaction


class OrderAccess:
    """Ownership checks for order-scoped payment endpoints."""

    @staticmethod
    def get_for_user(order_id, user) -> Order:
        """
        Raises:
            PaymentNotFoundError: Unknown or malformed order id
            PermissionDeniedError: Order belongs to someone else
        """
        try:
            order_uuid = uuid.UUID(str(order_id))
        except ValueError as e:
            raise PaymentNotFoundError("Order not found", error_code="ORDER_NOT_FOUND") from e

        order = Order.objects.select_related("user").filter(pk=order_uuid).first()
        if order is None:
            raise PaymentNotFoundError(
                "Order not found",
                error_code="ORDER_NOT_FOUND",
                details={"orderId": str(order_uuid)},
            )
        if order.user_id != user.pk and not user.is_staff:
            raise PermissionDeniedError("You do not have access to this order", error_code="ORDER_NOT_OWNED")
        return order


def minor_to_rupees(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / 100).quantize(Decimal("0.01"))


@dataclass
class OrderInfo:
    order: Order
    transactions: list[PaymentTransaction] = field(default_factory=list)
    paid_minor: int = 0
    refunded_minor: int = 0
    reconciliation: dict[str, Any] | None = None

    @property
    def latest_transaction(self) -> PaymentTransaction | None:
        return self.transactions[0] if self.transactions else None

    @property
    def latest_transaction_failed(self) -> bool:
        latest = self.latest_transaction
        return latest is not None and latest.status in (
            TransactionStatus.FAILED,
            TransactionStatus.CANCELLED,
        )

    @property
    def total_paid(self) -> Decimal:
        return minor_to_rupees(self.paid_minor)

    @property
    def total_refunded(self) -> Decimal:
        return minor_to_rupees(self.refunded_minor)

    @property
    def breakdown(self) -> dict[str, Decimal]:
        return {
            "subtotal": self.order.subtotal,
            "discount": self.order.discount_amount,
            "tax": Decimal("0.00"),
            "shipping": self.order.shipping_charge,
            "total": self.order.total,
        }


class OrderInfoService(BaseService):
    @classmethod
    def get_order_info(cls, order_id, user) -> ServiceResult[OrderInfo]:
        try:
            order = OrderAccess.get_for_user(order_id, user)
        except BaseApplicationError as e:
            return ServiceResult.from_exception(e)
        return ServiceResult.success(cls.build(order))

    @classmethod
    def build(cls, order: Order) -> OrderInfo:
        transactions = list(order.transactions.order_by("-created_at", "-attempt_number"))
        paid_minor = sum(
            txn.amount_minor for txn in transactions if txn.status == TransactionStatus.COMPLETED
        )
        refunded_minor = (
            order.refunds.filter(status=RefundStatus.COMPLETED).aggregate(total=Sum("amount_minor"))["total"]
            or 0
        )
        return OrderInfo(
            order=order,
            transactions=transactions,
            paid_minor=paid_minor,
            refunded_minor=refunded_minor,
            reconciliation=ReconciliationService.snapshot(order),
        )
