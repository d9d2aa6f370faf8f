"""
Checkout intents: short-lived, single-use priced checkout snapshots.

CheckoutIntentStore is the persistence boundary (save, fetch, consume);
CheckoutIntentService prices the session cart and stages an intent.

Consumption is a conditional UPDATE, so when two requests race to place
an order from the same intent exactly one of them sees consume() == True.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from orders.cart import CartService
from orders.exceptions import CartEmptyError, TotalsChangedError
from orders.models import CheckoutIntent, Order
from orders.pricing import CartPricer
from orders.services.resolvers import AddressResolver, PaymentMethodResolver

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from orders.cart import CartContext
    from orders.pricing import Totals


def _as_uuid(value) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class CheckoutIntentStore(BaseService):
    """Persistence operations for CheckoutIntent."""

    @classmethod
    def save(cls, intent_data: dict[str, Any], ttl: int | None = None) -> str:
        """
        Persist a new intent and return its id.

        Args:
            intent_data: CheckoutIntent field values (session_id, user, totals, ...)
            ttl: Lifetime in seconds (default CHECKOUT_INTENT_TTL_SECONDS)
        """
        ttl = settings.CHECKOUT_INTENT_TTL_SECONDS if ttl is None else ttl
        intent = CheckoutIntent.objects.create(
            **intent_data,
            expires_at=timezone.now() + timedelta(seconds=ttl),
        )
        cls.get_logger().info(
            "Saved checkout intent",
            extra={"intent_id": str(intent.id), "ttl": ttl},
        )
        return str(intent.id)

    @classmethod
    def lookup(cls, intent_id, session_id: str) -> CheckoutIntent | None:
        """Return the session's intent regardless of expiry or consumption."""
        intent_uuid = _as_uuid(intent_id)
        if intent_uuid is None:
            return None
        return CheckoutIntent.objects.filter(pk=intent_uuid, session_id=session_id).first()

    @classmethod
    def fetch(
        cls,
        intent_id,
        session_id: str,
        now: datetime | None = None,
    ) -> CheckoutIntent | None:
        """Return the intent only if owned by session_id, unconsumed and unexpired."""
        intent_uuid = _as_uuid(intent_id)
        if intent_uuid is None:
            return None
        now = now or timezone.now()
        return (
            CheckoutIntent.objects.filter(
                pk=intent_uuid,
                session_id=session_id,
                is_consumed=False,
                expires_at__gt=now,
            )
            .select_related("delivery_address", "offer")
            .first()
        )

    @classmethod
    def consume(cls, intent_id) -> bool:
        """
        Mark the intent consumed.

        Returns True only for the call that flipped the flag; later calls
        are no-ops returning False.
        """
        updated = CheckoutIntent.objects.filter(pk=intent_id, is_consumed=False).update(
            is_consumed=True,
            consumed_at=timezone.now(),
            updated_at=timezone.now(),
        )
        return updated == 1

    @classmethod
    def find_order_for_intent(cls, intent_id) -> Order | None:
        intent_uuid = _as_uuid(intent_id)
        if intent_uuid is None:
            return None
        return Order.objects.filter(checkout_intent_id=intent_uuid).first()

    @classmethod
    def purge_expired(cls, now: datetime | None = None) -> int:
        """Delete expired, unconsumed intents. Returns the number removed."""
        now = now or timezone.now()
        deleted, _ = CheckoutIntent.objects.filter(
            is_consumed=False,
            expires_at__lte=now,
        ).delete()
        if deleted:
            cls.get_logger().info("Purged expired checkout intents", extra={"count": deleted})
        return deleted


@dataclass(frozen=True)
class StagedIntent:
    intent: CheckoutIntent
    totals: Totals


class CheckoutIntentService(BaseService):
    """Prices the session cart and stages a checkout intent."""

    @classmethod
    def create_intent(
        cls,
        cart: CartContext,
        user,
        payment_method: str,
        selected_address_id=None,
        offer_code: str | None = None,
        client_totals: dict[str, Any] | None = None,
    ) -> ServiceResult[StagedIntent]:
        """
        Stage a priced checkout for the session cart.

        When client_totals are given and differ from the server's pricing
        the intent is not created and TOTALS_CHANGED is returned with the
        fresh totals in details.
        """
        logger = cls.get_logger()
        try:
            stored_method, _provider = PaymentMethodResolver.resolve(payment_method)
            address = (
                AddressResolver.get_owned(user, selected_address_id)
                if selected_address_id
                else None
            )

            lines = list(CartService.get_lines(cart.session_id))
            if not lines:
                raise CartEmptyError("Cart is empty")

            priced = CartPricer.price(
                lines,
                user=user,
                offer_code=offer_code,
                pincode=address.pincode if address else None,
            )
            if client_totals and not priced.totals.matches(client_totals):
                raise TotalsChangedError(
                    "Cart totals have changed, please review your order",
                    details={"totals": priced.totals.as_dict()},
                )
        except BaseApplicationError as e:
            logger.info("Checkout intent rejected: %s", e.error_code)
            return ServiceResult.from_exception(e)

        totals = priced.totals
        intent_id = CheckoutIntentStore.save(
            {
                "session_id": cart.session_id,
                "user": user,
                "subtotal": totals.subtotal,
                "discount_amount": totals.discount,
                "shipping_charge": totals.shipping,
                "total": totals.total,
                "cart_snapshot": priced.snapshot,
                "delivery_address": address,
                "offer": priced.offer,
                "payment_method": stored_method,
            }
        )
        intent = CheckoutIntent.objects.get(pk=intent_id)
        return ServiceResult.success(StagedIntent(intent=intent, totals=totals))
