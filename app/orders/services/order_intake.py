"""
Order placement.

Flow:
    1. Resolve the payment method (upi -> highest-priority enabled provider);
       a checkout intent fixes the method it was priced with
    2. Price: from a checkout intent snapshot, or the live session cart
    3. Resolve the delivery address (saved, inline userInfo, intent's)
    4. One DB transaction: consume the intent, create Order + OrderItems,
       redeem the offer
    5. Provider-backed methods: PaymentInitiationService.initiate
    6. Clear the cart unless the payment gateway was unreachable

A gateway failure after the order is saved is a partial success: the
order is kept (payment_status failed) and the cart is preserved so the
customer can retry.

Usage:
    from orders.services import OrderIntakeService, OrderRequest

    result = OrderIntakeService.place_order(
        CartContext.from_request(request),
        OrderRequest(payment_method="upi", selected_address_id=address_id),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import transaction as db_transaction

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from orders.cart import CartService
from orders.exceptions import (
    CartEmptyError,
    CheckoutIntentConsumedError,
    CheckoutIntentMethodMismatchError,
    CheckoutIntentNotFoundError,
)
from orders.models import Order, OrderItem
from orders.pricing import CartPricer, OfferResolver, PricedLine, Totals, to_minor_units
from orders.services.checkout_intent import CheckoutIntentStore
from orders.services.resolvers import AddressResolver, PaymentMethodResolver
from orders.states import PaymentMethod
from payments.services import PaymentInitiationService, ReconciliationService, customer_for_order

if TYPE_CHECKING:
    from typing import Any

    from orders.cart import CartContext
    from orders.models import Address, CheckoutIntent, Offer
    from payments.services import PaymentInitiation
    from payments.state_machines import PaymentProvider


@dataclass
class OrderRequest:
    """Validated body of POST /api/v1/orders/."""

    payment_method: str
    selected_address_id: str | None = None
    user_info: dict[str, Any] | None = None
    offer_code: str | None = None
    checkout_intent_id: str | None = None
    phone: str | None = None


@dataclass
class OrderPlacement:
    order: Order
    initiation: PaymentInitiation | None = None
    gateway_error: ServiceResult | None = None
    reconciliation: dict[str, Any] | None = None
    cart_cleared: bool = False

    @property
    def gateway_failed(self) -> bool:
        return self.gateway_error is not None

    @property
    def message(self) -> str:
        if self.gateway_failed:
            return "Order saved but payment gateway unavailable"
        return "Order placed successfully"

    @property
    def should_start_polling(self) -> bool:
        return self.initiation is not None


@dataclass
class _PricedOrder:
    lines: list[PricedLine]
    totals: Totals
    offer: Offer | None
    intent: CheckoutIntent | None = None
    address_fallback: Address | None = None


class OrderIntakeService(BaseService):
    """Creates orders from the session cart or a checkout intent."""

    @classmethod
    def _load_intent(cls, cart: CartContext, intent_id, user) -> CheckoutIntent:
        intent = CheckoutIntentStore.fetch(intent_id, cart.session_id)
        if intent is not None and intent.user_id == user.pk:
            return intent

        existing = CheckoutIntentStore.lookup(intent_id, cart.session_id)
        if existing is not None and existing.is_consumed and existing.user_id == user.pk:
            details = {"checkoutIntentId": str(existing.id)}
            order = CheckoutIntentStore.find_order_for_intent(existing.id)
            if order is not None:
                details["orderId"] = str(order.id)
            raise CheckoutIntentConsumedError("This checkout has already been processed", details=details)
        raise CheckoutIntentNotFoundError("Checkout session expired or not found")

    @classmethod
    def _method_for_intent(cls, intent: CheckoutIntent, requested: str) -> tuple[str, PaymentProvider | None]:
        """
        Payment method committed with the intent, still subject to provider
        availability. "upi" is accepted for an intent resolved to a provider.
        """
        stored_method, provider = PaymentMethodResolver.resolve(intent.payment_method)
        if requested != stored_method and not (requested == PaymentMethod.UPI and provider is not None):
            raise CheckoutIntentMethodMismatchError(
                "Payment method differs from the checkout",
                details={"paymentMethod": requested, "checkoutPaymentMethod": stored_method},
            )
        return stored_method, provider

    @classmethod
    def _price(cls, cart: CartContext, order_request: OrderRequest, user, pincode=None) -> _PricedOrder:
        if order_request.checkout_intent_id:
            intent = cls._load_intent(cart, order_request.checkout_intent_id, user)
            return _PricedOrder(
                lines=[PricedLine.from_snapshot(item) for item in intent.cart_snapshot],
                totals=Totals(
                    subtotal=intent.subtotal,
                    discount=intent.discount_amount,
                    shipping=intent.shipping_charge,
                    total=intent.total,
                ),
                offer=intent.offer,
                intent=intent,
                address_fallback=intent.delivery_address,
            )

        lines = list(CartService.get_lines(cart.session_id))
        if not lines:
            raise CartEmptyError("Cart is empty")
        priced = CartPricer.price(
            lines,
            user=user,
            offer_code=order_request.offer_code,
            pincode=pincode,
        )
        return _PricedOrder(lines=priced.lines, totals=priced.totals, offer=priced.offer)

    @classmethod
    def _pincode_hint(cls, order_request: OrderRequest) -> str | None:
        return (order_request.user_info or {}).get("pincode") or None

    @classmethod
    def place_order(cls, cart: CartContext, order_request: OrderRequest) -> ServiceResult[OrderPlacement]:
        """
        Place an order for the cart's user.

        Returns:
            ServiceResult with OrderPlacement. Gateway failures after the
            order was saved are still a success (see OrderPlacement.gateway_error).
        """
        logger = cls.get_logger()
        user = get_user_model().objects.filter(pk=cart.user_id).first() if cart.user_id else None
        if user is None:
            return ServiceResult.failure(
                "Authentication required",
                error_code="AUTHENTICATION_REQUIRED",
                status_code=401,
            )

        try:
            stored_method, provider = PaymentMethodResolver.resolve(order_request.payment_method)

            address = None
            if order_request.selected_address_id:
                address = AddressResolver.get_owned(user, order_request.selected_address_id)

            priced = cls._price(
                cart,
                order_request,
                user,
                pincode=address.pincode if address else cls._pincode_hint(order_request),
            )
            if priced.intent is not None:
                stored_method, provider = cls._method_for_intent(priced.intent, order_request.payment_method)
            with db_transaction.atomic():
                if address is None:
                    address = AddressResolver.resolve(
                        user,
                        user_info=order_request.user_info,
                        fallback=priced.address_fallback,
                    )
                if priced.intent is not None and not CheckoutIntentStore.consume(priced.intent.pk):
                    raise CheckoutIntentConsumedError(
                        "This checkout has already been processed",
                        details={"checkoutIntentId": str(priced.intent.pk)},
                    )
                order = cls._create_order(user, order_request, stored_method, priced, address)
        except BaseApplicationError as e:
            logger.info(
                "Order rejected",
                extra={"error_code": e.error_code, "payment_method": order_request.payment_method},
            )
            return ServiceResult.from_exception(e)

        logger.info(
            "Order created",
            extra={
                "order_id": str(order.id),
                "payment_method": order.payment_method,
                "amount_minor": order.amount_minor,
                "from_intent": priced.intent is not None,
            },
        )

        placement = OrderPlacement(order=order)
        if provider is not None:
            result = PaymentInitiationService.initiate(order, provider, customer_for_order(order))
            if result.success:
                placement.initiation = result.data
                placement.reconciliation = ReconciliationService.snapshot(order)
            else:
                placement.gateway_error = result
                logger.warning(
                    "Order saved without payment session",
                    extra={"order_id": str(order.id), "provider": provider.value},
                )

        if not placement.gateway_failed:
            CartService.clear(cart.session_id)
            placement.cart_cleared = True

        return ServiceResult.success(placement)

    @classmethod
    def _create_order(
        cls,
        user,
        order_request: OrderRequest,
        stored_method: str,
        priced: _PricedOrder,
        address: Address,
    ) -> Order:
        totals = priced.totals
        order = Order.objects.create(
            user=user,
            payment_method=stored_method,
            subtotal=totals.subtotal,
            discount_amount=totals.discount,
            shipping_charge=totals.shipping,
            total=totals.total,
            amount_minor=to_minor_units(totals.total),
            delivery_address=address,
            offer=priced.offer,
            checkout_intent=priced.intent,
            contact_phone=order_request.phone or (order_request.user_info or {}).get("phone") or "",
        )
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                )
                for line in priced.lines
            ]
        )
        if priced.offer is not None and totals.discount > 0:
            OfferResolver.redeem(priced.offer, user, order, totals.discount)
        return order
