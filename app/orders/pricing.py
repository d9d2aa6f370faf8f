"""
Cart pricing: subtotal, offer discount, shipping and total.

All arithmetic is Decimal in rupees, quantized to paise with ROUND_HALF_UP.
Providers are charged amount_minor, the total in integer paise.

Usage:
    from orders.pricing import CartPricer

    priced = CartPricer.price(lines, user=request.user, offer_code="WELCOME10", pincode="560001")
    priced.totals.total        # Decimal("949.00")
    priced.totals.amount_minor # 94900
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from orders.exceptions import InvalidOfferError
from orders.models import Offer, OfferRedemption
from orders.states import DiscountType

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from orders.models import CartItem

logger = logging.getLogger(__name__)

PAISE = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_money(value) -> Decimal:
    """Round a rupee amount to paise, half-up."""
    return Decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Convert rupees to integer paise: round_half_up(amount * 100)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricedLine:
    """A cart line with the unit price it was priced at."""

    product_id: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_snapshot(self) -> dict:
        return {
            "productId": str(self.product_id),
            "quantity": self.quantity,
            "price": str(self.price),
        }

    @classmethod
    def from_snapshot(cls, data: dict) -> PricedLine:
        return cls(
            product_id=data["productId"],
            quantity=int(data["quantity"]),
            price=quantize_money(data["price"]),
        )


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.total)

    def as_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "shipping": str(self.shipping),
            "total": str(self.total),
        }

    def matches(self, other: dict) -> bool:
        """
        Compare against client-supplied totals.

        Only the keys the client sent are compared.
        """
        for key, value in other.items():
            if value is None:
                continue
            if quantize_money(value) != getattr(self, key):
                return False
        return True


@dataclass(frozen=True)
class PricedCart:
    lines: list[PricedLine]
    totals: Totals
    offer: Offer | None = None
    snapshot: list[dict] = field(default_factory=list)


class ShippingCalculator:
    """
    Flat-rate shipping.

    DEFAULT_SHIPPING_CHARGE applies unless the discounted cart value reaches
    FREE_SHIPPING_THRESHOLD (when configured).
    """

    @staticmethod
    def calculate(order_value: Decimal, pincode: str | None = None) -> Decimal:
        default_charge = quantize_money(settings.DEFAULT_SHIPPING_CHARGE)
        if not pincode:
            return default_charge

        threshold = settings.FREE_SHIPPING_THRESHOLD
        if threshold is not None and order_value >= Decimal(str(threshold)):
            return ZERO
        return default_charge


class OfferResolver:
    """Offer validation and discount calculation."""

    @staticmethod
    def validate_offer(
        code: str,
        user,
        cart_value: Decimal,
        now: datetime | None = None,
    ) -> Offer:
        """
        Return the offer for code if it can be applied, else raise InvalidOfferError.

        Checks, in order: existence, active flag, date window, minimum cart
        value, global usage limit and per-user usage limit.
        """
        now = now or timezone.now()
        offer = Offer.objects.filter(code__iexact=code.strip()).first()

        if offer is None:
            raise InvalidOfferError("Invalid coupon code", details={"code": code})
        if not offer.is_active:
            raise InvalidOfferError("This coupon is no longer active", details={"code": code})
        if offer.start_date and offer.start_date > now:
            raise InvalidOfferError("Coupon is not yet active", details={"code": code})
        if offer.end_date and offer.end_date < now:
            raise InvalidOfferError("Coupon has expired", details={"code": code})
        if offer.min_cart_value and cart_value < offer.min_cart_value:
            raise InvalidOfferError(
                f"Minimum cart value of ₹{offer.min_cart_value} required",
                details={"code": code, "min_cart_value": str(offer.min_cart_value)},
            )
        if (
            offer.global_usage_limit is not None
            and offer.current_usage >= offer.global_usage_limit
        ):
            raise InvalidOfferError("Coupon usage limit reached", details={"code": code})
        if offer.per_user_usage_limit and user is not None:
            used = OfferRedemption.objects.filter(offer=offer, user=user).count()
            if used >= offer.per_user_usage_limit:
                raise InvalidOfferError(
                    "You have already used this coupon maximum times",
                    details={"code": code},
                )
        return offer

    @staticmethod
    def calculate_discount(offer: Offer, subtotal: Decimal) -> Decimal:
        """Discount for subtotal, never negative and never above subtotal."""
        if offer.discount_type == DiscountType.PERCENTAGE:
            discount = subtotal * offer.discount_value / Decimal("100")
            if offer.max_discount is not None:
                discount = min(discount, offer.max_discount)
        else:
            discount = offer.discount_value
        discount = max(min(discount, subtotal), ZERO)
        return quantize_money(discount)

    @staticmethod
    def redeem(offer: Offer, user, order, discount_amount: Decimal) -> OfferRedemption:
        """Record a redemption and bump the usage counter. Call inside the order transaction."""
        redemption = OfferRedemption.objects.create(
            offer=offer,
            user=user,
            order=order,
            discount_amount=discount_amount,
        )
        Offer.objects.filter(pk=offer.pk).update(current_usage=F("current_usage") + 1)
        return redemption


class CartPricer:
    """Prices live cart lines or a stored snapshot."""

    @staticmethod
    def compute_totals(
        lines: Iterable[PricedLine],
        discount: Decimal = ZERO,
        shipping: Decimal = ZERO,
    ) -> Totals:
        subtotal = quantize_money(sum((line.line_total for line in lines), ZERO))
        total = quantize_money(subtotal - discount + shipping)
        return Totals(subtotal=subtotal, discount=discount, shipping=shipping, total=total)

    @classmethod
    def price(
        cls,
        cart_items: Iterable[CartItem],
        user=None,
        offer_code: str | None = None,
        pincode: str | None = None,
    ) -> PricedCart:
        """
        Price cart lines at current product prices.

        Raises:
            InvalidOfferError: offer_code given but not applicable
        """
        lines = [
            PricedLine(
                product_id=str(item.product_id),
                quantity=item.quantity,
                price=quantize_money(item.product.price),
            )
            for item in cart_items
        ]
        subtotal = cls.compute_totals(lines).subtotal

        offer = None
        discount = ZERO
        if offer_code:
            offer = OfferResolver.validate_offer(offer_code, user, subtotal)
            discount = OfferResolver.calculate_discount(offer, subtotal)

        shipping = ShippingCalculator.calculate(subtotal - discount, pincode)
        totals = cls.compute_totals(lines, discount=discount, shipping=shipping)

        logger.debug(
            "Priced cart",
            extra={
                "line_count": len(lines),
                "total": str(totals.total),
                "offer_code": offer.code if offer else None,
            },
        )
        return PricedCart(
            lines=lines,
            totals=totals,
            offer=offer,
            snapshot=[line.to_snapshot() for line in lines],
        )
