"""
Order intake exceptions.

Exception Hierarchy:
    OrderError (base for the orders domain)
    ├── CartEmptyError - Checkout attempted with no cart lines (400)
    ├── AddressRequiredError - Neither saved nor inline address given (400)
    ├── InvalidOfferError - Offer code rejected by the offer rules (400)
    ├── PaymentMethodUnavailableError - Requested method has no enabled provider (400)
    └── TotalsChangedError - Client totals differ from server pricing (409)

    AddressNotOwnedError - Address belongs to another user (inherits PermissionDeniedError)
    CheckoutIntentNotFoundError - Intent missing, expired or foreign (inherits NotFoundError)
    CheckoutIntentConsumedError - Intent already turned into an order (inherits ConflictError)
    CheckoutIntentMethodMismatchError - Order and intent payment methods differ (inherits ConflictError)

Usage:
    from orders.exceptions import CartEmptyError

    if not lines:
        raise CartEmptyError("Cart is empty")
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)


class OrderError(BaseApplicationError):
    """Base exception for order intake failures."""

    default_error_code: str = "ORDER_ERROR"


class CartEmptyError(OrderError):
    default_error_code: str = "CART_EMPTY"


class AddressRequiredError(OrderError):
    default_error_code: str = "ADDRESS_REQUIRED"


class InvalidOfferError(OrderError):
    """
    Raised when an offer code cannot be applied.

    The message is user-facing ("Coupon has expired", ...).
    """

    default_error_code: str = "INVALID_OFFER"


class PaymentMethodUnavailableError(OrderError):
    """Raised when no enabled provider can serve the requested method."""

    default_error_code: str = "PAYMENT_METHOD_UNAVAILABLE"


class TotalsChangedError(OrderError):
    """
    Raised when the totals a client displayed no longer match server pricing.

    details carries the server-computed totals so the client can refresh.
    """

    default_error_code: str = "TOTALS_CHANGED"
    status_code: int = 409


class AddressNotOwnedError(PermissionDeniedError):
    default_error_code: str = "ADDRESS_NOT_OWNED"


class AddressNotFoundError(NotFoundError):
    default_error_code: str = "ADDRESS_NOT_FOUND"


class CheckoutIntentNotFoundError(NotFoundError):
    default_error_code: str = "CHECKOUT_INTENT_NOT_FOUND"


class CheckoutIntentConsumedError(ConflictError):
    """
    Raised when a checkout intent was already turned into an order.

    details may carry the existing order id.
    """

    default_error_code: str = "CHECKOUT_INTENT_ALREADY_PROCESSED"


class CheckoutIntentMethodMismatchError(ConflictError):
    """Raised when an order names a different payment method than its intent."""

    default_error_code: str = "CHECKOUT_INTENT_PAYMENT_METHOD_MISMATCH"
