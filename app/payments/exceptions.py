"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Order or transaction lookup failures (404)
    ├── WebhookVerificationError - Bad or missing provider signature (400)
    └── ProviderError - Base for all payment provider failures (502)
        ├── ProviderNotConfiguredError - Provider disabled or missing credentials (permanent)
        ├── ProviderRequestError - Provider rejected the request, HTTP 4xx (permanent)
        ├── ProviderResponseError - Unparseable provider response (permanent)
        ├── ProviderRateLimitError - HTTP 429 (transient, retry)
        ├── ProviderUnavailableError - HTTP 5xx or connection failure (transient, retry)
        └── ProviderTimeoutError - Request timed out (transient, retry)

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)
    PaymentRetryError - Payment retry refused (inherits ConflictError)

Usage:
    from payments.exceptions import ProviderError

    try:
        adapter.create_payment(params)
    except ProviderError as e:
        if e.is_retryable:
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            PaymentRetryService.retry(order, provider, user)
        except PaymentError as e:
            return service_error_response(ServiceResult.from_exception(e))
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when an order or payment transaction cannot be found.

    Example:
        transaction = PaymentTransaction.objects.filter(
            merchant_transaction_id=mtid
        ).first()
        if not transaction:
            raise PaymentNotFoundError(
                "Transaction not found",
                details={"merchant_transaction_id": mtid},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    status_code: int = 404


class WebhookVerificationError(PaymentError):
    """Raised when a provider callback fails signature verification or parsing."""

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"
    status_code: int = 400


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(PaymentError):
    """
    Base exception for payment provider failures.

    Attributes:
        provider: Provider value ("cashfree", "phonepe")
        http_status: HTTP status returned by the provider, if any
        is_retryable: Whether repeating the call may succeed

    Use is_retryable to decide retry behaviour:
    - True: Transient error, safe to retry with backoff
    - False: Permanent error, do not retry

    Provider create calls are guarded by an existence check on the
    merchant transaction id, so retrying never creates a second provider
    order for the same transaction.
    """

    default_error_code: str = "PROVIDER_ERROR"
    status_code: int = 502
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider: str | None = None,
        http_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if provider:
            details["provider"] = provider
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider
        self.http_status = http_status

    @classmethod
    def for_status(
        cls,
        http_status: int,
        message: str,
        provider: str | None = None,
        error_code: str | None = None,
    ) -> ProviderError:
        """Build the exception class matching an HTTP error status."""
        if http_status == 429:
            exc_class = ProviderRateLimitError
        elif http_status >= 500:
            exc_class = ProviderUnavailableError
        else:
            exc_class = ProviderRequestError
        return exc_class(message, error_code=error_code, provider=provider, http_status=http_status)


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class ProviderNotConfiguredError(ProviderError):
    default_error_code: str = "PROVIDER_NOT_CONFIGURED"
    is_retryable: bool = False


class ProviderRequestError(ProviderError):
    """
    Provider rejected the request (HTTP 4xx other than 429).

    Usually bad parameters or credentials; the same request will never
    succeed.
    """

    default_error_code: str = "PROVIDER_REQUEST_REJECTED"
    is_retryable: bool = False


class ProviderResponseError(ProviderError):
    default_error_code: str = "PROVIDER_BAD_RESPONSE"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class ProviderRateLimitError(ProviderError):
    default_error_code: str = "PROVIDER_RATE_LIMITED"
    is_retryable: bool = True


class ProviderUnavailableError(ProviderError):
    """
    Provider API is temporarily unavailable.

    This covers HTTP 5xx responses, connection failures and DNS or TLS
    errors.
    """

    default_error_code: str = "PROVIDER_UNAVAILABLE"
    is_retryable: bool = True


class ProviderTimeoutError(ProviderError):
    """
    Provider call timed out.

    The operation may have succeeded on the provider's side; a retried
    create first checks whether the provider order already exists.
    """

    default_error_code: str = "PROVIDER_TIMEOUT"
    is_retryable: bool = True


def is_retryable_provider_error(exc: BaseException) -> bool:
    """retry_if predicate for payments.retry.with_retry."""
    return isinstance(exc, ProviderError) and exc.is_retryable


# =============================================================================
# State Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when an FSM state transition is not allowed.

    Example:
        if not can_proceed(transaction.complete):
            raise InvalidStateTransitionError(
                f"Cannot complete transaction from '{transaction.status}' state",
                details={
                    "current_state": transaction.status,
                    "target_state": "completed",
                },
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class PaymentRetryError(ConflictError):
    """
    Raised when a payment retry is refused.

    error_code distinguishes the reason:
    PAYMENT_METHOD_MISMATCH, PAYMENT_RETRY_NOT_ALLOWED,
    PAYMENT_RETRY_LIMIT_REACHED, ORDER_ALREADY_PAID.
    """

    default_error_code: str = "PAYMENT_RETRY_NOT_ALLOWED"
