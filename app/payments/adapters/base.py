"""
Base class and data types for payment provider adapters.

Each provider gets one PaymentProviderAdapter subclass. Adapters talk HTTP
through requests and never write to the database; callers persist what
the adapter returns.

Errors are translated to payments.exceptions.ProviderError subclasses:
- Timeouts -> ProviderTimeoutError (retryable)
- Connection failures and HTTP 5xx -> ProviderUnavailableError (retryable)
- HTTP 429 -> ProviderRateLimitError (retryable)
- Other HTTP 4xx -> ProviderRequestError (not retryable)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, NamedTuple

import requests

from payments.exceptions import (
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from payments.state_machines import PaymentProvider, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from payments.providers import ProviderConfig


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CustomerDetails:
    customer_id: str | None = None
    phone: str | None = None
    email: str | None = None
    name: str | None = None


@dataclass
class CreatePaymentParams:
    """
    Parameters for creating a provider payment order.

    Attributes:
        order_id: Provider-facing order reference (our merchant transaction id)
        amount_minor: Amount in paise
        currency: ISO 4217 code, INR only
        customer: Payer details sent to the provider
        success_url / failure_url: Browser return URLs
        notify_url: Server-to-server callback URL
        expire_after_seconds: Requested session lifetime, providers may clamp it
    """

    order_id: str
    amount_minor: int
    currency: str = "INR"
    customer: CustomerDetails = field(default_factory=CustomerDetails)
    success_url: str | None = None
    failure_url: str | None = None
    notify_url: str | None = None
    expire_after_seconds: int | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.order_id:
            raise ValueError("order_id is required")
        if self.amount_minor <= 0:
            raise ValueError("amount_minor must be positive")
        if self.currency != "INR":
            raise ValueError("only INR is supported")


@dataclass
class ProviderPaymentResult:
    """
    Result of create_payment.

    Attributes:
        provider_order_id: Provider's id for the order
        status: Internal status mapped from the provider's status
        provider_session_token: Session token for client checkout (Cashfree)
        redirect_url: Hosted checkout URL for the browser
        provider_transaction_id: Provider transaction id, when assigned
        reused: True when an existing provider order was returned
        raw_response: Full provider response (for debugging)
    """

    provider_order_id: str
    status: TransactionStatus
    provider_session_token: str = ""
    redirect_url: str = ""
    provider_transaction_id: str = ""
    reused: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderOrder:
    """An order as it currently exists at the provider."""

    provider_order_id: str
    raw_status: str
    status: TransactionStatus
    provider_session_token: str = ""
    redirect_url: str = ""
    provider_transaction_id: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderStatus:
    """
    Result of a status query, used by reconciliation polling.

    raw_status is the provider's own status string; status is its
    internal mapping.
    """

    order_id: str
    raw_status: str
    status: TransactionStatus
    response_code: str = ""
    provider_payment_id: str = ""
    provider_transaction_id: str = ""
    utr: str = ""
    payer_handle: str = ""
    payment_mode: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderWebhook:
    """
    A verified provider callback.

    Attributes:
        order_id: Our merchant transaction id the callback refers to
        event_type: Provider event name, part of the dedup key
    """

    order_id: str
    event_type: str
    raw_status: str
    status: TransactionStatus
    provider_payment_id: str = ""
    provider_transaction_id: str = ""
    utr: str = ""
    payer_handle: str = ""
    payment_mode: str = ""
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def event_key(self) -> str:
        return f"webhook:{self.order_id}:{self.event_type}:{self.raw_status}".lower()


class HttpResult(NamedTuple):
    status_code: int
    body: dict[str, Any]


# =============================================================================
# Adapter Base
# =============================================================================


class PaymentProviderAdapter(ABC):
    """
    Adapter for one payment provider's HTTP API.

    Subclasses declare provider and STATUS_MAP and implement the provider
    calls. create_payment() is implemented here: it always checks for an
    existing provider order under the same order id first, so a create
    repeated after a timeout never opens a second provider order.
    """

    provider: ClassVar[PaymentProvider]
    STATUS_MAP: ClassVar[dict[str, TransactionStatus]] = {}

    def __init__(self, config: ProviderConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def map_provider_status(cls, raw: str | None) -> TransactionStatus:
        """Map a provider status string to TransactionStatus; unknown values are pending."""
        return cls.STATUS_MAP.get((raw or "").strip().upper(), TransactionStatus.PENDING)

    # =========================================================================
    # Core Operations
    # =========================================================================

    def create_payment(self, params: CreatePaymentParams) -> ProviderPaymentResult:
        """
        Create a provider order, reusing an existing one for the same order id.

        Raises:
            ProviderError: Provider call failed
        """
        existing = self.check_order_exists(params.order_id)
        if existing is not None:
            self.get_logger().info(
                "Reusing existing provider order",
                extra={
                    "provider": self.provider.value,
                    "merchant_transaction_id": params.order_id,
                    "provider_order_id": existing.provider_order_id,
                    "status": existing.status,
                },
            )
            return ProviderPaymentResult(
                provider_order_id=existing.provider_order_id,
                status=existing.status,
                provider_session_token=existing.provider_session_token,
                redirect_url=existing.redirect_url,
                provider_transaction_id=existing.provider_transaction_id,
                reused=True,
                raw_response=existing.raw_response,
            )
        return self._create_order(params)

    @abstractmethod
    def _create_order(self, params: CreatePaymentParams) -> ProviderPaymentResult:
        """Create a new provider order unconditionally."""

    @abstractmethod
    def check_order_exists(self, order_id: str) -> ProviderOrder | None:
        """Return the provider order for order_id, or None if the provider has none."""

    @abstractmethod
    def fetch_status(self, order_id: str) -> ProviderStatus:
        """Query the provider for the current payment status of order_id."""

    @abstractmethod
    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> ProviderWebhook:
        """
        Verify and parse a provider callback.

        Raises:
            WebhookVerificationError: Missing or invalid signature, bad payload
        """

    # =========================================================================
    # HTTP
    # =========================================================================

    @property
    @abstractmethod
    def base_url(self) -> str:
        """API base URL for the configured environment."""

    def _default_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        allow_statuses: tuple[int, ...] = (),
    ) -> HttpResult:
        """
        Perform an HTTP call and translate failures to ProviderError.

        Responses with a status in allow_statuses are returned instead of
        raising, so callers can treat e.g. 404 as "not found".
        """
        logger = self.get_logger()
        log_context = {
            "operation": operation,
            "provider": self.provider.value,
            "method": method,
            "path": path,
        }

        start_time = time.time()
        logger.info("Starting provider operation", extra=log_context)

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                headers={**self._default_headers(), **(headers or {})},
                timeout=self.config.timeout,
            )
        except requests.Timeout as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Provider operation timed out",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise ProviderTimeoutError(
                f"{self.provider.label} request timed out",
                provider=self.provider.value,
            ) from e
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Provider connection failed",
                extra={**log_context, "duration_ms": duration_ms, "error": str(e)},
            )
            raise ProviderUnavailableError(
                f"{self.provider.label} is unreachable",
                provider=self.provider.value,
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        body = self._parse_body(response)

        if response.status_code >= 400 and response.status_code not in allow_statuses:
            logger.warning(
                "Provider operation failed",
                extra={
                    **log_context,
                    "http_status": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            raise ProviderError.for_status(
                response.status_code,
                self._error_message(body) or f"{self.provider.label} API error",
                provider=self.provider.value,
                error_code=self._error_code(body),
            )

        logger.info(
            "Provider operation completed",
            extra={**log_context, "http_status": response.status_code, "duration_ms": duration_ms},
        )
        return HttpResult(response.status_code, body)

    def _parse_body(self, response: requests.Response) -> dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            if response.status_code >= 400:
                return {"message": response.text[:500]}
            raise ProviderResponseError(
                f"{self.provider.label} returned a non-JSON response",
                provider=self.provider.value,
                http_status=response.status_code,
            ) from None
        return body if isinstance(body, dict) else {"data": body}

    @staticmethod
    def _error_message(body: dict[str, Any]) -> str:
        return str(body.get("message") or "")

    @staticmethod
    def _error_code(body: dict[str, Any]) -> str | None:
        code = body.get("code")
        return str(code).upper() if code else None
