"""
HTTP client for the payment status endpoints.

Used by Python front-ends and integration tooling that follow a payment
until it settles. Authorization failures are reported separately so that
callers stop instead of retrying.

Usage:
    client = PaymentStatusClient("https://shop.example.com/api/v1", token=access_token)
    info = client.get_order_info(order_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class PollingError(Exception):
    """Base error for payment status requests."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PollingAuthorizationError(PollingError):
    """HTTP 401/403. Never retried."""


class PollingRequestError(PollingError):
    """Any other failed request (network error, 4xx, 5xx, bad body)."""


class PaymentStatusClient:
    """
    Thin requests wrapper over /payments/ endpoints.

    Args:
        base_url: API root, e.g. "https://shop.example.com/api/v1"
        session: Optional requests.Session (for connection reuse or tests)
        token: JWT access token sent as a Bearer header
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token
        self.timeout = timeout

    def get_order_info(self, order_id: str) -> dict[str, Any]:
        return self._request("GET", f"/payments/order-info/{order_id}/")

    def probe_return(self, provider: str, params: Mapping[str, str]) -> dict[str, Any]:
        return self._request("GET", f"/payments/{provider}/return/", params=dict(params))

    def retry(self, provider: str, order_id: str) -> dict[str, Any]:
        return self._request("POST", f"/payments/{provider}/retry/", json={"orderId": str(order_id)})

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Payment status request failed", extra={"path": path, "error": str(e)})
            raise PollingRequestError(f"Request to {path} failed") from e

        if response.status_code in (401, 403):
            raise PollingAuthorizationError(
                "Not authorized to view this order",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise PollingRequestError(
                f"Request to {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise PollingRequestError(
                f"Request to {path} returned a non-JSON body",
                status_code=response.status_code,
            ) from e
        return body if isinstance(body, dict) else {}
