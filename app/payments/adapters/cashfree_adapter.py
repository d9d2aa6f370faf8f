"""
Cashfree Payment Gateway adapter (PG API, version 2025-01-01).

Cashfree is session based: creating an order returns a payment_session_id
which the browser uses on Cashfree's hosted checkout page. Our merchant
transaction id is used as the Cashfree order_id.

Configuration (via settings / tenant overrides):
- CASHFREE_APP_ID: x-client-id
- CASHFREE_SECRET_KEY: x-client-secret, also the webhook signing key
- CASHFREE_API_VERSION: x-api-version (default: 2025-01-01)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import re
import time
from typing import TYPE_CHECKING

from payments.adapters.base import (
    CreatePaymentParams,
    PaymentProviderAdapter,
    ProviderOrder,
    ProviderPaymentResult,
    ProviderStatus,
    ProviderWebhook,
)
from payments.exceptions import ProviderRequestError, WebhookVerificationError
from payments.state_machines import PaymentProvider, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

LIVE_BASE_URL = "https://api.cashfree.com/pg"
SANDBOX_BASE_URL = "https://sandbox.cashfree.com/pg"
LIVE_CHECKOUT_URL = "https://payments.cashfree.com/order"
SANDBOX_CHECKOUT_URL = "https://sandbox.cashfree.com/pg/view/order"
DEFAULT_API_VERSION = "2025-01-01"

CUSTOMER_ID_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
CUSTOMER_ID_MAX_LENGTH = 50


def sanitize_customer_id(value: str) -> str:
    """Cashfree customer ids allow only [a-zA-Z0-9_-], at most 50 characters."""
    return CUSTOMER_ID_INVALID_CHARS.sub("_", value)[:CUSTOMER_ID_MAX_LENGTH]


class CashfreeAdapter(PaymentProviderAdapter):
    """
    Adapter for the Cashfree PG REST API.

    Endpoints used:
        POST /orders                   create an order
        GET  /orders/{order_id}        existence and order status
        GET  /orders/{order_id}/payments  UTR, payer VPA and payment group
    """

    provider = PaymentProvider.CASHFREE
    STATUS_MAP = {
        "ACTIVE": TransactionStatus.PENDING,
        "PAYMENT_PENDING": TransactionStatus.PENDING,
        "PENDING": TransactionStatus.PENDING,
        "SUCCESS": TransactionStatus.COMPLETED,
        "PAID": TransactionStatus.COMPLETED,
        "COMPLETED": TransactionStatus.COMPLETED,
        "FAILED": TransactionStatus.FAILED,
        "CANCELLED": TransactionStatus.CANCELLED,
        "EXPIRED": TransactionStatus.CANCELLED,
        "TERMINATED": TransactionStatus.CANCELLED,
        "USER_DROPPED": TransactionStatus.CANCELLED,
    }

    @property
    def base_url(self) -> str:
        return LIVE_BASE_URL if self.config.is_live else SANDBOX_BASE_URL

    def _default_headers(self) -> dict[str, str]:
        return {
            **super()._default_headers(),
            "x-client-id": self.config.credential("app_id"),
            "x-client-secret": self.config.credential("secret_key"),
            "x-api-version": self.config.credentials.get("api_version") or DEFAULT_API_VERSION,
        }

    def checkout_url(self, order_id: str, payment_session_id: str) -> str:
        if not payment_session_id:
            return ""
        base = LIVE_CHECKOUT_URL if self.config.is_live else SANDBOX_CHECKOUT_URL
        return f"{base}/{order_id}/{payment_session_id}"

    # =========================================================================
    # Core Operations
    # =========================================================================

    @staticmethod
    def _customer_id(params: CreatePaymentParams) -> str:
        customer = params.customer
        for candidate in (customer.customer_id, customer.email, customer.phone):
            if candidate:
                return sanitize_customer_id(str(candidate))
        return f"cust_{int(time.time() * 1000)}"

    def _create_order(self, params: CreatePaymentParams) -> ProviderPaymentResult:
        if not params.customer.phone:
            raise ProviderRequestError(
                "Customer phone number is required for Cashfree payments",
                error_code="MISSING_CUSTOMER_PHONE",
                provider=self.provider.value,
            )

        customer_details: dict[str, Any] = {
            "customer_id": self._customer_id(params),
            "customer_phone": params.customer.phone,
        }
        if params.customer.email:
            customer_details["customer_email"] = params.customer.email
        if params.customer.name:
            customer_details["customer_name"] = params.customer.name

        order_meta: dict[str, str] = {}
        if params.success_url:
            order_meta["return_url"] = params.success_url
        if params.notify_url:
            order_meta["notify_url"] = params.notify_url

        request: dict[str, Any] = {
            "order_id": params.order_id,
            "order_amount": params.amount_minor / 100,
            "order_currency": params.currency,
            "customer_details": customer_details,
        }
        if order_meta:
            request["order_meta"] = order_meta

        result = self._request("POST", "/orders", operation="create_order", json=request)
        body = result.body
        order_id = body.get("order_id") or params.order_id
        session_id = body.get("payment_session_id") or ""

        return ProviderPaymentResult(
            provider_order_id=order_id,
            status=self.map_provider_status(body.get("order_status")),
            provider_session_token=session_id,
            redirect_url=self.checkout_url(order_id, session_id),
            provider_transaction_id=str(body.get("cf_order_id") or ""),
            raw_response=body,
        )

    def check_order_exists(self, order_id: str) -> ProviderOrder | None:
        result = self._request(
            "GET",
            f"/orders/{order_id}",
            operation="get_order",
            allow_statuses=(404,),
        )
        if result.status_code == 404:
            return None

        body = result.body
        session_id = body.get("payment_session_id") or ""
        provider_order_id = body.get("order_id") or order_id
        return ProviderOrder(
            provider_order_id=provider_order_id,
            raw_status=str(body.get("order_status") or ""),
            status=self.map_provider_status(body.get("order_status")),
            provider_session_token=session_id,
            redirect_url=self.checkout_url(provider_order_id, session_id),
            provider_transaction_id=str(body.get("cf_order_id") or ""),
            raw_response=body,
        )

    def fetch_status(self, order_id: str) -> ProviderStatus:
        """
        Order status, enriched with payment details once the order is paid.

        Raises:
            ProviderRequestError: Cashfree has no order with this id
        """
        order = self.check_order_exists(order_id)
        if order is None:
            raise ProviderRequestError(
                "Cashfree order not found",
                error_code="ORDER_NOT_FOUND",
                provider=self.provider.value,
                http_status=404,
            )

        status = ProviderStatus(
            order_id=order_id,
            raw_status=order.raw_status,
            status=order.status,
            response_code=order.raw_status,
            provider_transaction_id=order.provider_transaction_id,
            raw_response=order.raw_response,
        )
        if order.status == TransactionStatus.COMPLETED:
            self._enrich_with_payment(status)
        return status

    def _enrich_with_payment(self, status: ProviderStatus) -> None:
        result = self._request(
            "GET",
            f"/orders/{status.order_id}/payments",
            operation="get_order_payments",
        )
        payments = result.body.get("data") or []
        successful = [p for p in payments if str(p.get("payment_status", "")).upper() == "SUCCESS"]
        payment = (successful or payments or [None])[0]
        if not payment:
            return
        status.provider_payment_id = str(payment.get("cf_payment_id") or "")
        status.utr = str(payment.get("bank_reference") or "")
        status.payment_mode = str(payment.get("payment_group") or "")
        status.payer_handle = self._upi_id(payment)

    @staticmethod
    def _upi_id(payment: dict[str, Any]) -> str:
        method = payment.get("payment_method") or {}
        upi = method.get("upi") if isinstance(method, dict) else None
        return str((upi or {}).get("upi_id") or "")

    # =========================================================================
    # Webhooks
    # =========================================================================

    def compute_signature(self, timestamp: str, body: bytes) -> str:
        """base64(HMAC-SHA256(secret_key, timestamp + raw body))."""
        message = timestamp.encode() + body
        digest = hmac.new(
            self.config.credential("secret_key").encode(),
            message,
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> ProviderWebhook:
        signature = headers.get("x-webhook-signature")
        timestamp = headers.get("x-webhook-timestamp")
        if not signature:
            raise WebhookVerificationError("Missing Cashfree signature", error_code="MISSING_SIGNATURE")
        if not timestamp:
            raise WebhookVerificationError("Missing Cashfree timestamp", error_code="MISSING_TIMESTAMP")

        expected = self.compute_signature(timestamp, body)
        if not hmac.compare_digest(signature, expected):
            raise WebhookVerificationError("Invalid webhook signature", error_code="INVALID_SIGNATURE")

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise WebhookVerificationError("Malformed webhook body", error_code="INVALID_PAYLOAD") from e

        data = payload.get("data") or {}
        order = data.get("order") or {}
        payment = data.get("payment") or {}
        order_id = order.get("order_id") or data.get("order_id")
        if not order_id:
            raise WebhookVerificationError("Webhook has no order id", error_code="INVALID_PAYLOAD")

        raw_status = str(payment.get("payment_status") or data.get("order_status") or "")
        return ProviderWebhook(
            order_id=order_id,
            event_type=str(payload.get("type") or payload.get("event") or "payment.update"),
            raw_status=raw_status,
            status=self.map_provider_status(raw_status),
            provider_payment_id=str(payment.get("cf_payment_id") or ""),
            utr=str(payment.get("bank_reference") or ""),
            payer_handle=self._upi_id(payment),
            payment_mode=str(payment.get("payment_group") or ""),
            payload=payload,
        )
