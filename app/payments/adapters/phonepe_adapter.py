"""
PhonePe PG adapter (standard checkout, v1 API with salt checksums).

PhonePe is redirect based: /pg/v1/pay returns a hosted page URL the
browser is sent to. Requests carry an X-VERIFY checksum:

    sha256(<payload> + <path> + salt_key) + "###" + salt_index

where <payload> is the base64 request body for POSTs and empty for the
status GET.

Configuration (via settings / tenant overrides):
- PHONEPE_MERCHANT_ID
- PHONEPE_SALT_KEY
- PHONEPE_SALT_INDEX
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import TYPE_CHECKING

from payments.adapters.base import (
    CreatePaymentParams,
    PaymentProviderAdapter,
    ProviderOrder,
    ProviderPaymentResult,
    ProviderStatus,
    ProviderWebhook,
)
from payments.exceptions import ProviderError, ProviderRequestError, WebhookVerificationError
from payments.state_machines import PaymentProvider, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

LIVE_BASE_URL = "https://api.phonepe.com/apis/hermes"
SANDBOX_BASE_URL = "https://api-preprod.phonepe.com/apis/pg-sandbox"
PAY_PATH = "/pg/v1/pay"

DEFAULT_EXPIRY_SECONDS = 900
MIN_EXPIRY_SECONDS = 300
MAX_EXPIRY_SECONDS = 3600

NOT_FOUND_CODES = frozenset({"PAYMENT_NOT_FOUND", "TRANSACTION_NOT_FOUND"})


def clamp_expire_after(requested: int | None) -> int:
    if requested is None:
        return DEFAULT_EXPIRY_SECONDS
    return max(MIN_EXPIRY_SECONDS, min(MAX_EXPIRY_SECONDS, int(requested)))


class PhonePeAdapter(PaymentProviderAdapter):
    """
    Adapter for the PhonePe PG v1 API.

    Endpoints used:
        POST /pg/v1/pay                                 create a payment
        GET  /pg/v1/status/{merchantId}/{transactionId} status and existence
    """

    provider = PaymentProvider.PHONEPE
    STATUS_MAP = {
        "PENDING": TransactionStatus.PENDING,
        "INITIATED": TransactionStatus.PENDING,
        "IN_PROGRESS": TransactionStatus.PENDING,
        "PAYMENT_PENDING": TransactionStatus.PENDING,
        "COMPLETED": TransactionStatus.COMPLETED,
        "SUCCESS": TransactionStatus.COMPLETED,
        "PAYMENT_SUCCESS": TransactionStatus.COMPLETED,
        "FAILED": TransactionStatus.FAILED,
        "DECLINED": TransactionStatus.FAILED,
        "ERROR": TransactionStatus.FAILED,
        "PAYMENT_ERROR": TransactionStatus.FAILED,
        "PAYMENT_DECLINED": TransactionStatus.FAILED,
        "CANCELLED": TransactionStatus.CANCELLED,
        "TIMEDOUT": TransactionStatus.CANCELLED,
        "EXPIRED": TransactionStatus.CANCELLED,
        "ABORTED": TransactionStatus.CANCELLED,
    }

    @property
    def base_url(self) -> str:
        return LIVE_BASE_URL if self.config.is_live else SANDBOX_BASE_URL

    @property
    def merchant_id(self) -> str:
        return self.config.credential("merchant_id")

    def checksum(self, path: str, payload: str = "") -> str:
        salt_key = self.config.credential("salt_key")
        salt_index = self.config.credentials.get("salt_index") or "1"
        digest = hashlib.sha256(f"{payload}{path}{salt_key}".encode()).hexdigest()
        return f"{digest}###{salt_index}"

    def callback_checksum(self, response: str) -> str:
        salt_key = self.config.credential("salt_key")
        salt_index = self.config.credentials.get("salt_index") or "1"
        digest = hashlib.sha256(f"{response}{salt_key}".encode()).hexdigest()
        return f"{digest}###{salt_index}"

    # =========================================================================
    # Core Operations
    # =========================================================================

    def _create_order(self, params: CreatePaymentParams) -> ProviderPaymentResult:
        payload: dict[str, Any] = {
            "merchantId": self.merchant_id,
            "merchantTransactionId": params.order_id,
            "merchantUserId": str(params.customer.customer_id or f"MUID_{params.order_id}"),
            "amount": params.amount_minor,
            "redirectUrl": params.success_url or "",
            "redirectMode": "POST",
            "callbackUrl": params.notify_url or "",
            "expireAfter": clamp_expire_after(params.expire_after_seconds),
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        if params.customer.phone:
            payload["mobileNumber"] = params.customer.phone

        encoded = base64.b64encode(json.dumps(payload).encode()).decode()
        result = self._request(
            "POST",
            PAY_PATH,
            operation="create_payment",
            json={"request": encoded},
            headers={
                "X-VERIFY": self.checksum(PAY_PATH, encoded),
                "X-MERCHANT-ID": self.merchant_id,
            },
        )
        body = result.body
        if not body.get("success"):
            raise ProviderRequestError(
                f"PhonePe API error: {body.get('code')} - {body.get('message')}",
                error_code=str(body.get("code") or "PHONEPE_ERROR"),
                provider=self.provider.value,
            )

        data = body.get("data") or {}
        redirect = ((data.get("instrumentResponse") or {}).get("redirectInfo") or {}).get("url", "")
        transaction_id = data.get("transactionId") or ""
        return ProviderPaymentResult(
            provider_order_id=transaction_id or params.order_id,
            status=TransactionStatus.PENDING,
            redirect_url=redirect,
            provider_transaction_id=transaction_id,
            raw_response=body,
        )

    def _status_request(self, order_id: str, operation: str):
        path = f"/pg/v1/status/{self.merchant_id}/{order_id}"
        return self._request(
            "GET",
            path,
            operation=operation,
            headers={
                "X-VERIFY": self.checksum(path),
                "X-MERCHANT-ID": self.merchant_id,
            },
            allow_statuses=(400, 404),
        )

    def _raise_for_status(self, status_code: int, body: dict[str, Any]) -> None:
        if status_code >= 400:
            raise ProviderError.for_status(
                status_code,
                self._error_message(body) or "PhonePe API error",
                provider=self.provider.value,
                error_code=self._error_code(body),
            )

    @staticmethod
    def _is_not_found(status_code: int, body: dict[str, Any]) -> bool:
        return status_code == 404 or str(body.get("code") or "").upper() in NOT_FOUND_CODES

    def check_order_exists(self, order_id: str) -> ProviderOrder | None:
        result = self._status_request(order_id, "check_order")
        if self._is_not_found(result.status_code, result.body):
            return None
        self._raise_for_status(result.status_code, result.body)

        data = result.body.get("data") or {}
        raw_status = str(data.get("state") or result.body.get("code") or "")
        transaction_id = data.get("transactionId") or ""
        return ProviderOrder(
            provider_order_id=transaction_id or order_id,
            raw_status=raw_status,
            status=self.map_provider_status(raw_status),
            provider_transaction_id=transaction_id,
            raw_response=result.body,
        )

    def fetch_status(self, order_id: str) -> ProviderStatus:
        """
        Raises:
            ProviderRequestError: PhonePe has no payment with this id
        """
        result = self._status_request(order_id, "fetch_status")
        body = result.body
        if self._is_not_found(result.status_code, body):
            raise ProviderRequestError(
                "PhonePe payment not found",
                error_code="PAYMENT_NOT_FOUND",
                provider=self.provider.value,
                http_status=result.status_code,
            )
        self._raise_for_status(result.status_code, body)

        data = body.get("data") or {}
        raw_status = str(data.get("state") or body.get("code") or "")
        instrument = data.get("paymentInstrument") or {}
        return ProviderStatus(
            order_id=order_id,
            raw_status=raw_status,
            status=self.map_provider_status(raw_status),
            response_code=str(data.get("responseCode") or body.get("code") or ""),
            provider_transaction_id=str(data.get("transactionId") or ""),
            utr=str(instrument.get("utr") or ""),
            payer_handle=self._payer_handle(instrument),
            payment_mode=str(instrument.get("type") or ""),
            raw_response=body,
        )

    @staticmethod
    def _payer_handle(instrument: dict[str, Any]) -> str:
        return str(
            instrument.get("vpa")
            or instrument.get("payerVpa")
            or instrument.get("payerAddress")
            or ""
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> ProviderWebhook:
        """
        Verify a server-to-server callback.

        Body: {"response": base64(json)}; X-VERIFY: sha256(response + salt_key)###salt_index
        """
        signature = headers.get("x-verify")
        if not signature:
            raise WebhookVerificationError("Missing PhonePe checksum", error_code="MISSING_SIGNATURE")

        try:
            envelope = json.loads(body)
            encoded = envelope["response"]
            payload = json.loads(base64.b64decode(encoded))
        except (ValueError, KeyError, TypeError) as e:
            raise WebhookVerificationError("Malformed callback body", error_code="INVALID_PAYLOAD") from e

        if not hmac.compare_digest(signature, self.callback_checksum(encoded)):
            raise WebhookVerificationError("Invalid webhook signature", error_code="INVALID_SIGNATURE")

        data = payload.get("data") or {}
        order_id = data.get("merchantTransactionId")
        if not order_id:
            raise WebhookVerificationError("Callback has no transaction id", error_code="INVALID_PAYLOAD")

        raw_status = str(data.get("state") or payload.get("code") or "")
        instrument = data.get("paymentInstrument") or {}
        return ProviderWebhook(
            order_id=order_id,
            event_type=str(payload.get("code") or "callback"),
            raw_status=raw_status,
            status=self.map_provider_status(raw_status),
            provider_transaction_id=str(data.get("transactionId") or ""),
            utr=str(instrument.get("utr") or ""),
            payer_handle=self._payer_handle(instrument),
            payment_mode=str(instrument.get("type") or ""),
            payload=payload,
        )
