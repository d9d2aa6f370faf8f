"""
Tests for provider webhooks.

Tests cover:
- Cashfree and PhonePe signature verification through the view
- Idempotent event storage and duplicate deliveries
- Unknown provider, unknown transaction, unconfigured provider
- Event handlers (dispatch registry, webhook handler)
"""

import base64
import json

import pytest
from django.urls import reverse

from orders.states import OrderPaymentStatus, PaymentMethod
from orders.tests.factories import OrderFactory
from payments.adapters import get_adapter
from payments.models import PaymentEvent
from payments.state_machines import PaymentEventType, PaymentProvider, TransactionStatus
from payments.tests.factories import PaymentEventFactory, PaymentTransactionFactory
from payments.webhooks.handlers import dispatch_payment_event

WEBHOOK_TIMESTAMP = "1767225600"


def webhook_url(provider: str) -> str:
    return reverse("payments:provider-webhook", args=[provider])


def cashfree_body(merchant_transaction_id: str, payment_status: str = "SUCCESS") -> bytes:
    return json.dumps(
        {
            "type": "PAYMENT_SUCCESS_WEBHOOK" if payment_status == "SUCCESS" else "PAYMENT_FAILED_WEBHOOK",
            "event_time": "2026-01-01T12:00:00+05:30",
            "data": {
                "order": {"order_id": merchant_transaction_id, "order_amount": 250.0},
                "payment": {
                    "cf_payment_id": 5114917039291,
                    "payment_status": payment_status,
                    "bank_reference": "412345678901",
                    "payment_group": "upi",
                    "payment_method": {"upi": {"upi_id": "rahul.sharma@okaxis"}},
                },
            },
        }
    ).encode()


def post_cashfree(client, body: bytes, signature: str | None = None):
    if signature is None:
        signature = get_adapter("cashfree").compute_signature(WEBHOOK_TIMESTAMP, body)
    return client.post(
        webhook_url("cashfree"),
        data=body,
        content_type="application/json",
        headers={
            "x-webhook-signature": signature,
            "x-webhook-timestamp": WEBHOOK_TIMESTAMP,
        },
    )


def phonepe_callback(merchant_transaction_id: str, state: str = "COMPLETED") -> tuple[bytes, str]:
    payload = {
        "success": state == "COMPLETED",
        "code": "PAYMENT_SUCCESS" if state == "COMPLETED" else "PAYMENT_ERROR",
        "data": {
            "merchantId": "PGTESTMERCHANT",
            "merchantTransactionId": merchant_transaction_id,
            "transactionId": "T2406011200",
            "amount": 25000,
            "state": state,
            "responseCode": "SUCCESS" if state == "COMPLETED" else "PAYMENT_DECLINED",
            "paymentInstrument": {"type": "UPI", "utr": "412345678901", "vpa": "rahul.sharma@okaxis"},
        },
    }
    encoded = base64.b64encode(json.dumps(payload).encode()).decode()
    return json.dumps({"response": encoded}).encode(), encoded


@pytest.fixture
def phonepe_transaction(db, user):
    order = OrderFactory(user=user, payment_method=PaymentMethod.PHONEPE)
    return PaymentTransactionFactory(order=order, provider=PaymentProvider.PHONEPE)


# =============================================================================
# Cashfree Webhooks
# =============================================================================


class TestCashfreeWebhook:
    """Tests for POST /api/v1/payments/webhooks/cashfree/."""

    def test_success_completes_payment(self, client, payment_providers, pending_job):
        transaction = pending_job.transaction

        response = post_cashfree(client, cashfree_body(transaction.merchant_transaction_id))

        assert response.status_code == 200
        assert response.content == b"Accepted"

        event = PaymentEvent.objects.get(event_type=PaymentEventType.WEBHOOK)
        expected_key = f"cashfree:webhook:{transaction.merchant_transaction_id}:payment_success_webhook:success"
        assert event.event_key == expected_key.lower()
        assert event.transaction == transaction
        assert event.is_processed

        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.upi_utr == "412345678901"
        assert transaction.upi_payer_handle == "rahul.sharma@okaxis"
        assert transaction.webhook_data["type"] == "PAYMENT_SUCCESS_WEBHOOK"
        transaction.order.refresh_from_db()
        assert transaction.order.payment_status == OrderPaymentStatus.PAID

    def test_failure_fails_payment(self, client, payment_providers, pending_transaction):
        body = cashfree_body(pending_transaction.merchant_transaction_id, payment_status="FAILED")

        response = post_cashfree(client, body)

        assert response.status_code == 200
        pending_transaction.refresh_from_db()
        assert pending_transaction.status == TransactionStatus.FAILED

    def test_duplicate_delivery(self, client, payment_providers, pending_transaction):
        """Should acknowledge a redelivered webhook without reprocessing."""
        body = cashfree_body(pending_transaction.merchant_transaction_id)

        post_cashfree(client, body)
        response = post_cashfree(client, body)

        assert response.status_code == 200
        assert response.content == b"Already processed"
        assert PaymentEvent.objects.count() == 1

    def test_invalid_signature(self, client, payment_providers, pending_transaction):
        body = cashfree_body(pending_transaction.merchant_transaction_id)

        response = post_cashfree(client, body, signature="bm90LXRoZS1zaWduYXR1cmU=")

        assert response.status_code == 400
        assert response.content == b"Invalid signature"
        assert PaymentEvent.objects.count() == 0
        pending_transaction.refresh_from_db()
        assert pending_transaction.status == TransactionStatus.PENDING

    def test_tampered_body(self, client, payment_providers, pending_transaction):
        body = cashfree_body(pending_transaction.merchant_transaction_id)
        signature = get_adapter("cashfree").compute_signature(WEBHOOK_TIMESTAMP, body)

        response = post_cashfree(client, body.replace(b"SUCCESS", b"FAILED"), signature=signature)

        assert response.status_code == 400

    def test_missing_signature_headers(self, client, payment_providers):
        response = client.post(webhook_url("cashfree"), data=b"{}", content_type="application/json")

        assert response.status_code == 400

    def test_unknown_transaction(self, client, db, payment_providers):
        """Should accept and keep the event for investigation."""
        response = post_cashfree(client, cashfree_body("TXN_1767225600000_unknown00"))

        assert response.status_code == 200
        event = PaymentEvent.objects.get()
        assert event.transaction is None
        assert event.processing_error == "Unknown merchant transaction id"
        assert not event.is_processed

    def test_late_webhook_for_terminal_transaction(self, client, payment_providers, failed_transaction):
        """Should record but never reopen a terminal transaction."""
        response = post_cashfree(client, cashfree_body(failed_transaction.merchant_transaction_id))

        assert response.status_code == 200
        failed_transaction.refresh_from_db()
        assert failed_transaction.status == TransactionStatus.FAILED

    def test_provider_not_configured(self, client, settings, pending_transaction):
        settings.CASHFREE_SECRET_KEY = ""

        response = post_cashfree(
            client,
            cashfree_body(pending_transaction.merchant_transaction_id),
            signature="c2lnbmF0dXJl",
        )

        assert response.status_code == 503


# =============================================================================
# PhonePe Webhooks
# =============================================================================


class TestPhonePeWebhook:
    """Tests for POST /api/v1/payments/webhooks/phonepe/."""

    def test_success_completes_payment(self, client, payment_providers, phonepe_transaction):
        body, encoded = phonepe_callback(phonepe_transaction.merchant_transaction_id)
        checksum = get_adapter("phonepe").callback_checksum(encoded)

        response = client.post(
            webhook_url("phonepe"),
            data=body,
            content_type="application/json",
            headers={"X-VERIFY": checksum},
        )

        assert response.status_code == 200
        phonepe_transaction.refresh_from_db()
        assert phonepe_transaction.status == TransactionStatus.COMPLETED
        assert phonepe_transaction.provider_transaction_id == "T2406011200"
        assert phonepe_transaction.upi_utr == "412345678901"

    def test_declined(self, client, payment_providers, phonepe_transaction):
        body, encoded = phonepe_callback(phonepe_transaction.merchant_transaction_id, state="FAILED")

        client.post(
            webhook_url("phonepe"),
            data=body,
            content_type="application/json",
            headers={"X-VERIFY": get_adapter("phonepe").callback_checksum(encoded)},
        )

        phonepe_transaction.refresh_from_db()
        assert phonepe_transaction.status == TransactionStatus.FAILED

    def test_invalid_checksum(self, client, payment_providers, phonepe_transaction):
        body, _ = phonepe_callback(phonepe_transaction.merchant_transaction_id)

        response = client.post(
            webhook_url("phonepe"),
            data=body,
            content_type="application/json",
            headers={"X-VERIFY": "0" * 64 + "###1"},
        )

        assert response.status_code == 400
        phonepe_transaction.refresh_from_db()
        assert phonepe_transaction.status == TransactionStatus.PENDING

    def test_malformed_body(self, client, payment_providers):
        response = client.post(
            webhook_url("phonepe"),
            data=b"not json",
            content_type="application/json",
            headers={"X-VERIFY": "abc###1"},
        )

        assert response.status_code == 400


class TestWebhookRouting:
    def test_unknown_provider(self, client, db):
        response = client.post(webhook_url("razorpay"), data=b"{}", content_type="application/json")

        assert response.status_code == 404

    def test_get_not_allowed(self, client, db):
        response = client.get(webhook_url("cashfree"))

        assert response.status_code == 405


# =============================================================================
# Event Handlers
# =============================================================================


class TestDispatchPaymentEvent:
    """Tests for dispatch_payment_event and the webhook handler."""

    def test_webhook_event_applied(self, webhook_event):
        result = dispatch_payment_event(webhook_event)

        assert result.success
        transaction = webhook_event.transaction
        transaction.refresh_from_db()
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.upi_payer_handle == "rahul.sharma@okaxis"

    def test_event_without_transaction(self, db):
        event = PaymentEventFactory(transaction=None, order=None, provider=PaymentProvider.CASHFREE)

        result = dispatch_payment_event(event)

        assert not result.success
        assert result.error_code == "TRANSACTION_NOT_FOUND"

    def test_event_type_without_handler(self, pending_transaction):
        """Should treat return and poll events as already handled."""
        event = PaymentEventFactory(transaction=pending_transaction, event_type=PaymentEventType.POLL)

        result = dispatch_payment_event(event)

        assert result.success
        pending_transaction.refresh_from_db()
        assert pending_transaction.status == TransactionStatus.PENDING
