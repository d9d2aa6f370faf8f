"""
DRF serializers for payments app.

This module provides serializers for:
- Order payment info (order-info endpoint)
- Payment transactions, with masked UPI payer details
- Browser return and retry responses

Response keys are camelCase to match the storefront client.

Related files:
    - services/order_info.py: OrderInfo
    - services/payment_return.py: ReturnOutcome
    - services/payment_retry.py: RetryOutcome
    - views.py: Payment API views

Usage:
    serializer = OrderInfoSerializer(order_info)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from orders.models import Order
from orders.serializers import OrderSerializer
from payments.masking import mask_utr, mask_vpa
from payments.models import PaymentTransaction


class PaymentTransactionSerializer(serializers.ModelSerializer):
    """
    Payment transaction for API responses.

    UPI payer handle and UTR are always masked; the full values stay in
    the database.
    """

    attemptNumber = serializers.IntegerField(source="attempt_number", read_only=True)
    amountMinor = serializers.IntegerField(source="amount_minor", read_only=True)
    merchantTransactionId = serializers.CharField(source="merchant_transaction_id", read_only=True)
    providerOrderId = serializers.CharField(source="provider_order_id", read_only=True)
    providerTransactionId = serializers.CharField(source="provider_transaction_id", read_only=True)
    paymentMode = serializers.CharField(source="payment_mode", read_only=True)
    upiPayerHandle = serializers.SerializerMethodField()
    upiUtr = serializers.SerializerMethodField()
    upiInstrumentLabel = serializers.CharField(source="upi_instrument_label", read_only=True)
    failureReason = serializers.CharField(source="failure_reason", read_only=True)
    errorCode = serializers.CharField(source="error_code", read_only=True)
    expiresAt = serializers.DateTimeField(source="expires_at", read_only=True)
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True)
    failedAt = serializers.DateTimeField(source="failed_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = PaymentTransaction
        fields = [
            "id",
            "provider",
            "status",
            "attemptNumber",
            "amount",
            "amountMinor",
            "currency",
            "merchantTransactionId",
            "providerOrderId",
            "providerTransactionId",
            "paymentMode",
            "upiPayerHandle",
            "upiUtr",
            "upiInstrumentLabel",
            "failureReason",
            "errorCode",
            "expiresAt",
            "completedAt",
            "failedAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields

    def get_upiPayerHandle(self, obj) -> str | None:
        return mask_vpa(obj.upi_payer_handle)

    def get_upiUtr(self, obj) -> str | None:
        return mask_utr(obj.upi_utr)


class OrderSummarySerializer(serializers.ModelSerializer):
    """Order header fields of the order-info response."""

    paymentStatus = serializers.CharField(source="payment_status", read_only=True)
    paymentFailedAt = serializers.DateTimeField(source="payment_failed_at", read_only=True)
    paymentMethod = serializers.CharField(source="payment_method", read_only=True)
    discount = serializers.DecimalField(
        source="discount_amount", max_digits=10, decimal_places=2, read_only=True
    )
    shippingCharge = serializers.DecimalField(
        source="shipping_charge", max_digits=10, decimal_places=2, read_only=True
    )
    amountMinor = serializers.IntegerField(source="amount_minor", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "paymentStatus",
            "paymentFailedAt",
            "paymentMethod",
            "total",
            "subtotal",
            "discount",
            "shippingCharge",
            "amountMinor",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class OrderInfoSerializer(serializers.Serializer):
    """
    Response of GET /api/v1/payments/order-info/<order_id>/.

    Usage:
        result = OrderInfoService.get_order_info(order_id, request.user)
        serializer = OrderInfoSerializer(result.data)
    """

    order = OrderSummarySerializer(read_only=True)
    transactions = PaymentTransactionSerializer(many=True, read_only=True)
    latestTransaction = PaymentTransactionSerializer(source="latest_transaction", read_only=True)
    latestTransactionFailed = serializers.BooleanField(source="latest_transaction_failed", read_only=True)
    totals = serializers.SerializerMethodField()
    totalPaid = serializers.DecimalField(
        source="total_paid", max_digits=12, decimal_places=2, read_only=True
    )
    totalRefunded = serializers.DecimalField(
        source="total_refunded", max_digits=12, decimal_places=2, read_only=True
    )
    breakdown = serializers.SerializerMethodField()
    reconciliation = serializers.SerializerMethodField()

    def get_totals(self, obj) -> dict[str, int]:
        return {"paidMinor": obj.paid_minor, "refundedMinor": obj.refunded_minor}

    def get_breakdown(self, obj) -> dict[str, str]:
        return {key: str(value) for key, value in obj.breakdown.items()}

    def get_reconciliation(self, obj) -> dict | None:
        return ReconciliationSnapshotSerializer(obj.reconciliation).data if obj.reconciliation else None


class ReconciliationSnapshotSerializer(serializers.Serializer):
    """Server-side reconciliation state of an order's latest transaction."""

    status = serializers.CharField()
    attempt = serializers.IntegerField()
    nextPollAt = serializers.DateTimeField(allow_null=True)
    expiresAt = serializers.DateTimeField(allow_null=True, required=False)
    lastPolledAt = serializers.DateTimeField(allow_null=True, required=False)
    lastStatus = serializers.CharField(allow_blank=True, required=False)
    lastResponseCode = serializers.CharField(allow_blank=True, required=False)
    lastError = serializers.CharField(allow_blank=True, required=False)
    completedAt = serializers.DateTimeField(allow_null=True, required=False)


class PaymentReturnSerializer(serializers.Serializer):
    """
    Response of GET /api/v1/payments/<provider>/return/.

    Complete:
        {status: "complete", orderId, message}
    Still processing:
        {status: "processing", orderId, reconciliation: {shouldPoll, reason, eventId}, message}
    """

    def to_representation(self, instance):
        order_id = str(instance.transaction.order_id)
        if instance.is_complete:
            return {
                "status": "complete",
                "orderId": order_id,
                "message": "Payment status confirmed",
            }
        return {
            "status": "processing",
            "orderId": order_id,
            "reconciliation": {
                "shouldPoll": True,
                "reason": "PENDING_WEBHOOK",
                "eventId": str(instance.event.id),
            },
            "message": "Payment is being confirmed with the provider",
        }


class PaymentRetryRequestSerializer(serializers.Serializer):
    """Body of POST /api/v1/payments/<provider>/retry/."""

    orderId = serializers.CharField()


class PaymentRetrySerializer(serializers.Serializer):
    """Response of POST /api/v1/payments/<provider>/retry/."""

    def to_representation(self, instance):
        reconciliation = instance.reconciliation
        return {
            "order": OrderSerializer(instance.order).data,
            "reconciliation": (
                ReconciliationSnapshotSerializer(reconciliation).data if reconciliation else None
            ),
            "payment": instance.initiation.payment_payload,
            "shouldStartPolling": True,
        }
