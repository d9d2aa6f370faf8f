"""
DRF views for payments app.

This module provides API views for:
- Order payment info (polled by the storefront while a payment settles)
- Browser return from the provider's hosted page
- Retrying payment after the reconciliation window expired

Related files:
    - services/: OrderInfoService, PaymentReturnService, PaymentRetryService
    - serializers.py: Response serializers
    - webhooks/views.py: Provider webhook endpoint
    - urls.py: URL routing

Endpoints:
    GET  /api/v1/payments/order-info/<order_id>/ - Order payment state
    GET  /api/v1/payments/<provider>/return/ - Browser return probe
    POST /api/v1/payments/<provider>/retry/ - Retry an expired payment
    POST /api/v1/payments/webhooks/<provider>/ - Provider webhook

Security:
    - order-info and retry require authentication and order ownership
      (staff may read any order)
    - The return probe is public: it only reveals whether the payment
      settled and never changes payment state
    - Webhooks verify the provider signature
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import service_error_response
from payments.serializers import (
    OrderInfoSerializer,
    PaymentRetryRequestSerializer,
    PaymentRetrySerializer,
    PaymentReturnSerializer,
)
from payments.services import OrderInfoService, PaymentRetryService, PaymentReturnService

logger = logging.getLogger(__name__)


class OrderInfoView(APIView):
    """
    Payment state of an order.

    GET /api/v1/payments/order-info/<order_id>/

    Returns:
        {order, transactions, latestTransaction, latestTransactionFailed,
         totals, totalPaid, totalRefunded, breakdown, reconciliation}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_order_payment_info",
        summary="Get order payment info",
        description=(
            "Order payment status, transactions (UPI details masked), totals "
            "and the server-side reconciliation state of the latest transaction."
        ),
        responses={
            200: OrderInfoSerializer,
            403: OpenApiResponse(description="Order belongs to another user"),
            404: OpenApiResponse(description="Order not found"),
        },
        tags=["Payments - Status"],
    )
    def get(self, request, order_id):
        result = OrderInfoService.get_order_info(order_id, request.user)
        if not result.success:
            return service_error_response(result)
        return Response(OrderInfoSerializer(result.data).data)


class PaymentReturnView(APIView):
    """
    Browser return from the provider's hosted checkout.

    GET /api/v1/payments/<provider>/return/?merchantTransactionId=...

    Records the return once and makes the transaction's reconciliation
    job due now. Never changes payment state itself.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="probe_payment_return",
        summary="Payment return probe",
        parameters=[
            OpenApiParameter("merchantTransactionId", str, description="Our transaction id"),
            OpenApiParameter("providerReferenceId", str, required=False),
        ],
        responses={
            200: OpenApiResponse(description="complete or processing"),
            404: OpenApiResponse(description="Unknown provider or transaction"),
        },
        tags=["Payments - Status"],
    )
    def get(self, request, provider):
        result = PaymentReturnService.handle_return(provider, request.query_params)
        if not result.success:
            return service_error_response(result)
        return Response(PaymentReturnSerializer(result.data).data)


class PaymentRetryView(APIView):
    """
    Retry payment after the previous attempt expired.

    POST /api/v1/payments/<provider>/retry/

    Request body:
        {"orderId": "<uuid>"}

    Returns:
        {order, reconciliation, payment, shouldStartPolling: true}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="retry_payment",
        summary="Retry payment",
        request=PaymentRetryRequestSerializer,
        responses={
            200: OpenApiResponse(description="New payment attempt created"),
            404: OpenApiResponse(description="Order or provider not found"),
            409: OpenApiResponse(
                description=(
                    "PAYMENT_METHOD_MISMATCH, ORDER_ALREADY_PAID, "
                    "PAYMENT_RETRY_NOT_ALLOWED or PAYMENT_RETRY_LIMIT_REACHED"
                )
            ),
            502: OpenApiResponse(description="Payment gateway unavailable"),
        },
        tags=["Payments - Status"],
    )
    def post(self, request, provider):
        serializer = PaymentRetryRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PaymentRetryService.retry(
            serializer.validated_data["orderId"],
            provider,
            request.user,
        )
        if not result.success:
            return service_error_response(result)
        return Response(PaymentRetrySerializer(result.data).data)
