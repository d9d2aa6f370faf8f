"""
API views for checkout and order placement.

Provides:
- CheckoutIntentView: Price the session cart and stage a checkout intent
- OrderCreateView: Place an order (optionally from a checkout intent)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import service_error_response
from orders.cart import CartContext
from orders.serializers import (
    CheckoutIntentRequestSerializer,
    CheckoutIntentResponseSerializer,
    CreateOrderSerializer,
    OrderPlacementSerializer,
)
from orders.services import CheckoutIntentService, OrderIntakeService


class CheckoutIntentView(APIView):
    """
    Stage a priced checkout.

    POST /api/v1/orders/checkout-intent/

    Response:
        201 Created: {intentId, expiresAt, totals}
        400 Bad Request: CART_EMPTY, INVALID_OFFER, PAYMENT_METHOD_UNAVAILABLE
        403 Forbidden: ADDRESS_NOT_OWNED
        409 Conflict: TOTALS_CHANGED (details.totals has the server totals)
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_checkout_intent",
        summary="Create checkout intent",
        description=(
            "Price the session cart and store a single-use checkout snapshot. "
            "When client totals are sent and differ from the server's, nothing "
            "is stored and 409 TOTALS_CHANGED is returned."
        ),
        request=CheckoutIntentRequestSerializer,
        responses={
            201: CheckoutIntentResponseSerializer,
            400: OpenApiResponse(description="Empty cart, invalid offer or unavailable payment method"),
            409: OpenApiResponse(description="Totals changed"),
        },
        tags=["Orders - Checkout"],
    )
    def post(self, request):
        serializer = CheckoutIntentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = CheckoutIntentService.create_intent(
            CartContext.from_request(request),
            request.user,
            payment_method=data["paymentMethod"],
            selected_address_id=data.get("selectedAddressId") or None,
            offer_code=data.get("offerCode") or None,
            client_totals=serializer.client_totals(),
        )
        if not result.success:
            return service_error_response(result)

        return Response(
            CheckoutIntentResponseSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )


class OrderCreateView(APIView):
    """
    Place an order.

    POST /api/v1/orders/

    Response:
        201 Created: Order placed; for UPI methods also when the payment
            gateway was unreachable (order saved, "<provider>Created": false)
        400 Bad Request: CART_EMPTY, ADDRESS_REQUIRED, INVALID_OFFER,
            PAYMENT_METHOD_UNAVAILABLE
        403 Forbidden: ADDRESS_NOT_OWNED
        404 Not Found: CHECKOUT_INTENT_NOT_FOUND
        409 Conflict: CHECKOUT_INTENT_ALREADY_PROCESSED
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_order",
        summary="Place order",
        description=(
            "Create an order from the session cart or a checkout intent. "
            "UPI orders are handed to the payment provider; the response "
            "carries the payment session and the reconciliation state the "
            "client should poll."
        ),
        request=CreateOrderSerializer,
        responses={
            201: OpenApiResponse(description="Order placed"),
            400: OpenApiResponse(description="Validation error"),
            403: OpenApiResponse(description="Address belongs to another user"),
            404: OpenApiResponse(description="Checkout intent not found or expired"),
            409: OpenApiResponse(description="Checkout intent already processed"),
        },
        tags=["Orders - Checkout"],
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderIntakeService.place_order(
            CartContext.from_request(request),
            serializer.to_order_request(),
        )
        if not result.success:
            return service_error_response(result)

        return Response(
            OrderPlacementSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )
