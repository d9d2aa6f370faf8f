"""
DRF serializers for the orders app.

Request and response bodies use camelCase keys to match the storefront
client.

Related files:
    - services/order_intake.py: OrderIntakeService, OrderRequest
    - services/checkout_intent.py: CheckoutIntentService
    - views.py: Order API views
"""

from __future__ import annotations

from rest_framework import serializers

from orders.models import Address, Order, OrderItem
from orders.services import OrderRequest
from orders.states import PaymentMethod


class AddressSerializer(serializers.ModelSerializer):
    isPreferred = serializers.BooleanField(source="is_preferred", read_only=True)

    class Meta:
        model = Address
        fields = ["id", "name", "address", "city", "pincode", "isPreferred"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source="product_id", read_only=True)
    productName = serializers.CharField(source="product.name", read_only=True)
    lineTotal = serializers.DecimalField(
        source="line_total", max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = OrderItem
        fields = ["productId", "productName", "quantity", "price", "lineTotal"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Order with its items and delivery address.

    Usage:
        serializer = OrderSerializer(order)
    """

    paymentStatus = serializers.CharField(source="payment_status", read_only=True)
    paymentMethod = serializers.CharField(source="payment_method", read_only=True)
    discount = serializers.DecimalField(
        source="discount_amount", max_digits=10, decimal_places=2, read_only=True
    )
    shippingCharge = serializers.DecimalField(
        source="shipping_charge", max_digits=10, decimal_places=2, read_only=True
    )
    amountMinor = serializers.IntegerField(source="amount_minor", read_only=True)
    deliveryAddress = AddressSerializer(source="delivery_address", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    checkoutIntentId = serializers.UUIDField(source="checkout_intent_id", read_only=True)
    paidAt = serializers.DateTimeField(source="paid_at", read_only=True)
    paymentFailedAt = serializers.DateTimeField(source="payment_failed_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "status",
            "paymentStatus",
            "paymentMethod",
            "subtotal",
            "discount",
            "shippingCharge",
            "total",
            "amountMinor",
            "deliveryAddress",
            "items",
            "checkoutIntentId",
            "paidAt",
            "paymentFailedAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class UserInfoSerializer(serializers.Serializer):
    """
    Inline delivery address.

    Required-field checks happen in AddressResolver so the error carries
    the ADDRESS_REQUIRED code.
    """

    name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    addressLine1 = serializers.CharField(required=False, allow_blank=True)
    addressLine2 = serializers.CharField(required=False, allow_blank=True)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    pincode = serializers.CharField(required=False, allow_blank=True, max_length=10)
    makePreferred = serializers.BooleanField(required=False, default=False)


class CreateOrderSerializer(serializers.Serializer):
    """
    Body of POST /api/v1/orders/.

    Usage:
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = OrderIntakeService.place_order(cart, serializer.to_order_request())
    """

    paymentMethod = serializers.ChoiceField(choices=PaymentMethod.choices)
    selectedAddressId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    userInfo = UserInfoSerializer(required=False, allow_null=True)
    offerCode = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=50)
    checkoutIntentId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    phone = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=20)

    def to_order_request(self) -> OrderRequest:
        data = self.validated_data
        return OrderRequest(
            payment_method=data["paymentMethod"],
            selected_address_id=data.get("selectedAddressId") or None,
            user_info=data.get("userInfo") or None,
            offer_code=data.get("offerCode") or None,
            checkout_intent_id=data.get("checkoutIntentId") or None,
            phone=data.get("phone") or None,
        )


class CheckoutIntentRequestSerializer(serializers.Serializer):
    """Body of POST /api/v1/orders/checkout-intent/."""

    paymentMethod = serializers.ChoiceField(choices=PaymentMethod.choices)
    selectedAddressId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    offerCode = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=50)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    discount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    shipping = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    total = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)

    def client_totals(self) -> dict | None:
        totals = {
            key: self.validated_data.get(key) for key in ("subtotal", "discount", "shipping", "total")
        }
        return totals if any(value is not None for value in totals.values()) else None


class CheckoutIntentResponseSerializer(serializers.Serializer):
    intentId = serializers.UUIDField(source="intent.id")
    expiresAt = serializers.DateTimeField(source="intent.expires_at")
    totals = serializers.SerializerMethodField()

    def get_totals(self, obj) -> dict[str, str]:
        return obj.totals.as_dict()


class OrderPlacementSerializer(serializers.Serializer):
    """
    Response of POST /api/v1/orders/.

    Success:
        {order, message, payment, reconciliation, shouldStartPolling}
    Gateway unavailable (order saved):
        {order, message, <provider>Created: false, error, errorCode}
    """

    def to_representation(self, instance):
        data = {
            "order": OrderSerializer(instance.order).data,
            "message": instance.message,
        }
        if instance.gateway_failed:
            data[f"{instance.order.payment_method}Created"] = False
            data["error"] = instance.gateway_error.error
            data["errorCode"] = instance.gateway_error.error_code
            return data

        data["payment"] = instance.initiation.payment_payload if instance.initiation else None
        data["reconciliation"] = instance.reconciliation
        data["shouldStartPolling"] = instance.should_start_polling
        return data
