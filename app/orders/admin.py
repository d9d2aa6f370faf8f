"""
Orders admin configuration.

Orders and checkout intents are read-mostly here: payment status is a
projection maintained by the payments app and is never edited by hand.
"""

from django.contrib import admin

from orders.models import (
    Address,
    CheckoutIntent,
    Offer,
    OfferRedemption,
    Order,
    OrderItem,
    Product,
)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "price", "is_active", "updated_at"]
    list_filter = ["is_active"]
    search_fields = ["name"]


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "name", "city", "pincode", "is_preferred"]
    list_filter = ["is_preferred"]
    search_fields = ["user__email", "city", "pincode"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "discount_type",
        "discount_value",
        "max_discount",
        "min_cart_value",
        "current_usage",
        "global_usage_limit",
        "is_active",
    ]
    list_filter = ["discount_type", "is_active"]
    search_fields = ["code", "name"]
    readonly_fields = ["current_usage", "created_at", "updated_at"]


@admin.register(OfferRedemption)
class OfferRedemptionAdmin(admin.ModelAdmin):
    list_display = ["offer", "user", "order", "discount_amount", "created_at"]
    search_fields = ["offer__code", "user__email"]
    readonly_fields = ["offer", "user", "order", "discount_amount", "created_at"]

    def has_add_permission(self, request) -> bool:
        return False


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ["product", "quantity", "price"]
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    Payment fields are read-only; they change only through
    payments.services.order_sync.
    """

    list_display = [
        "id",
        "user",
        "total",
        "payment_method",
        "payment_status",
        "status",
        "created_at",
    ]
    list_filter = ["payment_status", "status", "payment_method", "created_at"]
    search_fields = ["id", "user__email", "transactions__merchant_transaction_id"]
    readonly_fields = [
        "id",
        "user",
        "subtotal",
        "discount_amount",
        "shipping_charge",
        "total",
        "amount_minor",
        "payment_method",
        "payment_status",
        "checkout_intent",
        "paid_at",
        "payment_failed_at",
        "created_at",
        "updated_at",
    ]
    inlines = [OrderItemInline]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "user", "status", "delivery_address", "contact_phone"),
            },
        ),
        (
            "Totals",
            {
                "fields": (
                    "subtotal",
                    "discount_amount",
                    "shipping_charge",
                    "total",
                    "amount_minor",
                    "offer",
                ),
            },
        ),
        (
            "Payment",
            {
                "fields": (
                    "payment_method",
                    "payment_status",
                    "paid_at",
                    "payment_failed_at",
                    "checkout_intent",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Orders are never deleted."""
        return False


@admin.register(CheckoutIntent)
class CheckoutIntentAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "total", "payment_method", "is_consumed", "expires_at"]
    list_filter = ["is_consumed", "payment_method"]
    search_fields = ["id", "user__email"]
    readonly_fields = [
        "id",
        "session_id",
        "user",
        "subtotal",
        "discount_amount",
        "shipping_charge",
        "total",
        "cart_snapshot",
        "delivery_address",
        "offer",
        "payment_method",
        "expires_at",
        "is_consumed",
        "consumed_at",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False
