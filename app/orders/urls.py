"""
URL configuration for orders app.

Routes:
    POST /api/v1/orders/                  - Place order
    POST /api/v1/orders/checkout-intent/  - Stage checkout intent
"""

from django.urls import path

from orders.views import CheckoutIntentView, OrderCreateView

app_name = "orders"

urlpatterns = [
    path("", OrderCreateView.as_view(), name="order-create"),
    path("checkout-intent/", CheckoutIntentView.as_view(), name="checkout-intent"),
]
