"""
URL configuration for the payments app.

Routes:
    - GET /order-info/<order_id>/ - Order payment state
    - GET /<provider>/return/ - Browser return probe
    - POST /<provider>/retry/ - Retry an expired payment
    - POST /webhooks/cashfree/, /webhooks/phonepe/ - Provider webhooks

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import OrderInfoView, PaymentRetryView, PaymentReturnView
from payments.webhooks.views import provider_webhook

app_name = "payments"

urlpatterns = [
    path("order-info/<str:order_id>/", OrderInfoView.as_view(), name="order-info"),
    # Webhook endpoints
    path("webhooks/<str:provider>/", provider_webhook, name="provider-webhook"),
    path("<str:provider>/return/", PaymentReturnView.as_view(), name="payment-return"),
    path("<str:provider>/retry/", PaymentRetryView.as_view(), name="payment-retry"),
]
