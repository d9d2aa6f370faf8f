"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints (SimpleJWT)
        token/                     - Obtain access/refresh tokens
        token/refresh/             - Refresh access token
    /api/v1/orders/                - Order endpoints
        (root)                     - Place order (POST)
        checkout-intent/           - Create checkout intent (POST)
    /api/v1/payments/              - Payment endpoints
        order-info/{order_id}/     - Order payment state (GET)
        {provider}/return/         - Browser return probe (GET)
        {provider}/retry/          - Retry expired payment (POST)
        webhooks/cashfree/         - Cashfree webhook endpoint (POST)
        webhooks/phonepe/          - PhonePe webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (SimpleJWT)
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Orders
    path("orders/", include("orders.urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Orders & Payments Admin"
admin.site.site_title = "Admin Portal"
admin.site.index_title = "Orders, payments and reconciliation"
