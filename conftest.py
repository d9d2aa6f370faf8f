"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.

Test environment defaults (overridable from the shell):
    - SQLite in-memory database
    - Local-memory cache (sessions and carts live in the cache)
    - Celery tasks run eagerly
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("USE_LOCMEM_CACHE", "True")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "True")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("LOG_FILE_NAME", "test.log")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full checkout-to-payment journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_adapters.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    # Filename patterns for each category
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_webhooks.py",
        "test_handlers.py",
        "test_order_intake.py",
        "test_checkout_intent.py",
        "test_payment_initiation.py",
        "test_payment_retry.py",
        "test_payment_return.py",
        "test_reconciliation_service.py",
        "test_transaction_state.py",
        "test_order_sync.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_pricing.py",
        "test_masking.py",
        "test_retry.py",
        "test_adapters.py",
        "test_providers.py",
        "test_state_transitions.py",
        "test_poller.py",
        "test_factories.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filepath = str(item.fspath)
        filename = filepath.split("/")[-1]

        # Check patterns in priority order
        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Project-wide Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a test customer."""
    from orders.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def other_user(db):
    """Create a second customer, for ownership checks."""
    from orders.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def authenticated_client(api_client, user):
    """DRF test client authenticated as `user`."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def session_key(api_client):
    """
    Session key of the test client.

    Cart lines created with this session id belong to the client's cart.
    """
    return api_client.session.session_key


@pytest.fixture
def payment_providers(settings):
    """
    Enable Cashfree and PhonePe with test credentials.

    Cashfree has priority, so "upi" resolves to Cashfree.
    """
    settings.PAYMENT_ENVIRONMENT = "test"
    settings.PAYMENT_PROVIDER_PRIORITY = ["cashfree", "phonepe"]
    settings.PAYMENT_TENANT_OVERRIDES = {}
    settings.CASHFREE_ENABLED = True
    settings.CASHFREE_APP_ID = "cf_test_app"
    settings.CASHFREE_SECRET_KEY = "cf_test_secret"
    settings.PHONEPE_ENABLED = True
    settings.PHONEPE_MERCHANT_ID = "PGTESTMERCHANT"
    settings.PHONEPE_SALT_KEY = "phonepe-test-salt"
    settings.PHONEPE_SALT_INDEX = 1
    return settings
