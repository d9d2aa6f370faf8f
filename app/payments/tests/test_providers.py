"""
Tests for provider configuration resolution.
"""

import pytest

from payments.exceptions import ProviderNotConfiguredError
from payments.providers import ProviderConfigResolver
from payments.state_machines import PaymentProvider


class TestResolveConfig:
    def test_reads_settings(self, payment_providers):
        config = ProviderConfigResolver.resolve_config(PaymentProvider.CASHFREE)

        assert config.enabled is True
        assert config.environment == "test"
        assert config.tenant == "default"
        assert config.is_live is False
        assert config.credential("app_id") == "cf_test_app"
        assert config.timeout == 10.0

    def test_accepts_string_provider(self, payment_providers):
        assert ProviderConfigResolver.resolve_config("phonepe").provider == PaymentProvider.PHONEPE

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            ProviderConfigResolver.resolve_config("razorpay")

    def test_explicit_environment(self, payment_providers):
        config = ProviderConfigResolver.resolve_config("cashfree", environment="live")

        assert config.is_live is True

    def test_tenant_override(self, payment_providers):
        payment_providers.PAYMENT_TENANT_OVERRIDES = {
            "acme": {
                "phonepe": {"enabled": False},
                "cashfree": {"credentials": {"app_id": "cf_acme_app"}},
            },
        }

        cashfree = ProviderConfigResolver.resolve_config("cashfree", tenant="acme")
        phonepe = ProviderConfigResolver.resolve_config("phonepe", tenant="acme")

        assert cashfree.credential("app_id") == "cf_acme_app"
        assert cashfree.credential("secret_key") == "cf_test_secret"
        assert phonepe.enabled is False

    def test_override_ignored_for_other_tenants(self, payment_providers):
        payment_providers.PAYMENT_TENANT_OVERRIDES = {"acme": {"phonepe": {"enabled": False}}}

        assert ProviderConfigResolver.resolve_config("phonepe").enabled is True

    def test_missing_credential(self, settings):
        settings.PHONEPE_SALT_KEY = ""
        config = ProviderConfigResolver.resolve_config("phonepe")

        with pytest.raises(ProviderNotConfiguredError) as exc_info:
            config.credential("salt_key")

        assert exc_info.value.provider == "phonepe"

    def test_credentials_not_in_repr(self, payment_providers):
        config = ProviderConfigResolver.resolve_config("cashfree")

        assert "cf_test_secret" not in repr(config)


class TestCallbackUrls:
    def test_return_url_appends_transaction_id(self, payment_providers):
        config = ProviderConfigResolver.resolve_config("cashfree")

        assert config.return_url_for("TXN_1") == (
            "http://localhost:3000/payment/return?provider=cashfree&merchantTransactionId=TXN_1"
        )

    def test_return_url_without_query(self, payment_providers):
        payment_providers.PAYMENT_RETURN_URL = "https://shop.example.com/return/{provider}"
        config = ProviderConfigResolver.resolve_config("phonepe")

        assert config.return_url_for("TXN_1") == (
            "https://shop.example.com/return/phonepe?merchantTransactionId=TXN_1"
        )

    def test_empty_return_url(self, payment_providers):
        payment_providers.PAYMENT_RETURN_URL = ""
        config = ProviderConfigResolver.resolve_config("phonepe")

        assert config.return_url_for("TXN_1") == ""

    def test_notify_url(self, payment_providers):
        config = ProviderConfigResolver.resolve_config("phonepe")

        assert config.notify_url_for() == "http://localhost:8000/api/v1/payments/webhooks/phonepe/"


class TestEnabledProviders:
    def test_priority_order(self, payment_providers):
        payment_providers.PAYMENT_PROVIDER_PRIORITY = ["phonepe", "cashfree"]

        assert ProviderConfigResolver.get_enabled_providers() == [
            PaymentProvider.PHONEPE,
            PaymentProvider.CASHFREE,
        ]

    def test_unlisted_provider_sorts_last(self, payment_providers):
        payment_providers.PAYMENT_PROVIDER_PRIORITY = ["phonepe"]

        assert ProviderConfigResolver.get_enabled_providers() == [
            PaymentProvider.PHONEPE,
            PaymentProvider.CASHFREE,
        ]

    def test_disabled_provider_excluded(self, payment_providers):
        payment_providers.CASHFREE_ENABLED = False

        assert ProviderConfigResolver.get_enabled_providers() == [PaymentProvider.PHONEPE]
        assert not ProviderConfigResolver.is_enabled("cashfree")

    def test_none_enabled(self, settings):
        settings.CASHFREE_ENABLED = False
        settings.PHONEPE_ENABLED = False

        assert ProviderConfigResolver.get_enabled_providers() == []
