"""
Payment provider configuration.

Provider settings come from Django settings (django-environ backed) and can
be overridden per tenant through PAYMENT_TENANT_OVERRIDES:

    PAYMENT_TENANT_OVERRIDES = {
        "acme": {
            "phonepe": {"enabled": False},
            "cashfree": {"credentials": {"app_id": "...", "secret_key": "..."}},
        },
    }

Usage:
    from payments.providers import ProviderConfigResolver

    ProviderConfigResolver.get_enabled_providers()  # [PaymentProvider.CASHFREE, ...]
    config = ProviderConfigResolver.resolve_config(PaymentProvider.CASHFREE)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from django.conf import settings

from payments.exceptions import ProviderNotConfiguredError
from payments.state_machines import PaymentProvider

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

LIVE = "live"
TEST = "test"


@dataclass(frozen=True)
class ProviderConfig:
    """
    Resolved configuration for one provider in one environment.

    Attributes:
        credentials: Provider-specific secrets (never logged)
        priority: Position in PAYMENT_PROVIDER_PRIORITY, lower wins
        return_url: Browser return URL template, {provider} is substituted
        notify_url: Server callback URL template, {provider} is substituted
    """

    provider: PaymentProvider
    environment: str
    tenant: str
    enabled: bool
    priority: int
    timeout: float
    return_url: str = ""
    notify_url: str = ""
    credentials: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def is_live(self) -> bool:
        return self.environment == LIVE

    def credential(self, key: str) -> str:
        """
        Return a required credential.

        Raises:
            ProviderNotConfiguredError: Credential missing or empty
        """
        value = self.credentials.get(key)
        if not value:
            raise ProviderNotConfiguredError(
                f"Missing {self.provider.label} credential '{key}'",
                provider=self.provider.value,
            )
        return value

    def return_url_for(self, merchant_transaction_id: str) -> str:
        base = self.return_url.format(provider=self.provider.value)
        if not base:
            return ""
        separator = "&" if "?" in base else "?"
        return f"{base}{separator}{urlencode({'merchantTransactionId': merchant_transaction_id})}"

    def notify_url_for(self) -> str:
        return self.notify_url.format(provider=self.provider.value)


class ProviderConfigResolver:
    """Resolves enabled providers and their configuration."""

    @staticmethod
    def _base_settings(provider: PaymentProvider) -> dict[str, Any]:
        if provider == PaymentProvider.CASHFREE:
            return {
                "enabled": settings.CASHFREE_ENABLED,
                "credentials": {
                    "app_id": settings.CASHFREE_APP_ID,
                    "secret_key": settings.CASHFREE_SECRET_KEY,
                    "api_version": settings.CASHFREE_API_VERSION,
                },
            }
        return {
            "enabled": settings.PHONEPE_ENABLED,
            "credentials": {
                "merchant_id": settings.PHONEPE_MERCHANT_ID,
                "salt_key": settings.PHONEPE_SALT_KEY,
                "salt_index": str(settings.PHONEPE_SALT_INDEX),
            },
        }

    @staticmethod
    def _priority(provider: PaymentProvider) -> int:
        order = [p.strip().lower() for p in settings.PAYMENT_PROVIDER_PRIORITY]
        if provider.value in order:
            return order.index(provider.value)
        return len(order) + list(PaymentProvider).index(provider)

    @classmethod
    def resolve_config(
        cls,
        provider: PaymentProvider | str,
        environment: str | None = None,
        tenant: str | None = None,
    ) -> ProviderConfig:
        """
        Build the configuration for provider, applying tenant overrides.

        The returned config may be disabled; adapters check credentials
        lazily so that status pages can still describe a disabled provider.
        """
        provider = PaymentProvider(provider)
        environment = environment or settings.PAYMENT_ENVIRONMENT
        tenant = tenant or settings.PAYMENT_TENANT

        values = cls._base_settings(provider)
        override = settings.PAYMENT_TENANT_OVERRIDES.get(tenant, {}).get(provider.value, {})
        if override:
            values = {
                "enabled": override.get("enabled", values["enabled"]),
                "credentials": {**values["credentials"], **override.get("credentials", {})},
            }

        return ProviderConfig(
            provider=provider,
            environment=environment,
            tenant=tenant,
            enabled=bool(values["enabled"]),
            priority=cls._priority(provider),
            timeout=float(settings.PAYMENT_HTTP_TIMEOUT_SECONDS),
            return_url=settings.PAYMENT_RETURN_URL,
            notify_url=settings.PAYMENT_NOTIFY_URL,
            credentials=values["credentials"],
        )

    @classmethod
    def get_enabled_providers(
        cls,
        environment: str | None = None,
        tenant: str | None = None,
    ) -> list[PaymentProvider]:
        """Enabled providers, highest priority first."""
        configs = [cls.resolve_config(p, environment, tenant) for p in PaymentProvider]
        enabled = sorted((c for c in configs if c.enabled), key=lambda c: c.priority)
        return [c.provider for c in enabled]

    @classmethod
    def is_enabled(cls, provider: PaymentProvider | str) -> bool:
        return cls.resolve_config(provider).enabled
