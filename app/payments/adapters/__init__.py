"""
Payment provider adapters.

All provider API calls go through these adapters to get consistent error
handling, timeouts and logging. Adapters are looked up through the closed
ADAPTER_REGISTRY; code outside this package never branches on provider
names.

Usage:
    from payments.adapters import CreatePaymentParams, get_adapter

    adapter = get_adapter(PaymentProvider.CASHFREE)
    result = adapter.create_payment(
        CreatePaymentParams(order_id=transaction.merchant_transaction_id, amount_minor=94900)
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from payments.adapters.base import (
    CreatePaymentParams,
    CustomerDetails,
    PaymentProviderAdapter,
    ProviderOrder,
    ProviderPaymentResult,
    ProviderStatus,
    ProviderWebhook,
)
from payments.adapters.cashfree_adapter import CashfreeAdapter
from payments.adapters.phonepe_adapter import PhonePeAdapter
from payments.providers import ProviderConfigResolver
from payments.state_machines import PaymentProvider

if TYPE_CHECKING:
    import requests

ADAPTER_REGISTRY: dict[PaymentProvider, type[PaymentProviderAdapter]] = {
    PaymentProvider.CASHFREE: CashfreeAdapter,
    PaymentProvider.PHONEPE: PhonePeAdapter,
}


def get_adapter(
    provider: PaymentProvider | str,
    environment: str | None = None,
    tenant: str | None = None,
    session: requests.Session | None = None,
) -> PaymentProviderAdapter:
    """Instantiate the adapter for provider with its resolved configuration."""
    provider = PaymentProvider(provider)
    config = ProviderConfigResolver.resolve_config(provider, environment, tenant)
    return ADAPTER_REGISTRY[provider](config, session=session)


__all__ = [
    "ADAPTER_REGISTRY",
    "CashfreeAdapter",
    "CreatePaymentParams",
    "CustomerDetails",
    "PaymentProviderAdapter",
    "PhonePeAdapter",
    "ProviderOrder",
    "ProviderPaymentResult",
    "ProviderStatus",
    "ProviderWebhook",
    "get_adapter",
]
