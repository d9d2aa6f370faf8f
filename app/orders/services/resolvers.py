"""
Delivery address and payment method resolution for checkout.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from orders.exceptions import (
    AddressNotFoundError,
    AddressNotOwnedError,
    AddressRequiredError,
    PaymentMethodUnavailableError,
)
from orders.models import Address
from orders.states import PaymentMethod
from payments.providers import ProviderConfigResolver
from payments.state_machines import PaymentProvider

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

REQUIRED_ADDRESS_FIELDS = ("addressLine1", "city", "pincode")


class AddressResolver:
    """Finds or creates the delivery address for a checkout."""

    @classmethod
    def get_owned(cls, user, address_id) -> Address:
        """
        Return the user's saved address.

        Raises:
            AddressNotFoundError: No such address
            AddressNotOwnedError: Address belongs to another user
        """
        try:
            address_uuid = uuid.UUID(str(address_id))
        except ValueError:
            raise AddressNotFoundError(
                "Address not found", details={"address_id": str(address_id)}
            ) from None

        address = Address.objects.filter(pk=address_uuid).first()
        if address is None:
            raise AddressNotFoundError("Address not found", details={"address_id": str(address_id)})
        if address.user_id != user.pk:
            logger.warning(
                "Address ownership check failed",
                extra={"address_id": str(address_id), "user_id": user.pk},
            )
            raise AddressNotOwnedError("Address does not belong to this user")
        return address

    @classmethod
    def create_from_user_info(cls, user, user_info: dict[str, Any]) -> Address:
        """
        Create an address from inline checkout fields.

        addressLine1, city and pincode are required; addressLine2 is
        appended to the street address when present.
        """
        missing = [name for name in REQUIRED_ADDRESS_FIELDS if not str(user_info.get(name) or "").strip()]
        if missing:
            raise AddressRequiredError(
                "Delivery address is required",
                details={name: ["This field is required."] for name in missing},
            )

        lines = [user_info["addressLine1"].strip()]
        if user_info.get("addressLine2"):
            lines.append(str(user_info["addressLine2"]).strip())

        has_addresses = Address.objects.filter(user=user).exists()
        make_preferred = bool(user_info.get("makePreferred")) or not has_addresses
        if make_preferred and has_addresses:
            Address.objects.filter(user=user, is_preferred=True).update(is_preferred=False)

        return Address.objects.create(
            user=user,
            name=str(user_info.get("name") or "Home")[:255],
            address="\n".join(lines),
            city=str(user_info["city"]).strip(),
            pincode=str(user_info["pincode"]).strip(),
            is_preferred=make_preferred,
        )

    @classmethod
    def resolve(
        cls,
        user,
        selected_address_id=None,
        user_info: dict[str, Any] | None = None,
        fallback: Address | None = None,
    ) -> Address:
        """
        Resolve the delivery address, in order of precedence:
        selected saved address, inline user_info, fallback.

        Raises:
            AddressRequiredError: Nothing to resolve from
        """
        if selected_address_id:
            return cls.get_owned(user, selected_address_id)
        if user_info:
            return cls.create_from_user_info(user, user_info)
        if fallback is not None:
            return fallback
        raise AddressRequiredError("Delivery address is required")


class PaymentMethodResolver:
    """Maps a requested payment method to a stored method and provider."""

    @staticmethod
    def resolve(method: str) -> tuple[str, PaymentProvider | None]:
        """
        Return (stored_method, provider).

        cod has no provider. upi resolves to the highest-priority enabled
        provider. cashfree and phonepe must be enabled.

        Raises:
            PaymentMethodUnavailableError: Unknown method or no enabled provider
        """
        if method == PaymentMethod.COD:
            return PaymentMethod.COD.value, None

        if method == PaymentMethod.UPI:
            enabled = ProviderConfigResolver.get_enabled_providers()
            if not enabled:
                raise PaymentMethodUnavailableError(
                    "UPI payments are currently unavailable",
                    details={"payment_method": method},
                )
            provider = enabled[0]
            return provider.value, provider

        if method in PaymentProvider.values and ProviderConfigResolver.is_enabled(method):
            provider = PaymentProvider(method)
            return provider.value, provider

        raise PaymentMethodUnavailableError(
            f"Payment method '{method}' is not available",
            details={"payment_method": method},
        )
