"""
Domain exceptions shared by the orders and payments apps.

Each class carries a default error code and the HTTP status a view should
answer with. Services catch them and hand them back as
ServiceResult.from_exception(...); the view turns that into a response.

    BaseApplicationError (400)
    ├── NotFoundError (404) - missing address, intent, order or transaction
    ├── PermissionDeniedError (403) - resource owned by another user
    ├── ConflictError (409) - consumed intent, bad transition, retry refused
    └── ExternalServiceError (502) - payment gateway failure

Usage:
    raise ConflictError(
        "Checkout already processed",
        error_code="CHECKOUT_INTENT_ALREADY_PROCESSED",
        details={"intent_id": str(intent.id)},
    )

DRF keeps handling request-level errors (serializer validation,
authentication, throttling).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for application errors.

    Attributes:
        message: Human-readable description, returned as "error"
        error_code: Machine-readable code the storefront branches on
        details: Extra context (identifiers, field errors)
        status_code: HTTP status used when the error reaches a view
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, error_code={self.error_code!r})"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """The caller does not own the address or order it referenced."""

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class ConflictError(BaseApplicationError):
    """
    The request is well-formed but clashes with stored state.

    Covers replayed checkout intents, FSM transitions that are not allowed
    from the current status, and payment retries on a live reconciliation.
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class ExternalServiceError(BaseApplicationError):
    """A payment gateway call failed; see payments.exceptions.ProviderError."""

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
