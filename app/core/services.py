"""
Service layer result type and base class.

Services hold the business logic; views translate HTTP to service calls
and ServiceResult back to responses.

- ServiceResult: expected failures (business rules, ownership, gateway
  unavailable) travel as values with an error code and HTTP status
- Exceptions: unexpected failures (database errors, bugs) propagate

Usage:
    from core.services import BaseService, ServiceResult

    class PaymentReturnService(BaseService):
        @classmethod
        def handle_return(cls, provider, params) -> ServiceResult[ReturnOutcome]:
            try:
                transaction = cls._find_transaction(provider, params)
            except PaymentNotFoundError as e:
                return ServiceResult.from_exception(e)
            ...
            return ServiceResult.success(outcome)

    # In a view
    result = PaymentReturnService.handle_return(provider, request.query_params)
    if not result.success:
        return service_error_response(result)
    return Response(PaymentReturnSerializer(result.data).data)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service operation.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful
        error: Human-readable error message if failed
        error_code: Machine-readable code the storefront branches on
        status_code: HTTP status for the failure (400 when unknown)
        details: Extra context copied from a domain exception
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    status_code: int = 400
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Example:
            return ServiceResult.failure(
                "Unknown payment provider", error_code="PROVIDER_NOT_FOUND", status_code=404
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            status_code=status_code,
            details=details,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Domain exceptions keep their error code, details and HTTP status;
        anything else is reported with the exception class name.
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                status_code=exc.status_code,
                details=exc.details or None,
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """Error body: {"error", "error_code"?, "details"?}; success wraps data."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.details:
            response["details"] = self.details
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service classes.

    Services are stateless: use @classmethod or @staticmethod, return
    ServiceResult for expected failures and let unexpected errors raise.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class, for filtering in logs."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
