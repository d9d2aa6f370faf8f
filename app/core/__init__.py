"""
Core Application - Infrastructure & Base Classes

Generic, reusable base classes shared by the orders and payments apps.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - NotFoundError, PermissionDeniedError,
      ConflictError, ExternalServiceError

Views (import from core.views):
    - health_check: Database/cache probe
    - service_error_response: Failed ServiceResult -> DRF Response
"""
