"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks with no enrollment-specific logic.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - PermissionDeniedError: Authorization failures
    - ConflictError: State conflicts (duplicates, invalid transitions)

Helpers (import from core.helpers):
    - parse_int: Integer parsing for blank-tolerant form values
    - parse_iso_date: Calendar date parsing
    - is_future_date: Date comparison against an injected "today"

Views (import from core.views):
    - health_check: Database connectivity probe
"""
