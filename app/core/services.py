"""
Base service layer patterns for business logic encapsulation.

This module provides the two building blocks every enrollment service uses:
- ServiceResult: Result wrapper for expected, caller-correctable failures
- BaseService: Logging and transaction helpers shared by service classes

Service Layer Philosophy:
    Views parse HTTP input and render outcomes, models hold data and
    transition guards, services own the business rules in between.

Pattern Comparison:
    - ServiceResult: expected failures (validation, business rules) that the
      caller maps to an error code
    - Exceptions: domain errors raised deep inside a workflow, and
      infrastructure failures (database errors) that must abort it

Usage:
    from core.services import BaseService, ServiceResult

    class LeadActionService(BaseService):
        @classmethod
        def execute(cls, lead_id, command, context) -> ServiceResult[ActionOutcome]:
            try:
                with cls.atomic():
                    outcome = cls._dispatch(lead_id, command, context)
            except EnrollmentError as e:
                return ServiceResult.from_exception(e)

            cls.get_logger().info("Lead action completed", extra={"lead_id": str(lead_id)})
            return ServiceResult.success(outcome)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
        details: Extra context attached to a failure (e.g. an allowed maximum)

    Usage:
        result = CancelWorkflow.execute(request, context)
        if result:
            outcome = result.data
        else:
            redirect_with(error=result.error_code, **result.details)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
            details: Extra context the caller may surface

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
            details=details or {},
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message, code and details.
        Anything else is reported under its class name.

        Example:
            try:
                RefundService.create_direct_refund(request, context)
            except RefundValidationError as e:
                return ServiceResult.from_exception(e)
        """
        if isinstance(exc, BaseApplicationError):
            return cls(
                success=False,
                error=exc.message,
                error_code=error_code or exc.error_code,
                details=dict(exc.details),
            )
        return cls(
            success=False,
            error=str(exc),
            error_code=error_code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        if self.details:
            response["details"] = self.details
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides:
    - A logger per service class
    - An explicit transaction boundary helper

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        The logger is named ``<module>.<ClassName>`` so log output can be
        filtered per service.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes the
        transaction boundary explicit in service code. Any exception raised
        inside the block rolls every write back.

        Example:
            with cls.atomic():
                payment = LeadPayment.objects.create(...)
                LedgerService.record(...)
                # If the ledger write fails, the payment is rolled back too
        """
        with transaction.atomic():
            yield
