"""
Enrollment-specific exceptions for lead lifecycle and money operations.

Error codes on these exceptions are the lowercase codes carried back to the
operator in the redirect query string (``?error=amount_exceeds&max=3300``),
so views can surface them without translation.

Exception Hierarchy:
    EnrollmentError (base for enrollment domain)
    ├── LeadNotFoundError - Lead lookup failures
    ├── LeadValidationError - Field and business rule validation failures
    │   ├── RefundValidationError - Refund input and ceiling failures
    │   └── CoursePaymentValidationError - Course payment input failures
    ├── UnknownActionError - Lead action tag that maps to no command
    ├── LeadCancelledError - Action attempted on a cancelled lead
    ├── PhoneAlreadyExistsError - Intake with a phone already on file
    └── ActionForbiddenError - Operator role may not run the action

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from enrollment.exceptions import RefundValidationError

    if amount > total_paid:
        raise RefundValidationError(
            "Refund amount exceeds total course paid",
            error_code="amount_exceeds",
            details={"max": total_paid},
        )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


# =============================================================================
# Enrollment Domain Exceptions
# =============================================================================


class EnrollmentError(BaseApplicationError):
    """
    Base exception for all enrollment operations.

    LeadActionService converts any EnrollmentError raised inside an action
    into a failed ServiceResult, so the whole action rolls back and the
    error code reaches the operator.
    """

    default_error_code: str = "enrollment_error"


class LeadNotFoundError(EnrollmentError, NotFoundError):
    """Raised when a lead id does not resolve to a lead."""

    default_error_code: str = "lead_not_found"


class LeadValidationError(EnrollmentError, ValidationError):
    """
    Raised when submitted lead data fails validation.

    The error code names the failing rule (``level_required``,
    ``schedule_required``, ``final_price_required``...). Nothing has been
    written when this is raised.
    """

    default_error_code: str = "invalid_input"


class RefundValidationError(LeadValidationError):
    """
    Raised when a refund request fails validation.

    Codes, in the order they are checked:
        invalid_amount, amount_exceeds (details carry ``max``),
        method_required, invalid_method, date_required, invalid_date,
        future_date
    """

    default_error_code: str = "refund_failed"


class CoursePaymentValidationError(LeadValidationError):
    """Raised when a course payment fails validation."""

    default_error_code: str = "course_payment_invalid"


class UnknownActionError(EnrollmentError, ValidationError):
    """Raised when a lead action tag maps to no known command."""

    default_error_code: str = "unknown_action"


class LeadCancelledError(EnrollmentError, ConflictError):
    """Raised when an action other than reopen targets a cancelled lead."""

    default_error_code: str = "lead_cancelled"


class PhoneAlreadyExistsError(EnrollmentError, ConflictError):
    """
    Raised on intake when the phone number already belongs to a lead.

    ``details["existing_lead_id"]`` carries the id of the lead on file.
    """

    default_error_code: str = "phone_exists"


class ActionForbiddenError(EnrollmentError, PermissionDeniedError):
    """Raised when the acting operator's role may not run an action."""

    default_error_code: str = "forbidden"


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(EnrollmentError, ConflictError):
    """
    Raised when a lead status transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed in the standard error format.

    Example:
        from django_fsm import TransitionNotAllowed

        try:
            lead.reopen()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot reopen lead from '{lead.status}'",
                details={
                    "current_state": lead.status,
                    "target_state": "lead_created",
                    "transition": "reopen",
                },
            )
    """

    default_error_code: str = "invalid_transition"


__all__ = [
    "ActionForbiddenError",
    "CoursePaymentValidationError",
    "EnrollmentError",
    "InvalidStateTransitionError",
    "LeadCancelledError",
    "LeadNotFoundError",
    "LeadValidationError",
    "PhoneAlreadyExistsError",
    "RefundValidationError",
    "UnknownActionError",
]
