"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    └── DuplicateRefKeyError - A non-idempotent write collided with an existing key
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"


class DuplicateRefKeyError(LedgerError):
    """
    Raised when a write that must create a new row hits an existing ref_key.

    Idempotent writes never raise this; they return the existing row.
    """

    default_error_code: str = "DUPLICATE_REF_KEY"
