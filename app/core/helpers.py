"""
Helper functions for parsing operator-entered form values.

This module provides domain-agnostic utilities for:
- Integer parsing that tolerates blank form fields
- ISO calendar date parsing
- Future-date validation against an injected "today"

These utilities know nothing about leads, refunds or payments; the enrollment
services decide which error code a parse failure maps to.

Usage:
    from core.helpers import parse_int, parse_iso_date, is_future_date

    amount = parse_int(request.data.get("refund_amount"))
    refund_date = parse_iso_date("2026-10-18")
    if is_future_date(refund_date, today):
        ...
"""

from __future__ import annotations

import datetime
from typing import Any


def parse_int(value: Any) -> int | None:
    """
    Parse an integer from a form value.

    Blank and missing values return None; anything that is not a whole
    number raises ValueError so the caller can report an invalid field.

    Example:
        parse_int("3300")  # 3300
        parse_int("")      # None
        parse_int("3.5")   # ValueError
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    return int(text)


def parse_iso_date(value: Any) -> datetime.date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Dates are interpreted as local calendar days; no timezone conversion
    happens here.

    Raises:
        ValueError: If the value is not a valid ISO date
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value).strip())


def is_future_date(value: datetime.date, today: datetime.date) -> bool:
    """Return True when ``value`` falls after ``today``."""
    return value > today
