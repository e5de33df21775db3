"""Utility functions for the loan calculator.

This module provides helpers for turning user input into ``Decimal`` values
and for handling schedule dates, including adding months and normalizing
year-month strings to ``datetime.date`` instances.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .errors import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Raises
    ------
    InvalidInputError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, TypeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def schedule_date(start_date: Optional[date], month: int) -> Optional[date]:
    """Date of the ``month``-th payment (1-based), or None without a start."""
    if start_date is None:
        return None
    return add_months(start_date, month - 1)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips commas, whitespace and a leading peso sign. Shorthand
    ``k``/``m`` suffixes are accepted (``"1.2m"`` is 1,200,000).
    """
    cleaned = value.strip().lower().replace(",", "").replace("₱", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        return Decimal(cleaned) * factor
    except InvalidOperation as exc:
        raise InvalidInputError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Number, name: str = "value") -> Decimal:
    """Coerce ``value`` to a finite ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number", {name: value})
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = decimal_from_str(value)
    else:
        raise InvalidInputError(f"{name} must be a number", {name: value})
    if not result.is_finite():
        raise InvalidInputError(f"{name} must be finite", {name: str(value)})
    return result
