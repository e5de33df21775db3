"""Exceptions raised by the loan calculator.

Both error types are raised before any schedule row is produced, so callers
either receive a complete result or an exception.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoanCalculatorError(Exception):
    """Base exception for all calculator errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidInputError(LoanCalculatorError, ValueError):
    """Raised for malformed or out-of-range numeric input.

    Subclasses ``ValueError`` so that callers which only know about the
    built-in parsing errors still catch it.
    """


class ConfigurationError(LoanCalculatorError):
    """Raised when a financing option or settings document cannot be used."""

    def __init__(self, message: str, option: Optional[str] = None):
        details = {"option": option} if option else None
        super().__init__(message, details)
