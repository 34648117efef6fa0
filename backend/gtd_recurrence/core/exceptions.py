"""
Custom exceptions for the recurrence engine.
"""

from typing import Any, Optional


class RecurrenceEngineError(Exception):
    """Base exception for gtd_recurrence."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(RecurrenceEngineError):
    """Resource not found."""

    pass


class ValidationError(RecurrenceEngineError):
    """Validation error."""

    pass


class StorageError(RecurrenceEngineError):
    """Underlying store read or write failed."""

    pass
