"""
Exception hierarchy shared by the admin client layers.
"""

from __future__ import annotations

from typing import Optional


class AdminError(Exception):
    """Base error raised by the admin client."""


class FormValidationError(AdminError):
    """Raised when an edit buffer fails local validation."""


class PrefillError(AdminError):
    """Raised when pasted text cannot be turned into form fields."""


class CategoryDataError(AdminError):
    """Raised when a category payload is malformed."""


class SessionStoreError(AdminError):
    """Raised when the stored session cannot be read or written."""


class ApiError(AdminError):
    """Raised when the catalog API call fails.

    ``message`` is always human readable: either the text returned by the
    server or the localized fallback chosen by the caller.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        return self.message


class ConfigurationError(AdminError):
    """Raised when there's an error in configuration."""
