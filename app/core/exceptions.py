"""
app/core/exceptions.py

Custom exception hierarchy for the application.

Raising typed exceptions from services lets controllers catch specific
cases and return the correct HTTP status code without leaking internals.
"""

from typing import Iterable


class AppBaseException(Exception):
    """Root exception — catch-all for any application-level error."""


# ── Input exceptions (400) ─────────────────────────────────────────────────────

class FieldValidationError(AppBaseException):
    """Raised when required fields are missing or a field is malformed."""

    def __init__(self, missing: Iterable[str] = (), invalid: Iterable[str] = ()) -> None:
        self.missing = list(missing)
        self.invalid = list(invalid)
        if self.missing:
            message = "Missing required fields: " + ", ".join(self.missing)
        elif self.invalid == ["email"]:
            message = "Invalid email"
        else:
            message = "Invalid fields: " + ", ".join(self.invalid)
        super().__init__(message)


class ParseError(AppBaseException):
    """Raised when a multipart body is empty, malformed, or cannot be staged."""


class ParseTimeoutError(ParseError):
    """Raised when parsing a multipart body exceeds the configured bound."""


class StagingError(ParseError):
    """
    Raised when an uploaded file cannot be written to the upload directory.
    The message carries server paths and OS errors, so it is logged only.
    """


# ── Delivery exceptions (500) ──────────────────────────────────────────────────

class DeliveryError(AppBaseException):
    """Raised when the mail relay fails to accept a notification."""


class MailerConfigError(DeliveryError):
    """Raised when the mail relay cannot be built from the current settings."""


# ── Alert exceptions (never surfaced) ──────────────────────────────────────────

class AlertError(AppBaseException):
    """Raised by an alerter for a single failed webhook call."""
