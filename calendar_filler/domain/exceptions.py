"""
Domain-specific exception hierarchy for the calendar filler application.
"""


class CalendarFillerError(Exception):
    """Base class for all application-level errors."""


class CalendarAPIError(CalendarFillerError):
    """Raised when calendar data cannot be written, fetched or parsed."""


class AuthenticationError(CalendarFillerError):
    """Raised when authentication or credential handling fails."""


class TitleGenerationError(CalendarFillerError):
    """Raised when the title generation service fails or returns unusable output."""


class InvalidRequestError(CalendarFillerError):
    """Raised when a batch request is rejected before any scheduling happens."""
