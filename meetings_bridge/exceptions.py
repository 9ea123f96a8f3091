"""Custom exceptions for the Meetings Bridge."""


class GoogleError(Exception):
    """Base exception for errors returned by Google endpoints."""

    pass


class GoogleAuthError(GoogleError):
    """Raised when Google rejects a code or token (400/401), or no token is set."""

    pass


class GoogleForbiddenError(GoogleError):
    """Raised when Google refuses access to a resource (403)."""

    pass
