"""Project-wide custom exceptions."""

from __future__ import annotations


class PgwebCliError(Exception):
    """Base exception for the pgweb client."""


class ConfigurationError(PgwebCliError):
    """Raised when configuration loading or validation fails."""


class ValidationError(PgwebCliError):
    """Raised when a client-side precondition fails before any request is sent."""


class NothingToRunError(ValidationError):
    """Raised when the editor buffer holds no statement to execute."""


class UnsupportedActionError(ValidationError):
    """Raised when an action is not available for an object kind."""


class BackendError(PgwebCliError):
    """Raised when the backend answered with an ``{"error": ...}`` payload."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResponseShapeError(PgwebCliError):
    """Raised when a backend payload does not have the expected structure."""


class StateStoreError(PgwebCliError):
    """Raised when the durable client state cannot be written."""
