"""Custom exception classes for the application."""

from typing import Optional


class CatalogSyncException(Exception):
    """Base exception for all Catalog Sync errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CatalogSyncException):
    """Raised when a requested record is not found."""

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ValidationError(CatalogSyncException):
    """Raised when input or an upstream payload fails validation."""


class AIResponseParseError(ValidationError):
    """Raised when an AI completion cannot be parsed as the expected JSON.

    The raw completion text is kept on ``raw`` for diagnostics.
    """

    def __init__(self, message: str, raw: str):
        self.raw = raw
        super().__init__(message)


class UpstreamFetchError(CatalogSyncException):
    """Raised when the source site or the AI service cannot be reached."""

    def __init__(self, target: str, message: str, status_code: Optional[int] = None):
        self.target = target
        self.status_code = status_code
        super().__init__(f"Upstream error for {target}: {message}")


class PersistenceError(CatalogSyncException):
    """Raised when a store write fails."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Persistence error during {operation}: {message}")
