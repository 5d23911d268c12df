"""
Domain exceptions for Sirened.

Raised by repositories and domain services, translated to JSON error
responses by the API exception handlers.
"""

from typing import Optional, Union


class SirenedException(Exception):
    """Base exception for Sirened errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Optional[Union[str, dict, list]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(SirenedException):
    """Resource not found."""

    def __init__(self, resource: str, identifier):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource} with identifier '{identifier}' exists",
        )
        self.resource = resource
        self.identifier = identifier


class ValidationError(SirenedException):
    """Input validation failed."""

    def __init__(self, message: str, detail: Optional[Union[str, dict, list]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class ForbiddenError(SirenedException):
    """Caller is not allowed to touch the resource."""

    def __init__(self, message: str = "Not authorized", detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
            detail=detail,
        )


class ConflictError(SirenedException):
    """Resource already exists."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )


class RateLimitError(SirenedException):
    """Rate limit exceeded."""

    def __init__(self, limit: int, window: str):
        super().__init__(
            message="Rate limit exceeded",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            detail=f"Maximum {limit} requests per {window}",
        )


class MigrationError(SirenedException):
    """A schema migration failed to apply."""

    def __init__(self, migration: str, detail: Optional[str] = None):
        super().__init__(
            message=f"Migration '{migration}' failed",
            code="MIGRATION_ERROR",
            status_code=500,
            detail=detail,
        )
        self.migration = migration
