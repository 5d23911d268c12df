"""
API middleware components.

Provides cross-cutting concerns for the API:
- Error handling
- CORS configuration
- Rate limiting
- Request/response logging
"""

from .error_handler import (
    SirenedException,
    NotFoundError,
    ValidationError,
    ForbiddenError,
    ConflictError,
    RateLimitError,
    setup_exception_handlers,
    create_error_response,
)

from .cors import (
    CORSConfig,
    get_cors_config,
    setup_cors,
)

from .rate_limit import (
    RateLimitConfig,
    RateLimitStrategy,
    RateLimitState,
    InMemoryRateLimiter,
    RateLimitMiddleware,
    setup_rate_limiting,
)

from .logging import (
    LoggingConfig,
    StructuredLogFormatter,
    RequestLoggingMiddleware,
    setup_logging,
    get_request_id,
    redact_sensitive_data,
)


__all__ = [
    # Error handling
    "SirenedException",
    "NotFoundError",
    "ValidationError",
    "ForbiddenError",
    "ConflictError",
    "RateLimitError",
    "setup_exception_handlers",
    "create_error_response",
    # CORS
    "CORSConfig",
    "get_cors_config",
    "setup_cors",
    # Rate limiting
    "RateLimitConfig",
    "RateLimitStrategy",
    "RateLimitState",
    "InMemoryRateLimiter",
    "RateLimitMiddleware",
    "setup_rate_limiting",
    # Logging
    "LoggingConfig",
    "StructuredLogFormatter",
    "RequestLoggingMiddleware",
    "setup_logging",
    "get_request_id",
    "redact_sensitive_data",
]
