"""
Error Handling Middleware for Sirened

Centralized error handling:
- Structured error responses
- Logging of errors
- Exception translation
"""

import traceback
from datetime import datetime

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from sirened.exceptions import (
    SirenedException,
    NotFoundError,
    ValidationError,
    ForbiddenError,
    ConflictError,
    RateLimitError,
)


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail=None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "detail": jsonable_encoder(detail),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(SirenedException)
    async def sirened_exception_handler(request: Request, exc: SirenedException):
        if exc.status_code >= 500:
            logger.error(f"Sirened error: {exc.code} - {exc.message} ({exc.detail})")
        else:
            logger.warning(f"Sirened error: {exc.code} - {exc.message}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Request validation error on {request.url.path}: {exc.errors()}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=422,
            detail=exc.errors(),
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error: {str(exc)}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=400,
            detail=str(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )


__all__ = [
    "SirenedException",
    "NotFoundError",
    "ValidationError",
    "ForbiddenError",
    "ConflictError",
    "RateLimitError",
    "create_error_response",
    "setup_exception_handlers",
]
