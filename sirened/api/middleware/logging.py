"""
Request/Response logging middleware.

Structured logging for API requests:
- Request timing with slow-request warnings
- Request ids for tracing (echoed back in X-Request-ID)
- Request body logging in debug, with credentials redacted
"""

import time
import uuid
import json
import logging
from typing import Optional, Callable, Set, Any, Dict
from dataclasses import dataclass, field
from contextvars import ContextVar

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger("sirened.api")


@dataclass
class LoggingConfig:
    """Configuration for request logging."""

    enabled: bool = True

    # Request bodies are only logged for JSON payloads
    log_request_body: bool = False
    max_body_log_size: int = 10000

    excluded_paths: Set[str] = field(default_factory=lambda: {
        "/health",
        "/favicon.ico",
    })

    excluded_headers: Set[str] = field(default_factory=lambda: {
        "authorization",
        "cookie",
        "set-cookie",
    })

    redacted_fields: Set[str] = field(default_factory=lambda: {
        "password",
        "current_password",
        "new_password",
        "token",
        "access_token",
        "secret",
    })

    slow_request_threshold: float = 2.0

    request_id_header: str = "X-Request-ID"


class StructuredLogFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line for log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        for attr in ("request_data", "response_data", "duration_ms"):
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def redact_sensitive_data(
    data: Any,
    redacted_fields: Set[str],
    replacement: str = "[REDACTED]",
) -> Any:
    """
    Recursively redact sensitive fields from data structure.

    Args:
        data: Data to redact (dict, list, or primitive).
        redacted_fields: Set of field names to redact.
        replacement: Replacement string for redacted values.

    Returns:
        Data with sensitive fields redacted.
    """
    if isinstance(data, dict):
        return {
            key: replacement if key.lower() in redacted_fields else redact_sensitive_data(value, redacted_fields, replacement)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_sensitive_data(item, redacted_fields, replacement) for item in data]
    return data


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_var.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for request/response logging.
    """

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    def _filter_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        return {
            key: "[REDACTED]" if key.lower() in self.config.excluded_headers else value
            for key, value in headers.items()
        }

    async def _get_request_body(self, request: Request) -> Optional[Any]:
        if "application/json" not in request.headers.get("content-type", ""):
            return None

        body = await request.body()
        if len(body) > self.config.max_body_log_size:
            return f"[BODY TOO LARGE: {len(body)} bytes]"
        try:
            return redact_sensitive_data(json.loads(body), self.config.redacted_fields)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return "[UNPARSEABLE BODY]"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.config.request_id_header) or uuid.uuid4().hex[:8]
        token = request_id_var.set(request_id)

        try:
            if not self.config.enabled or request.url.path in self.config.excluded_paths:
                response = await call_next(request)
                response.headers[self.config.request_id_header] = request_id
                return response

            start_time = time.perf_counter()

            request_data = {
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query) or None,
                "headers": self._filter_headers(dict(request.headers)),
                "client_ip": request.client.host if request.client else None,
            }
            if self.config.log_request_body:
                body = await self._get_request_body(request)
                if body is not None:
                    request_data["body"] = body

            response = await call_next(request)

            duration = time.perf_counter() - start_time
            duration_ms = round(duration * 1000, 2)
            response.headers[self.config.request_id_header] = request_id

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400 or duration > self.config.slow_request_threshold:
                level = logging.WARNING
            else:
                level = logging.INFO

            message = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
            if duration > self.config.slow_request_threshold:
                message = f"[SLOW] {message}"

            logger.log(
                level,
                message,
                extra={
                    "request_data": request_data,
                    "response_data": {"status_code": response.status_code},
                    "duration_ms": duration_ms,
                },
            )
            return response
        finally:
            request_id_var.reset(token)


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Configure logging middleware and formatters.

    Args:
        app: FastAPI application instance.
        config: Logging configuration.
        structured: Use JSON structured logging format.
    """
    if config is None:
        config = LoggingConfig()

    if structured:
        sirened_logger = logging.getLogger("sirened")
        if not any(isinstance(h.formatter, StructuredLogFormatter) for h in sirened_logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredLogFormatter())
            sirened_logger.addHandler(handler)
        sirened_logger.setLevel(logging.INFO)

    app.add_middleware(RequestLoggingMiddleware, config=config)
