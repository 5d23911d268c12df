"""
Rate limiting middleware for API protection.

Implements two strategies:
- Token bucket for burst handling
- Sliding window for smooth rate limiting

Limits are tracked per client (bearer token or IP) and per endpoint, with
tighter limits on login attempts and public feedback submission.
"""

import time
import asyncio
import hashlib
import logging
from typing import Dict, Optional, Tuple, Callable
from dataclasses import dataclass, field
from enum import Enum

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sirened.exceptions import RateLimitError
from .error_handler import create_error_response

logger = logging.getLogger("sirened.api.rate_limit")


class RateLimitStrategy(Enum):
    """Rate limiting algorithm strategies."""
    TOKEN_BUCKET = "token_bucket"
    SLIDING_WINDOW = "sliding_window"


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    # Default requests per minute
    requests_per_minute: int = 60

    # Burst allowance (for token bucket)
    burst_size: int = 10

    strategy: RateLimitStrategy = RateLimitStrategy.TOKEN_BUCKET

    enabled: bool = True

    excluded_paths: list = field(default_factory=lambda: [
        "/health",
        "/docs",
        "/openapi.json",
        "/redoc",
    ])

    # "METHOD /path" or "/path" prefix -> requests per minute
    endpoint_limits: Dict[str, int] = field(default_factory=lambda: {
        "POST /api/v1/auth/token": 10,      # Password guessing
        "POST /api/v1/auth/signup": 5,
        "POST /api/v1/feedback": 20,        # Anonymous submissions
    })

    # Trusted proxy headers for real IP
    trusted_proxy_headers: list = field(default_factory=lambda: [
        "X-Forwarded-For",
        "X-Real-IP",
    ])


@dataclass
class RateLimitState:
    """State for a single rate limit bucket."""
    tokens: float
    last_update: float
    request_count: int = 0
    previous_count: int = 0
    window_start: float = 0.0


class InMemoryRateLimiter:
    """
    In-memory rate limiter implementation.

    Suitable for single-instance deployments; buckets live in process memory.
    """

    WINDOW_SECONDS = 60.0
    BUCKET_TTL_SECONDS = 3600

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self._buckets: Dict[str, RateLimitState] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = 300
        self._last_cleanup = time.time()

    def get_limit(self, method: str, path: str) -> int:
        """Most specific configured limit for a request."""
        for pattern, limit in self.config.endpoint_limits.items():
            if " " in pattern:
                pattern_method, pattern_path = pattern.split(" ", 1)
                if method.upper() == pattern_method and path.startswith(pattern_path):
                    return limit
            elif path.startswith(pattern):
                return limit
        return self.config.requests_per_minute

    async def _cleanup_old_buckets(self) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        async with self._lock:
            expired_keys = [
                key for key, state in self._buckets.items()
                if now - state.last_update > self.BUCKET_TTL_SECONDS
            ]
            for key in expired_keys:
                del self._buckets[key]

            self._last_cleanup = now
            if expired_keys:
                logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit buckets")

    async def check_token_bucket(self, bucket_key: str, limit: int) -> Tuple[bool, int, float]:
        """
        Token bucket: allows bursts up to ``burst_size`` then refills at
        ``limit`` tokens per minute.

        Returns:
            Tuple of (allowed, remaining_tokens, seconds_until_next_token).
        """
        refill_rate = limit / self.WINDOW_SECONDS
        max_tokens = min(self.config.burst_size, limit)

        async with self._lock:
            now = time.time()
            state = self._buckets.setdefault(bucket_key, RateLimitState(tokens=max_tokens, last_update=now))

            elapsed = now - state.last_update
            state.tokens = min(max_tokens, state.tokens + elapsed * refill_rate)
            state.last_update = now

            if state.tokens >= 1:
                state.tokens -= 1
                return True, int(state.tokens), 0.0
            return False, 0, (1 - state.tokens) / refill_rate

    async def check_sliding_window(self, bucket_key: str, limit: int) -> Tuple[bool, int, float]:
        """
        Sliding window approximation: the previous window's count decays
        linearly as the current window progresses.

        Returns:
            Tuple of (allowed, remaining_requests, seconds_until_window_reset).
        """
        window = self.WINDOW_SECONDS

        async with self._lock:
            now = time.time()
            state = self._buckets.setdefault(
                bucket_key,
                RateLimitState(tokens=0, last_update=now, request_count=0, window_start=now),
            )

            elapsed = now - state.window_start
            if elapsed >= window:
                windows_passed = int(elapsed / window)
                state.previous_count = state.request_count if windows_passed == 1 else 0
                state.window_start += windows_passed * window
                state.request_count = 0

            progress = (now - state.window_start) / window
            effective_count = state.request_count + state.previous_count * (1 - progress)
            reset_time = window - (now - state.window_start)

            if effective_count < limit:
                state.request_count += 1
                state.last_update = now
                return True, max(0, int(limit - effective_count - 1)), reset_time
            return False, 0, reset_time

    async def check_rate_limit(self, identifier: str, method: str, path: str) -> Tuple[bool, int, float]:
        """Check the configured strategy for one request."""
        await self._cleanup_old_buckets()

        limit = self.get_limit(method, path)
        bucket_key = f"{identifier}:{method.upper()} {path}"

        if self.config.strategy == RateLimitStrategy.SLIDING_WINDOW:
            return await self.check_sliding_window(bucket_key, limit)
        return await self.check_token_bucket(bucket_key, limit)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for rate limiting requests.
    """

    def __init__(
        self,
        app: FastAPI,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[InMemoryRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or InMemoryRateLimiter(self.config)

    def _get_client_identifier(self, request: Request) -> str:
        """
        Extract client identifier from request.

        Signed-in clients are keyed by their (hashed) bearer token, everyone
        else by IP address.
        """
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
            return f"token:{hashlib.sha256(token.encode()).hexdigest()[:16]}"

        for header in self.config.trusted_proxy_headers:
            forwarded = request.headers.get(header)
            if forwarded:
                return f"ip:{forwarded.split(',')[0].strip()}"

        if request.client:
            return f"ip:{request.client.host}"
        return "unknown"

    def _is_excluded(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.config.excluded_paths)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with rate limiting."""
        if not self.config.enabled or self._is_excluded(request.url.path):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        allowed, remaining, reset_time = await self.limiter.check_rate_limit(
            identifier, request.method, request.url.path
        )

        if not allowed:
            limit = self.limiter.get_limit(request.method, request.url.path)
            logger.warning(f"Rate limit exceeded for {identifier} on {request.method} {request.url.path}")

            error = RateLimitError(limit=limit, window="minute")
            response = create_error_response(
                error=error.message,
                code=error.code,
                status_code=error.status_code,
                detail=error.detail,
            )
            response.headers["Retry-After"] = str(int(reset_time) + 1)
            response.headers["X-Rate-Limit-Remaining"] = "0"
            response.headers["X-Rate-Limit-Reset"] = str(int(time.time() + reset_time))
            return response

        response = await call_next(request)
        response.headers["X-Rate-Limit-Remaining"] = str(remaining)
        response.headers["X-Rate-Limit-Reset"] = str(int(time.time() + reset_time))
        return response


def setup_rate_limiting(
    app: FastAPI,
    config: Optional[RateLimitConfig] = None,
) -> InMemoryRateLimiter:
    """
    Configure rate limiting middleware for the FastAPI application.

    Returns:
        The rate limiter instance for potential external use.
    """
    if config is None:
        config = RateLimitConfig()

    limiter = InMemoryRateLimiter(config)
    app.add_middleware(RateLimitMiddleware, config=config, limiter=limiter)

    return limiter
