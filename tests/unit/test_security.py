"""
Unit tests for password hashing, access tokens and API middleware helpers.
"""

from datetime import timedelta

import pytest

from sirened.api.middleware.cors import CORS_CONFIGS, get_cors_config
from sirened.api.middleware.logging import redact_sensitive_data
from sirened.api.middleware.rate_limit import InMemoryRateLimiter, RateLimitConfig, RateLimitStrategy
from sirened.security import create_access_token, decode_access_token, get_password_hash, verify_password


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("correct-horse-battery")

        assert hashed != "correct-horse-battery"
        assert verify_password("correct-horse-battery", hashed)
        assert not verify_password("wrong", hashed)


class TestAccessTokens:
    """Tests for JWT encoding and decoding."""

    def test_roundtrip_stringifies_subject(self):
        token = create_access_token({"sub": 7}, "secret")

        claims = decode_access_token(token, "secret")
        assert claims["sub"] == "7"
        assert "exp" in claims

    def test_wrong_secret(self):
        token = create_access_token({"sub": "7"}, "secret")
        assert decode_access_token(token, "other-secret") is None

    def test_expired(self):
        token = create_access_token({"sub": "7"}, "secret", expires_delta=timedelta(minutes=-1))
        assert decode_access_token(token, "secret") is None

    def test_garbage(self):
        assert decode_access_token("not-a-token", "secret") is None


class TestRedaction:
    def test_nested_fields(self):
        data = {
            "username": "reader",
            "Password": "hunter2",
            "profile": {"token": "abc", "bio": "hi"},
            "items": [{"secret": "x"}],
        }

        assert redact_sensitive_data(data, {"password", "token", "secret"}) == {
            "username": "reader",
            "Password": "[REDACTED]",
            "profile": {"token": "[REDACTED]", "bio": "hi"},
            "items": [{"secret": "[REDACTED]"}],
        }


class TestCorsConfig:
    def test_extra_origins_appended(self):
        config = get_cors_config("production", "https://admin.sirened.com, https://sirened.com")

        assert config.allowed_origins == [
            "https://sirened.com",
            "https://www.sirened.com",
            "https://admin.sirened.com",
        ]
        assert CORS_CONFIGS["production"].allowed_origins == ["https://sirened.com", "https://www.sirened.com"]

    def test_unknown_environment_uses_development(self):
        assert get_cors_config("qa", "").allow_all_origins is True


class TestRateLimiter:
    """Tests for the in-memory rate limiter."""

    def test_endpoint_limits(self):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=100))

        assert limiter.get_limit("POST", "/api/v1/auth/token") == 10
        assert limiter.get_limit("post", "/api/v1/feedback") == 20
        assert limiter.get_limit("GET", "/api/v1/feedback/mine") == 100

    @pytest.mark.asyncio
    async def test_token_bucket_exhausts_burst(self):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=60, burst_size=3))

        results = [await limiter.check_rate_limit("ip:1", "GET", "/api/v1/books") for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert results[-1][2] > 0

    @pytest.mark.asyncio
    async def test_sliding_window(self):
        config = RateLimitConfig(requests_per_minute=2, strategy=RateLimitStrategy.SLIDING_WINDOW)
        limiter = InMemoryRateLimiter(config)

        results = [await limiter.check_rate_limit("ip:1", "GET", "/api/v1/books") for _ in range(3)]

        assert [allowed for allowed, _, _ in results] == [True, True, False]

    @pytest.mark.asyncio
    async def test_clients_tracked_separately(self):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=60, burst_size=1))

        assert (await limiter.check_rate_limit("ip:1", "GET", "/x"))[0]
        assert not (await limiter.check_rate_limit("ip:1", "GET", "/x"))[0]
        assert (await limiter.check_rate_limit("ip:2", "GET", "/x"))[0]
