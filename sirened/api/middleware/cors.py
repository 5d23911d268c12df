"""
CORS Configuration

Cross-Origin Resource Sharing per deployment environment.
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@dataclass
class CORSConfig:
    """CORS configuration settings."""

    allowed_origins: List[str] = field(default_factory=list)

    # Cookies and authorization headers
    allow_credentials: bool = True

    allowed_methods: List[str] = field(default_factory=lambda: [
        "GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"
    ])

    allowed_headers: List[str] = field(default_factory=lambda: [
        "Accept",
        "Accept-Language",
        "Content-Type",
        "Authorization",
        "X-Request-ID",
    ])

    expose_headers: List[str] = field(default_factory=lambda: [
        "X-Request-ID",
        "X-Rate-Limit-Remaining",
        "X-Rate-Limit-Reset",
        "Retry-After",
    ])

    # Preflight cache (seconds)
    max_age: int = 3600

    # Development only
    allow_all_origins: bool = False


CORS_CONFIGS = {
    "development": CORSConfig(
        allowed_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        allow_all_origins=True,
    ),
    "test": CORSConfig(
        allowed_origins=["http://test"],
    ),
    "staging": CORSConfig(
        allowed_origins=[
            "https://staging.sirened.com",
        ],
    ),
    "production": CORSConfig(
        allowed_origins=[
            "https://sirened.com",
            "https://www.sirened.com",
        ],
        max_age=7200,
    ),
}


def get_cors_config(environment: Optional[str] = None, extra_origins: Optional[str] = None) -> CORSConfig:
    """
    CORS configuration for an environment.

    ``extra_origins`` is a comma separated list appended to the preset;
    defaults to the CORS_ALLOWED_ORIGINS environment variable.
    """
    if environment is None:
        environment = os.getenv("SIRENED_ENV", "development")
    if extra_origins is None:
        extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")

    preset = CORS_CONFIGS.get(environment, CORS_CONFIGS["development"])
    origins = list(preset.allowed_origins)
    origins.extend(o.strip() for o in extra_origins.split(",") if o.strip() and o.strip() not in origins)

    return replace(preset, allowed_origins=origins)


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """
    Configure CORS middleware for the FastAPI application.

    A wildcard origin cannot be combined with credentials, so credentials
    are switched off when every origin is allowed.
    """
    if config is None:
        config = get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.allow_all_origins else config.allowed_origins,
        allow_credentials=config.allow_credentials and not config.allow_all_origins,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
