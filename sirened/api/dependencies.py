"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database and repositories
- Request context
"""

import os
from typing import Optional
from functools import lru_cache
from dataclasses import dataclass

from fastapi import Depends, Request
from loguru import logger

from sirened.catalog.referral_links import DEFAULT_FAVICON_SERVICE


# =============================================================================
# Configuration
# =============================================================================

def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./sirened.db"
    database_echo: bool = False
    run_migrations: bool = True

    # Auth
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 60

    # Content
    genre_view_default_count: int = 10
    favicon_service_url: str = DEFAULT_FAVICON_SERVICE

    # CORS (comma separated, appended to the environment preset)
    cors_allowed_origins: str = ""

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=_env_flag("DATABASE_ECHO", "false"),
            run_migrations=_env_flag("RUN_MIGRATIONS", "true"),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", cls.jwt_secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", cls.access_token_expire_minutes)),
            rate_limit_enabled=_env_flag("RATE_LIMIT_ENABLED", "true"),
            rate_limit_requests_per_minute=int(os.getenv("RATE_LIMIT_RPM", cls.rate_limit_requests_per_minute)),
            genre_view_default_count=int(os.getenv("GENRE_VIEW_DEFAULT_COUNT", cls.genre_view_default_count)),
            favicon_service_url=os.getenv("FAVICON_SERVICE_URL", cls.favicon_service_url),
            cors_allowed_origins=os.getenv("CORS_ALLOWED_ORIGINS", cls.cors_allowed_origins),
            environment=os.getenv("SIRENED_ENV", cls.environment),
            debug=_env_flag("DEBUG", "true"),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazily created repositories.

    All repositories share one Database (engine + session factory).
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._database = None
        self._user_repository = None
        self._book_repository = None
        self._rating_repository = None
        self._reading_repository = None
        self._shelf_repository = None
        self._feedback_repository = None
        self._taxonomy_repository = None
        self._genre_view_repository = None
        self._block_repository = None
        self._view_book_selector = None

    @property
    def database(self):
        """Get database, creating tables on first use."""
        if self._database is None:
            from ..storage.database import Database
            self._database = Database(self.settings.database_url, echo=self.settings.database_echo)
            self._database.create_tables()
        return self._database

    @property
    def user_repository(self):
        if self._user_repository is None:
            from ..storage.user_repository import UserRepository
            self._user_repository = UserRepository(self.database)
        return self._user_repository

    @property
    def book_repository(self):
        if self._book_repository is None:
            from ..storage.book_repository import BookRepository
            self._book_repository = BookRepository(
                self.database,
                favicon_service=self.settings.favicon_service_url,
            )
        return self._book_repository

    @property
    def rating_repository(self):
        if self._rating_repository is None:
            from ..storage.rating_repository import RatingRepository
            self._rating_repository = RatingRepository(self.database)
        return self._rating_repository

    @property
    def reading_repository(self):
        if self._reading_repository is None:
            from ..storage.reading_repository import ReadingRepository
            self._reading_repository = ReadingRepository(self.database)
        return self._reading_repository

    @property
    def shelf_repository(self):
        if self._shelf_repository is None:
            from ..storage.shelf_repository import ShelfRepository
            self._shelf_repository = ShelfRepository(self.database)
        return self._shelf_repository

    @property
    def feedback_repository(self):
        if self._feedback_repository is None:
            from ..storage.feedback_repository import FeedbackRepository
            self._feedback_repository = FeedbackRepository(self.database)
        return self._feedback_repository

    @property
    def taxonomy_repository(self):
        if self._taxonomy_repository is None:
            from ..storage.taxonomy_repository import TaxonomyRepository
            self._taxonomy_repository = TaxonomyRepository(self.database)
        return self._taxonomy_repository

    @property
    def genre_view_repository(self):
        if self._genre_view_repository is None:
            from ..storage.genre_view_repository import GenreViewRepository
            self._genre_view_repository = GenreViewRepository(self.database)
        return self._genre_view_repository

    @property
    def block_repository(self):
        if self._block_repository is None:
            from ..storage.block_repository import BlockRepository
            self._block_repository = BlockRepository(self.database)
        return self._block_repository

    @property
    def view_book_selector(self):
        if self._view_book_selector is None:
            from ..intelligence.view_books import ViewBookSelector
            self._view_book_selector = ViewBookSelector(
                self.book_repository,
                self.block_repository,
                self.genre_view_repository,
                default_count=self.settings.genre_view_default_count,
            )
        return self._view_book_selector

    def run_migrations(self):
        from ..storage.migrations import MigrationRunner
        return MigrationRunner(self.database.engine).run()

    def close(self) -> None:
        if self._database is not None:
            self._database.dispose()
            logger.info("Database connections closed")


_container: Optional[ServiceContainer] = None


def init_services(settings: Settings) -> ServiceContainer:
    """Initialize the service container."""
    global _container
    _container = ServiceContainer(settings)
    return _container


def get_service_container() -> ServiceContainer:
    """Dependency: the service container, initialized on first use."""
    global _container
    if _container is None:
        _container = ServiceContainer(get_settings())
    return _container


# =============================================================================
# Repository Dependencies
# =============================================================================

def get_user_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.user_repository


def get_book_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.book_repository


def get_rating_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.rating_repository


def get_reading_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.reading_repository


def get_shelf_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.shelf_repository


def get_feedback_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.feedback_repository


def get_taxonomy_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.taxonomy_repository


def get_genre_view_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.genre_view_repository


def get_block_repository(container: ServiceContainer = Depends(get_service_container)):
    return container.block_repository


def get_view_book_selector(container: ServiceContainer = Depends(get_service_container)):
    return container.view_book_selector


# =============================================================================
# Request Context Dependencies
# =============================================================================

def get_user_agent(request: Request) -> Optional[str]:
    """User agent of the caller, None when the header is missing."""
    return request.headers.get("User-Agent")
