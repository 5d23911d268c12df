"""
Sirened API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sirened import __version__
from .schemas import HealthResponse
from .routes import (
    auth_router,
    users_router,
    books_router,
    ratings_router,
    shelves_router,
    notes_router,
    feedback_router,
    genres_router,
    genre_views_router,
    blocks_router,
    publishers_router,
)
from .middleware import (
    setup_cors,
    setup_rate_limiting,
    setup_logging,
    setup_exception_handlers,
    RateLimitConfig,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    get_service_container,
    init_services,
    ServiceContainer,
    Settings,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup: build the service container, create tables and bring older
    databases up to date with the migration runner.
    Shutdown: dispose of database connections.
    """
    settings = app.state.settings
    logger.info(f"Starting Sirened in {settings.environment} mode")

    services = init_services(settings)
    app.state.services = services

    try:
        logger.info("Initializing database...")
        _ = services.database

        if settings.run_migrations:
            report = services.run_migrations()
            if report.changed:
                logger.info(f"Applied migrations: {', '.join(report.applied)}")

        logger.info("Sirened started successfully")
        yield

    finally:
        logger.info("Shutting down Sirened...")
        services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Sirened",
        description="Book cataloging and social reading platform.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    # 1. Logging
    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )

    # 2. Exception handling
    setup_exception_handlers(app)

    # 3. Rate limiting
    if settings.rate_limit_enabled:
        setup_rate_limiting(
            app,
            config=RateLimitConfig(
                requests_per_minute=settings.rate_limit_requests_per_minute,
                enabled=settings.rate_limit_enabled,
            ),
        )

    # 4. CORS (outermost so preflights never hit the rate limiter)
    setup_cors(app, config=get_cors_config(settings.environment, settings.cors_allowed_origins))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api/v1"

    for router in (
        auth_router,
        users_router,
        books_router,
        ratings_router,
        shelves_router,
        notes_router,
        feedback_router,
        genres_router,
        genre_views_router,
        blocks_router,
        publishers_router,
    ):
        app.include_router(router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Sirened",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(services: ServiceContainer = Depends(get_service_container)) -> HealthResponse:
        """
        Health check endpoint.

        Returns status of all system components.
        """
        components = {}
        overall_healthy = True

        try:
            with services.database.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            components["database"] = "healthy"
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            components["database"] = f"unhealthy: {e.__class__.__name__}"
            overall_healthy = False

        components["rate_limiting"] = "enabled" if services.settings.rate_limit_enabled else "disabled"

        return HealthResponse(
            status="healthy" if overall_healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "sirened.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        workers=1 if settings.debug else 4,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
