"""
Sirened - FastAPI Backend.

REST API for the book catalog, shelves, ratings and feedback.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_service_container,
    init_services,
    ServiceContainer,
)
from .schemas import (
    BookCreate,
    BookUpdate,
    BookResponse,
    BookListResponse,
    RatingCreate,
    RatingResponse,
    ShelfResponse,
    TicketResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_service_container",
    "init_services",
    "ServiceContainer",
    # Schemas
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookListResponse",
    "RatingCreate",
    "RatingResponse",
    "ShelfResponse",
    "TicketResponse",
    "HealthResponse",
    "ErrorResponse",
]
