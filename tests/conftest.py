"""
Pytest configuration and fixtures for Sirened tests.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sirened.api.main import create_app
from sirened.api.dependencies import Settings, ServiceContainer, get_settings, get_service_container
from sirened.storage.database import Database


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite:///:memory:",
        database_echo=False,
        run_migrations=False,
        jwt_secret_key="test-secret",
        environment="test",
        debug=True,
        rate_limit_enabled=False,
        genre_view_default_count=10,
    )


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def database() -> Database:
    """Fresh in-memory database with the full schema."""
    db = Database("sqlite:///:memory:")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def container(test_settings) -> ServiceContainer:
    """Service container backed by its own in-memory database."""
    services = ServiceContainer(test_settings)
    yield services
    services.close()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(test_settings, container):
    """Create FastAPI application for testing."""
    application = create_app(test_settings)

    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_service_container] = lambda: container

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture
def register_user(client, container):
    """
    Factory: sign up a user, optionally make them admin, and log in.

    Returns a dict with ``user`` (signup response), ``token`` and ``headers``.
    """
    async def _register(username: str, password: str = "correct-horse-battery", admin: bool = False) -> dict:
        response = await client.post(
            "/api/v1/auth/signup",
            json={"email": f"{username}@example.com", "username": username, "password": password},
        )
        assert response.status_code == 201, response.text
        user = response.json()

        if admin:
            container.user_repository.set_admin(user["id"])

        token_response = await client.post(
            "/api/v1/auth/token",
            data={"username": username, "password": password},
        )
        assert token_response.status_code == 200, token_response.text
        token = token_response.json()["access_token"]

        return {"user": user, "token": token, "headers": {"Authorization": f"Bearer {token}"}}

    return _register


@pytest_asyncio.fixture
async def reader(register_user) -> dict:
    return await register_user("reader")


@pytest_asyncio.fixture
async def other_reader(register_user) -> dict:
    return await register_user("otherreader")


@pytest_asyncio.fixture
async def admin(register_user) -> dict:
    return await register_user("admin", admin=True)


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def genre(container):
    """A top-level genre taxonomy."""
    return container.taxonomy_repository.create(name="Fantasy", type="genre")


@pytest.fixture
def sample_book_payload(genre) -> dict:
    """A submission that passes every upload wizard step."""
    return {
        "title": "The Hollow Tide",
        "description": "A lighthouse keeper hears the sea singing back.",
        "formats": ["softback", "digital"],
        "published_date": "2024-10-01",
        "genres": [genre.id],
        "page_count": 320,
        "referral_links": [
            {"retailer": "Amazon", "url": "https://www.amazon.com/dp/B000000"},
            {"retailer": "Bookshop", "url": "https://bookshop.org/a/123"},
        ],
    }


@pytest_asyncio.fixture
async def book(client, reader, sample_book_payload) -> dict:
    """A book created by ``reader`` through the API."""
    response = await client.post("/api/v1/books", json=sample_book_payload, headers=reader["headers"])
    assert response.status_code == 201, response.text
    return response.json()
