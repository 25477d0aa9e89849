"""Shared test fixtures."""

import os

# Settings require a JWT secret; set one before anything imports config.settings
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints.

    ASGITransport does not run the lifespan, so no DB or Redis is touched;
    route tests override the dependencies they need.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
