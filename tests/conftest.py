"""Shared pytest fixtures for the fulfillment API tests."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.app import app
from src.database.session import get_db
from src.modules.events.handlers import EventHandlerRegistry


@pytest.fixture
def mock_session():
    """AsyncSession stand-in for API tests; services are patched per test."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def async_client(mock_session) -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the FastAPI app with a mocked DB session."""

    async def override_get_db():
        yield mock_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _clear_event_handlers():
    EventHandlerRegistry.clear()
    yield
    EventHandlerRegistry.clear()
