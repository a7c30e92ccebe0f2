"""Fixtures for API tests: the application wired to the test database."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_exporter.core.config import Settings, get_settings
from order_exporter.core.dependencies import get_async_session
from order_exporter.main import create_app

ADMIN = {"X-Actor-Id": "1", "X-Actor-Role": "admin"}
MANAGER = {"X-Actor-Id": "2", "X-Actor-Role": "shop_manager"}
CUSTOMER = {"X-Actor-Id": "3", "X-Actor-Role": "user"}
STRANGER = {"X-Actor-Id": "4", "X-Actor-Role": "user"}


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> FastAPI:
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    application = create_app()

    async def _session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_async_session] = _session
    application.dependency_overrides[get_settings] = lambda: settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def headers() -> dict[str, dict[str, str]]:
    """Actor headers by role name."""
    return {"admin": ADMIN, "manager": MANAGER, "customer": CUSTOMER, "stranger": STRANGER}
