"""Shared test fixtures for the async database, sessions, settings and seed data."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import order_exporter.models  # noqa: F401
from order_exporter.core.config import Settings
from order_exporter.core.security import Actor, Role
from order_exporter.models.base import Base
from order_exporter.models.export_template import ExportTemplate
from order_exporter.models.order import Order, OrderItem, OrderMeta


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite so worker sessions share one database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'exporter.db'}"


@pytest.fixture
def settings(database_url: str, tmp_path: Path) -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url=database_url,
        export_dir=str(tmp_path / "exports"),
        download_base_url="http://test/api/v1/exports",
    )


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create the schema in a fresh SQLite file."""
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Per-test async session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def admin() -> Actor:
    return Actor(id="1", role=Role.ADMIN)


@pytest.fixture
def manager() -> Actor:
    return Actor(id="2", role=Role.SHOP_MANAGER)


@pytest.fixture
def customer() -> Actor:
    return Actor(id="3", role=Role.USER)


@pytest.fixture
def make_order(async_session: AsyncSession) -> Callable[..., object]:
    """Factory inserting an order with items and meta rows."""
    next_id = iter(range(1000, 100000))

    async def _make(
        *,
        email: str | None = "jan@example.com",
        total: str = "10.00",
        status: str = "wc-completed",
        order_date: datetime | None = None,
        first_name: str | None = "Jan",
        last_name: str | None = "Kowalski",
        items: list[tuple[str, int, str]] | None = None,
        meta: dict[str, str] | None = None,
    ) -> Order:
        order = Order(
            id=next(next_id),
            status=status,
            order_date=order_date or datetime(2024, 3, 10, 12, 0, tzinfo=UTC),
            total=Decimal(total),
            currency="PLN",
            customer_id="42",
            billing_email=email,
            billing_first_name=first_name,
            billing_last_name=last_name,
            billing_phone="+48 600 000 000",
            billing_city="Krakow",
            billing_postcode="30-001",
        )
        async_session.add(order)
        await async_session.flush()
        for name, quantity, line_total in items or [("Mug", 1, total)]:
            async_session.add(OrderItem(order_id=order.id, name=name, quantity=quantity, line_total=Decimal(line_total)))
        for key, value in (meta or {}).items():
            async_session.add(OrderMeta(order_id=order.id, meta_key=key, meta_value=value))
        await async_session.commit()
        return order

    return _make


@pytest.fixture
async def sample_template(async_session: AsyncSession) -> ExportTemplate:
    """A custom export template mixing built-in, meta and virtual fields."""
    template = ExportTemplate(
        name="Newsletter",
        selected_fields=["_billing_email", "order_total", "_additional_terms__marketing"],
        field_aliases={"_billing_email": "E-mail"},
        field_order=["order_total", "_billing_email", "_additional_terms__marketing"],
        is_global=True,
        created_by="1",
    )
    async_session.add(template)
    await async_session.commit()
    await async_session.refresh(template)
    return template
