"""Database CLI commands: direct table creation and Alembic migrations."""

import asyncio

import typer
from loguru import logger

db_app = typer.Typer()


@db_app.command()
def init() -> None:
    """Create all tables directly (SQLite or throwaway databases)."""
    asyncio.run(_init())


async def _init() -> None:
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import create_tables, dispose_engine, init_engine

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        await create_tables()
        logger.info("Database tables created")
        typer.echo("Database tables created")
    finally:
        await dispose_engine()


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
) -> None:
    """Run database migrations up to the target revision."""
    from alembic import command
    from alembic.config import Config

    config = Config("alembic.ini")
    logger.info(f"Upgrading database to {revision}")
    command.upgrade(config, revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
) -> None:
    """Rollback database migration to the target revision."""
    from alembic import command
    from alembic.config import Config

    config = Config("alembic.ini")
    logger.info(f"Downgrading database to {revision}")
    command.downgrade(config, revision)
    logger.info("Database downgrade complete")
