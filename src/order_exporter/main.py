"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from order_exporter.core.config import get_settings
from order_exporter.core.database import dispose_engine, init_engine
from order_exporter.core.exceptions import TemplateNotFoundError
from order_exporter.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Init the engine on startup and optionally run the worker loops."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False)

    loop_tasks = []
    if settings.worker_loop_enabled:
        from order_exporter.core.background import start_worker_loops

        loop_tasks = start_worker_loops(settings)

    yield

    if loop_tasks:
        from order_exporter.core.background import stop_tasks

        await stop_tasks(loop_tasks)

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Order Exporter",
        description="Background CSV exports of shop order data with recurring schedules",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.exception_handler(TemplateNotFoundError)
    async def template_not_found_handler(request: Request, exc: TemplateNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": str(exc)},
        )

    from order_exporter.api.router import create_router

    app.include_router(create_router(settings))

    return app
