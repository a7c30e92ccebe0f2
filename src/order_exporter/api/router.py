"""Root API router with the /api/v1 prefix."""

from fastapi import APIRouter

from order_exporter.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from order_exporter.api.v1.exports import exports_router
    from order_exporter.api.v1.schedules import schedules_router
    from order_exporter.api.v1.templates import templates_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(exports_router)
    root_router.include_router(schedules_router)
    root_router.include_router(templates_router)

    return root_router
