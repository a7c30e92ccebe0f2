"""Schedule API endpoints for recurring exports."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.config import Settings, get_settings
from order_exporter.core.dependencies import get_async_session, require_role
from order_exporter.core.security import Actor, Role
from order_exporter.models.export_schedule import ExportSchedule
from order_exporter.schemas.common import PaginationMeta
from order_exporter.schemas.schedule import (
    PaginatedScheduleResponse,
    ScheduleCreateRequest,
    ScheduleResponse,
    ScheduleToggleRequest,
    ScheduleUpdateRequest,
)
from order_exporter.services import schedule_service

schedules_router = APIRouter(prefix="/schedules", tags=["schedules"])

_managers = require_role(Role.ADMIN, Role.SHOP_MANAGER)


async def _get_schedule_or_404(session: AsyncSession, schedule_id: uuid.UUID) -> ExportSchedule:
    schedule = await schedule_service.get_schedule(session, schedule_id)
    if schedule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule not found")
    return schedule


@schedules_router.post(
    "",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_schedule(
    request: ScheduleCreateRequest,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(_managers),
    settings: Settings = Depends(get_settings),
) -> ScheduleResponse:
    """Create a recurring export."""
    schedule = await schedule_service.create_schedule(session, request, created_by=actor.id, tz=settings.tzinfo)
    return ScheduleResponse.model_validate(schedule)


@schedules_router.get(
    "",
    response_model=PaginatedScheduleResponse,
)
async def list_schedules(
    active_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> PaginatedScheduleResponse:
    """List schedules ordered by next run."""
    schedules, total = await schedule_service.list_schedules(
        session, active_only=active_only, page=page, page_size=page_size
    )
    return PaginatedScheduleResponse(
        items=[ScheduleResponse.model_validate(s) for s in schedules],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@schedules_router.get(
    "/{schedule_id}",
    response_model=ScheduleResponse,
)
async def get_schedule(
    schedule_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> ScheduleResponse:
    """Get a schedule."""
    return ScheduleResponse.model_validate(await _get_schedule_or_404(session, schedule_id))


@schedules_router.patch(
    "/{schedule_id}",
    response_model=ScheduleResponse,
)
async def update_schedule(
    schedule_id: uuid.UUID,
    request: ScheduleUpdateRequest,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
    settings: Settings = Depends(get_settings),
) -> ScheduleResponse:
    """Update a schedule; frequency or start changes re-anchor the next run."""
    schedule = await _get_schedule_or_404(session, schedule_id)
    schedule = await schedule_service.update_schedule(session, schedule, request, tz=settings.tzinfo)
    return ScheduleResponse.model_validate(schedule)


@schedules_router.post(
    "/{schedule_id}/toggle",
    response_model=ScheduleResponse,
)
async def toggle_schedule(
    schedule_id: uuid.UUID,
    request: ScheduleToggleRequest,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> ScheduleResponse:
    """Pause or resume a schedule."""
    schedule = await _get_schedule_or_404(session, schedule_id)
    schedule = await schedule_service.toggle_active(session, schedule, request.is_active)
    return ScheduleResponse.model_validate(schedule)


@schedules_router.delete(
    "/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_schedule(
    schedule_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    _actor: Actor = Depends(_managers),
) -> Response:
    """Delete a schedule."""
    schedule = await _get_schedule_or_404(session, schedule_id)
    await schedule_service.delete_schedule(session, schedule)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
