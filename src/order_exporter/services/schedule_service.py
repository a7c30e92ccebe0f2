"""Schedule service: recurring export definitions.

Recurrence midnights are computed in the shop's configured timezone and
stored in UTC.
"""

import uuid
from datetime import UTC, date, datetime, tzinfo
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.exceptions import ExportValidationError
from order_exporter.lib.recurrence import first_run_at, next_run_from, validate_frequency
from order_exporter.models.base import utc_now
from order_exporter.models.export_job import JobType
from order_exporter.models.export_schedule import ExportSchedule
from order_exporter.models.export_template import ExportTemplate
from order_exporter.schemas.schedule import ScheduleCreateRequest, ScheduleUpdateRequest
from order_exporter.services.job_service import normalize_email_list

_RECURRENCE_FIELDS = ("frequency_type", "frequency_value", "start_date")


def compute_first_run(
    start_date: date,
    frequency_type: str,
    frequency_value: int,
    *,
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> datetime:
    """First ``next_run_at`` in UTC for a schedule anchored at ``start_date``."""
    local_now = (now or utc_now()).astimezone(tz)
    return first_run_at(start_date, frequency_type, frequency_value, local_now).astimezone(UTC)


def compute_next_run(
    frequency_type: str,
    frequency_value: int,
    *,
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> datetime:
    """Next ``next_run_at`` in UTC after a firing at ``now``."""
    local_now = (now or utc_now()).astimezone(tz)
    return next_run_from(frequency_type, frequency_value, local_now).astimezone(UTC)


def _pick(updates: dict, key: str, current: object) -> Any:
    value = updates.get(key)
    return current if value is None else value


async def _validate(
    session: AsyncSession,
    *,
    job_type: str,
    template_id: uuid.UUID | None,
    frequency_type: str,
    frequency_value: int,
) -> None:
    try:
        validate_frequency(frequency_type, frequency_value)
    except ValueError as exc:
        raise ExportValidationError(str(exc)) from exc

    if job_type == JobType.CUSTOM:
        if template_id is None:
            msg = "Custom schedules require a template_id"
            raise ExportValidationError(msg)
        if await session.get(ExportTemplate, template_id) is None:
            msg = f"Template {template_id} not found"
            raise ExportValidationError(msg)


async def create_schedule(
    session: AsyncSession,
    request: ScheduleCreateRequest,
    *,
    created_by: str,
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> ExportSchedule:
    """Validate and store a new schedule with its first run time.

    Raises:
        ExportValidationError: On bad frequency values, a missing or unknown
            template for custom exports, or malformed recipients.
    """
    await _validate(
        session,
        job_type=request.job_type,
        template_id=request.template_id,
        frequency_type=request.frequency_type,
        frequency_value=request.frequency_value,
    )
    schedule = ExportSchedule(
        name=request.name,
        job_type=request.job_type,
        template_id=request.template_id if request.job_type == JobType.CUSTOM else None,
        frequency_type=request.frequency_type,
        frequency_value=request.frequency_value,
        start_date=request.start_date,
        next_run_at=compute_first_run(
            request.start_date, request.frequency_type, request.frequency_value, tz=tz, now=now
        ),
        notification_email=normalize_email_list(request.notification_email),
        filters=dict(request.filters),
        is_active=request.is_active,
        created_by=str(created_by),
    )
    session.add(schedule)
    await session.commit()
    await session.refresh(schedule)
    logger.info(f"Created export schedule {schedule.id} ({schedule.frequency_type}/{schedule.frequency_value})")
    return schedule


async def get_schedule(session: AsyncSession, schedule_id: uuid.UUID) -> ExportSchedule | None:
    """Get a schedule by ID."""
    return await session.get(ExportSchedule, schedule_id)


async def list_schedules(
    session: AsyncSession,
    *,
    active_only: bool = False,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ExportSchedule], int]:
    """List schedules ordered by next run time.

    Returns:
        Tuple of (schedules, total count).
    """
    query = select(ExportSchedule)
    count_query = select(func.count(ExportSchedule.id))
    if active_only:
        query = query.where(ExportSchedule.is_active.is_(True))
        count_query = count_query.where(ExportSchedule.is_active.is_(True))

    total = (await session.execute(count_query)).scalar_one()
    result = await session.execute(
        query.order_by(ExportSchedule.next_run_at, ExportSchedule.name).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_schedule(
    session: AsyncSession,
    schedule: ExportSchedule,
    request: ScheduleUpdateRequest,
    *,
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> ExportSchedule:
    """Apply a partial update.

    Changing the frequency or start date re-anchors ``next_run_at`` with the
    first-run rule.
    """
    updates = request.model_dump(exclude_unset=True)
    job_type = _pick(updates, "job_type", schedule.job_type)
    template_id = updates.get("template_id", schedule.template_id)
    frequency_type = _pick(updates, "frequency_type", schedule.frequency_type)
    frequency_value = _pick(updates, "frequency_value", schedule.frequency_value)
    await _validate(
        session,
        job_type=job_type,
        template_id=template_id,
        frequency_type=frequency_type,
        frequency_value=frequency_value,
    )

    if "notification_email" in updates:
        schedule.notification_email = normalize_email_list(updates["notification_email"])
    for key in ("name", "start_date", "is_active"):
        if updates.get(key) is not None:
            setattr(schedule, key, updates[key])
    if updates.get("filters") is not None:
        schedule.filters = dict(updates["filters"])
    schedule.job_type = job_type
    schedule.template_id = template_id if job_type == JobType.CUSTOM else None
    schedule.frequency_type = frequency_type
    schedule.frequency_value = frequency_value

    if any(updates.get(key) is not None for key in _RECURRENCE_FIELDS):
        schedule.next_run_at = compute_first_run(
            schedule.start_date, frequency_type, frequency_value, tz=tz, now=now
        )

    await session.commit()
    await session.refresh(schedule)
    logger.info(f"Updated export schedule {schedule.id}")
    return schedule


async def toggle_active(session: AsyncSession, schedule: ExportSchedule, is_active: bool) -> ExportSchedule:
    """Pause or resume a schedule without touching its next run time."""
    schedule.is_active = is_active
    await session.commit()
    await session.refresh(schedule)
    logger.info(f"Schedule {schedule.id} {'resumed' if is_active else 'paused'}")
    return schedule


async def delete_schedule(session: AsyncSession, schedule: ExportSchedule) -> None:
    """Delete a schedule; jobs it produced keep their dangling schedule_id."""
    await session.delete(schedule)
    await session.commit()
    logger.info(f"Deleted export schedule {schedule.id}")


async def get_due_schedules(session: AsyncSession, now: datetime | None = None) -> list[ExportSchedule]:
    """Active schedules whose next run is at or before ``now``, earliest first."""
    result = await session.execute(
        select(ExportSchedule)
        .where(ExportSchedule.is_active.is_(True), ExportSchedule.next_run_at <= (now or utc_now()))
        .order_by(ExportSchedule.next_run_at)
    )
    return list(result.scalars().all())


async def mark_as_run(
    session: AsyncSession,
    schedule: ExportSchedule,
    *,
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> ExportSchedule:
    """Stamp ``last_run_at`` and advance ``next_run_at`` from ``now``."""
    fired_at = now or utc_now()
    schedule.last_run_at = fired_at
    schedule.next_run_at = compute_next_run(schedule.frequency_type, schedule.frequency_value, tz=tz, now=fired_at)
    await session.commit()
    await session.refresh(schedule)
    return schedule
