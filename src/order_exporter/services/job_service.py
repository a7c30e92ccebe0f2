"""Job service: export job repository and queue operations.

Status changes go through :func:`update_status`, a conditional UPDATE that
only applies when the row is still in a legal predecessor state. The
Pending→Processing case is the worker's atomic claim.
"""

import uuid
from collections.abc import Collection, Sequence
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import aiofiles.os
from loguru import logger
from pydantic import validate_email
from pydantic_core import PydanticCustomError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.exceptions import ExportValidationError, InvalidJobTransition
from order_exporter.lib.exporter import random_token
from order_exporter.models.base import utc_now
from order_exporter.models.export_job import ALLOWED_TRANSITIONS, ExportJob, JobStatus, JobType
from order_exporter.models.export_template import ExportTemplate

TOKEN_LENGTH = 32
CANCELLED_MESSAGE = "Cancelled by user"


def normalize_email_list(value: str | Sequence[str] | None) -> str | None:
    """Validate a comma-separated address list and return it normalized.

    Raises:
        ExportValidationError: If any address is malformed.
    """
    if value is None:
        return None
    parts = value.split(",") if isinstance(value, str) else list(value)
    emails = [p.strip() for p in parts if p and p.strip()]
    if not emails:
        return None
    for email in emails:
        try:
            validate_email(email)
        except PydanticCustomError as exc:
            msg = f"Invalid notification email: {email}"
            raise ExportValidationError(msg) from exc
    return ",".join(emails)


def validate_filters(job_type: str, filters: dict[str, Any] | None) -> dict[str, Any]:
    """Check job type and date filters, returning a cleaned filter dict.

    Raises:
        ExportValidationError: On an unknown type, bad dates or a Custom job
            without ``template_id``.
    """
    if job_type not in set(JobType):
        msg = f"Unknown export type: {job_type}"
        raise ExportValidationError(msg)

    cleaned = {k: v for k, v in (filters or {}).items() if v not in (None, "")}
    parsed: dict[str, date] = {}
    for key in ("start_date", "end_date"):
        if key not in cleaned:
            continue
        value = str(cleaned[key])
        try:
            parsed[key] = datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError as exc:
            msg = f"{key} must be a date in YYYY-MM-DD format"
            raise ExportValidationError(msg) from exc
        cleaned[key] = value

    if "start_date" in parsed and "end_date" in parsed and parsed["start_date"] > parsed["end_date"]:
        msg = "start_date must not be after end_date"
        raise ExportValidationError(msg)

    if job_type == JobType.CUSTOM:
        if "template_id" not in cleaned:
            msg = "Custom exports require a template_id"
            raise ExportValidationError(msg)
        try:
            cleaned["template_id"] = str(uuid.UUID(str(cleaned["template_id"])))
        except ValueError as exc:
            msg = f"Invalid template_id: {cleaned['template_id']}"
            raise ExportValidationError(msg) from exc
    return cleaned


async def create_export_job(
    session: AsyncSession,
    *,
    job_type: str,
    filters: dict[str, Any] | None,
    requester_id: str,
    notification_email: str | Sequence[str] | None = None,
    schedule_id: uuid.UUID | None = None,
    commit: bool = True,
) -> ExportJob:
    """Validate and enqueue a new export job.

    Args:
        session: Database session.
        job_type: One of the JobType values.
        filters: ``start_date``/``end_date`` (YYYY-MM-DD) and, for custom
            exports, ``template_id``.
        requester_id: External identity of the requesting user.
        notification_email: Optional override recipients.
        schedule_id: Schedule that produced the job, if any.
        commit: When False the job is only flushed, leaving the commit to
            the caller so it can land together with other changes.

    Returns:
        The created, pending ExportJob.

    Raises:
        ExportValidationError: If the request is invalid; nothing is queued.
    """
    cleaned = validate_filters(job_type, filters)
    emails = normalize_email_list(notification_email)

    if job_type == JobType.CUSTOM:
        template = await session.get(ExportTemplate, uuid.UUID(cleaned["template_id"]))
        if template is None:
            msg = f"Template {cleaned['template_id']} not found"
            raise ExportValidationError(msg)

    job = ExportJob(
        job_type=job_type,
        filters=cleaned,
        status=JobStatus.PENDING,
        processed_items=0,
        file_url_hash=random_token(TOKEN_LENGTH),
        requester_id=str(requester_id),
        notification_email=emails,
        schedule_id=schedule_id,
    )
    session.add(job)
    if commit:
        await session.commit()
        await session.refresh(job)
    else:
        await session.flush()
    logger.info(f"Created export job {job.id} (type={job_type}, requester={requester_id})")
    return job


async def get_export_job(session: AsyncSession, job_id: uuid.UUID) -> ExportJob | None:
    """Get an export job by ID."""
    result = await session.execute(
        select(ExportJob).where(ExportJob.id == job_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_by_status(session: AsyncSession, status: str, limit: int = 10) -> list[ExportJob]:
    """Return up to ``limit`` jobs in ``status``, oldest first."""
    result = await session.execute(
        select(ExportJob).where(ExportJob.status == status).order_by(ExportJob.created_at, ExportJob.id).limit(limit)
    )
    return list(result.scalars().all())


async def list_by_requester(session: AsyncSession, requester_id: str, limit: int = 50) -> list[ExportJob]:
    """Return the requester's most recent jobs, newest first."""
    result = await session.execute(
        select(ExportJob)
        .where(ExportJob.requester_id == str(requester_id))
        .order_by(ExportJob.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_export_jobs(
    session: AsyncSession,
    *,
    status_filter: str | None = None,
    requester_id: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ExportJob], int]:
    """List export jobs with pagination, newest first.

    Returns:
        Tuple of (jobs, total count).
    """
    query = select(ExportJob)
    count_query = select(func.count(ExportJob.id))

    if status_filter:
        query = query.where(ExportJob.status == status_filter)
        count_query = count_query.where(ExportJob.status == status_filter)
    if requester_id is not None:
        query = query.where(ExportJob.requester_id == str(requester_id))
        count_query = count_query.where(ExportJob.requester_id == str(requester_id))

    total = (await session.execute(count_query)).scalar_one()
    offset = (page - 1) * page_size
    result = await session.execute(query.order_by(ExportJob.created_at.desc()).offset(offset).limit(page_size))
    return list(result.scalars().all()), total


async def update_status(
    session: AsyncSession,
    job_id: uuid.UUID,
    status: str,
    *,
    only_from: Collection[str] | None = None,
    **extra: Any,
) -> bool:
    """Move a job to ``status`` if its current status allows it.

    Moving to Completed stamps ``completed_at`` unless given in ``extra``.

    Args:
        session: Database session.
        job_id: Job to update.
        status: Target status.
        only_from: Further restricts the accepted current statuses.
        **extra: Additional columns to set (file_path, error_message, ...).

    Returns:
        True if the row was updated, False if the job is missing or was not
        in a legal predecessor state.
    """
    target = JobStatus(status)
    predecessors = ALLOWED_TRANSITIONS[target]
    if only_from is not None:
        predecessors = predecessors & {JobStatus(s) for s in only_from}
    if not predecessors:
        return False

    values: dict[str, Any] = {"status": target, "updated_at": utc_now(), **extra}
    if target == JobStatus.COMPLETED:
        values.setdefault("completed_at", utc_now())

    stmt = (
        update(ExportJob)
        .where(ExportJob.id == job_id, ExportJob.status.in_(list(predecessors)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    applied = result.rowcount == 1
    if applied:
        logger.debug(f"Job {job_id} -> {target}")
    return applied


async def claim_job(session: AsyncSession, job_id: uuid.UUID) -> bool:
    """Atomically move a pending job to processing."""
    return await update_status(session, job_id, JobStatus.PROCESSING)


async def update_progress(
    session: AsyncSession,
    job_id: uuid.UUID,
    processed: int,
    total: int | None = None,
) -> bool:
    """Persist progress counters.

    Raises:
        ValueError: If counters are negative or ``processed`` exceeds the
            known total.
    """
    if processed < 0 or (total is not None and total < 0):
        msg = "Progress counters must be non-negative"
        raise ValueError(msg)

    known_total = total
    if known_total is None:
        known_total = (
            await session.execute(select(ExportJob.total_items).where(ExportJob.id == job_id))
        ).scalar_one_or_none()
    if known_total is not None and processed > known_total:
        msg = f"processed_items ({processed}) cannot exceed total_items ({known_total})"
        raise ValueError(msg)

    values: dict[str, Any] = {"processed_items": processed, "updated_at": utc_now()}
    if total is not None:
        values["total_items"] = total
    result = await session.execute(
        update(ExportJob).where(ExportJob.id == job_id).values(**values).execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount == 1


async def cancel_export_job(session: AsyncSession, job: ExportJob) -> ExportJob:
    """Cancel a pending job by failing it with a fixed message.

    Raises:
        InvalidJobTransition: If the job is no longer pending.
    """
    applied = await update_status(
        session,
        job.id,
        JobStatus.FAILED,
        only_from={JobStatus.PENDING},
        error_message=CANCELLED_MESSAGE,
    )
    await session.refresh(job)
    if not applied:
        raise InvalidJobTransition(job.status, JobStatus.FAILED)
    logger.info(f"Export job {job.id} cancelled")
    return job


async def remove_export_file(file_path: str | None) -> bool:
    """Delete an export file; a missing path or file is not an error.

    Returns:
        True if a file was removed.
    """
    if not file_path:
        return False
    try:
        await aiofiles.os.remove(Path(file_path))
    except FileNotFoundError:
        return False
    return True


async def delete_export_job(session: AsyncSession, job: ExportJob) -> None:
    """Delete a job row together with its export file."""
    if await remove_export_file(job.file_path):
        logger.info(f"Removed export file {job.file_path}")
    await session.delete(job)
    await session.commit()
    logger.info(f"Deleted export job {job.id}")


async def delete_old_jobs(session: AsyncSession, days: int = 30, *, now: datetime | None = None) -> int:
    """Delete completed jobs finished more than ``days`` ago, with their files.

    Returns:
        Number of jobs deleted.
    """
    cutoff = (now or utc_now()) - timedelta(days=days)
    result = await session.execute(
        select(ExportJob)
        .where(ExportJob.status == JobStatus.COMPLETED, ExportJob.completed_at < cutoff)
        .execution_options(populate_existing=True)
    )
    jobs = list(result.scalars().all())
    for job in jobs:
        await remove_export_file(job.file_path)
        await session.delete(job)
    await session.commit()
    if jobs:
        logger.info(f"Deleted {len(jobs)} export jobs older than {days} days")
    return len(jobs)


async def cleanup_expired_files(session: AsyncSession, expiry_days: int = 7, *, now: datetime | None = None) -> int:
    """Remove files of completed jobs past the download window.

    Job rows are kept so history stays visible.

    Returns:
        Number of files removed.
    """
    cutoff = (now or utc_now()) - timedelta(days=expiry_days)
    result = await session.execute(
        select(ExportJob).where(
            ExportJob.status == JobStatus.COMPLETED,
            ExportJob.completed_at < cutoff,
            ExportJob.file_path.is_not(None),
        )
        .execution_options(populate_existing=True)
    )
    removed = 0
    for job in result.scalars().all():
        if await remove_export_file(job.file_path):
            removed += 1
    if removed:
        logger.info(f"Removed {removed} expired export files")
    return removed
