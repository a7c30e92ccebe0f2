"""Download authorization for finished export files.

A download link carries the job id and the job's random token. The checks
run in a fixed order and each failure raises its own ``DownloadError``
subclass so the host can answer with the matching status code.
"""

import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.exceptions import (
    DownloadExpired,
    DownloadForbidden,
    ExportFileMissing,
    ExportNotReady,
    InvalidDownloadRequest,
    InvalidDownloadToken,
    JobNotFound,
)
from order_exporter.core.security import Actor, can_view_job
from order_exporter.models.base import as_utc, utc_now
from order_exporter.models.export_job import ExportJob, JobStatus
from order_exporter.services.job_service import get_export_job


@dataclass(frozen=True)
class DownloadGrant:
    """A validated download: the file to stream and its suggested name."""

    job: ExportJob
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name


async def authorize_download(
    session: AsyncSession,
    job_id: uuid.UUID | str | None,
    token: str | None,
    actor: Actor,
    *,
    expiry_days: int = 7,
    now: datetime | None = None,
) -> DownloadGrant:
    """Validate a download request.

    Checks, in order: parameters present, job exists, token matches, actor
    may view the job, job completed, file on disk, link not expired.

    Raises:
        DownloadError: The subclass for the first failing check.
    """
    if not job_id or not token:
        raise InvalidDownloadRequest
    try:
        job_uuid = job_id if isinstance(job_id, uuid.UUID) else uuid.UUID(str(job_id))
    except ValueError as exc:
        raise InvalidDownloadRequest from exc

    job = await get_export_job(session, job_uuid)
    if job is None:
        raise JobNotFound

    if not hmac.compare_digest(job.file_url_hash.encode(), token.encode()):
        logger.warning(f"Invalid download token for export job {job.id}")
        raise InvalidDownloadToken

    if not can_view_job(actor, job.requester_id):
        raise DownloadForbidden

    if job.status != JobStatus.COMPLETED:
        raise ExportNotReady

    if not job.file_path or not Path(job.file_path).is_file():
        raise ExportFileMissing

    completed_at = as_utc(job.completed_at)
    if completed_at is not None and completed_at + timedelta(days=expiry_days) < (now or utc_now()):
        raise DownloadExpired

    logger.info(f"Download of export job {job.id} granted to {actor.id}")
    return DownloadGrant(job=job, path=Path(job.file_path))
