"""Export API endpoints: queueing, status, cancellation, preview and download."""

import uuid
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.config import Settings, get_settings
from order_exporter.core.database import get_session_factory
from order_exporter.core.dependencies import get_async_session, get_current_actor, require_role
from order_exporter.core.exceptions import DownloadError, InvalidJobTransition
from order_exporter.core.security import Actor, Role, can_manage_job, can_view_job
from order_exporter.lib.exporter import read_csv_page
from order_exporter.models.export_job import ExportJob, JobStatus
from order_exporter.schemas.common import PaginationMeta
from order_exporter.schemas.export import (
    CsvPreviewResponse,
    ExportJobResponse,
    ExportRequest,
    PaginatedExportJobResponse,
    WorkerTickResponse,
)
from order_exporter.services.download_service import authorize_download
from order_exporter.services.export_worker import build_export_worker
from order_exporter.services.job_service import (
    cancel_export_job,
    create_export_job,
    delete_export_job,
    get_export_job,
    list_export_jobs,
)

exports_router = APIRouter(prefix="/exports", tags=["exports"])


def _build_download_url(job: ExportJob, settings: Settings) -> str:
    """Build the tokenized download URL for a completed export."""
    return f"{settings.download_base_url.rstrip('/')}/{job.id}/download?hash={job.file_url_hash}"


def _job_to_response(job: ExportJob, settings: Settings) -> ExportJobResponse:
    """Convert an ExportJob to response with download URL."""
    response = ExportJobResponse.model_validate(job)
    if response.status == JobStatus.COMPLETED:
        response.download_url = _build_download_url(job, settings)
    return response


async def _get_job_or_404(session: AsyncSession, job_id: uuid.UUID) -> ExportJob:
    job = await get_export_job(session, job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export job not found")
    return job


@exports_router.post(
    "",
    response_model=ExportJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_export(
    request: ExportRequest,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(require_role(Role.ADMIN, Role.SHOP_MANAGER)),
    settings: Settings = Depends(get_settings),
) -> ExportJobResponse:
    """Queue an export; the worker picks it up on its next tick."""
    job = await create_export_job(
        session,
        job_type=request.job_type,
        filters=request.filters.to_job_filters(),
        requester_id=actor.id,
        notification_email=request.notification_email,
    )
    return _job_to_response(job, settings)


@exports_router.get(
    "",
    response_model=PaginatedExportJobResponse,
)
async def list_exports(
    status_filter: JobStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
) -> PaginatedExportJobResponse:
    """List export jobs; administrators see every job, others their own."""
    jobs, total = await list_export_jobs(
        session,
        status_filter=status_filter,
        requester_id=None if actor.is_admin else actor.id,
        page=page,
        page_size=page_size,
    )
    return PaginatedExportJobResponse(
        items=[_job_to_response(j, settings) for j in jobs],
        pagination=PaginationMeta.build(total, page, page_size),
    )


@exports_router.post(
    "/process",
    response_model=WorkerTickResponse,
)
async def run_export_tick(
    _actor: Actor = Depends(require_role(Role.ADMIN)),
    settings: Settings = Depends(get_settings),
) -> WorkerTickResponse:
    """Run one export worker tick immediately (admin only)."""
    worker = build_export_worker(settings, get_session_factory())
    result = await worker.process_pending_jobs()
    return WorkerTickResponse(
        completed=result.completed,
        failed=result.failed,
        skipped=result.skipped,
        deferred=result.deferred,
        job_ids=result.job_ids,
    )


@exports_router.get(
    "/{job_id}",
    response_model=ExportJobResponse,
)
async def get_export_status(
    job_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
) -> ExportJobResponse:
    """Get export job status and progress."""
    job = await _get_job_or_404(session, job_id)
    if not can_view_job(actor, job.requester_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view this export job")
    return _job_to_response(job, settings)


@exports_router.post(
    "/{job_id}/cancel",
    response_model=ExportJobResponse,
)
async def cancel_export(
    job_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
) -> ExportJobResponse:
    """Cancel a pending export job."""
    job = await _get_job_or_404(session, job_id)
    if not can_manage_job(actor, job.requester_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot cancel this export job")
    try:
        job = await cancel_export_job(session, job)
    except InvalidJobTransition as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only pending jobs can be cancelled",
        ) from exc
    return _job_to_response(job, settings)


@exports_router.delete(
    "/{job_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_export(
    job_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    """Delete an export job and its file."""
    job = await _get_job_or_404(session, job_id)
    if not can_manage_job(actor, job.requester_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot delete this export job")
    await delete_export_job(session, job)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@exports_router.get(
    "/{job_id}/preview",
    response_model=CsvPreviewResponse,
)
async def preview_export(
    job_id: uuid.UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(100, ge=1, le=1000),
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
) -> CsvPreviewResponse:
    """Preview a page of a finished export file."""
    job = await _get_job_or_404(session, job_id)
    if not can_view_job(actor, job.requester_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot view this export job")
    if not job.file_path or not Path(job.file_path).is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export file not found")

    csv_page = read_csv_page(Path(job.file_path), page=page, per_page=per_page)
    return CsvPreviewResponse(
        headers=csv_page.header,
        rows=csv_page.rows,
        total_rows=csv_page.total_rows,
        page=csv_page.page,
        per_page=csv_page.per_page,
        total_pages=csv_page.total_pages,
    )


@exports_router.get(
    "/{job_id}/download",
)
async def download_export(
    job_id: uuid.UUID,
    token: str | None = Query(None, alias="hash"),
    session: AsyncSession = Depends(get_async_session),
    actor: Actor = Depends(get_current_actor),
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    """Download a completed export file through its tokenized link."""
    try:
        grant = await authorize_download(
            session,
            job_id,
            token,
            actor,
            expiry_days=settings.download_expiry_days,
        )
    except DownloadError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    return FileResponse(
        path=grant.path,
        media_type="text/csv",
        filename=grant.filename,
    )
