"""Export worker: drains the pending queue in bounded batches.

One tick pulls a handful of pending jobs, claims each atomically, streams its
rows from the data source into a CSV file and reports the outcome. Jobs run
sequentially; the wall-clock budget is checked before each job starts.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_exporter.core.config import Settings
from order_exporter.lib.datasource import ConsentDecoder, DataSource, FieldResolver, SqlOrderSource
from order_exporter.lib.exporter import (
    ANALYTICS_COLUMNS,
    MARKETING_COLUMNS,
    CsvWriter,
    build_export_path,
    sanitize_rows,
)
from order_exporter.lib.notifier import JobSummary, Notifier, build_notifier
from order_exporter.models.base import utc_now
from order_exporter.models.export_job import ExportJob, JobStatus, JobType
from order_exporter.models.export_template import ExportTemplate
from order_exporter.services import job_service
from order_exporter.services.template_service import require_template

RequesterEmailLookup = Callable[[str], Awaitable[str | None]]


@dataclass
class TickResult:
    """Outcome counters for one worker tick."""

    completed: int = 0
    failed: int = 0
    skipped: int = 0
    deferred: int = 0
    job_ids: list[str] = field(default_factory=list)


class ExportWorker:
    """Processes pending export jobs.

    Args:
        session_factory: Factory for short-lived job repository sessions.
        data_source: Provider of counts and row batches.
        notifier: Delivers completion and failure messages.
        export_dir: Directory receiving CSV files.
        batch_size: Rows fetched per batch.
        jobs_per_tick: Pending jobs pulled per tick.
        tick_budget: Wall-clock seconds a tick may spend before deferring
            the remaining jobs.
        download_base_url: Prefix for download links in notifications.
        requester_email_lookup: Resolves a requester id to an address.
        fallback_email: Address used when nothing else resolves.
        clock: Monotonic clock used for the tick budget.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        data_source: DataSource,
        notifier: Notifier,
        *,
        export_dir: str | Path,
        batch_size: int = 500,
        jobs_per_tick: int = 5,
        tick_budget: float = 45.0,
        download_base_url: str = "http://localhost:8000/api/v1/exports",
        requester_email_lookup: RequesterEmailLookup | None = None,
        fallback_email: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if batch_size < 1:
            msg = "batch_size must be positive"
            raise ValueError(msg)
        self.session_factory = session_factory
        self.data_source = data_source
        self.notifier = notifier
        self.export_dir = Path(export_dir)
        self.batch_size = batch_size
        self.jobs_per_tick = jobs_per_tick
        self.tick_budget = tick_budget
        self.download_base_url = download_base_url.rstrip("/")
        self.requester_email_lookup = requester_email_lookup
        self.fallback_email = fallback_email
        self.clock = clock

    async def process_pending_jobs(self) -> TickResult:
        """Run one tick over the oldest pending jobs."""
        result = TickResult()
        async with self.session_factory() as session:
            jobs = await job_service.list_by_status(session, JobStatus.PENDING, self.jobs_per_tick)

        if not jobs:
            logger.debug("No pending export jobs")
            return result

        logger.info(f"Export tick: {len(jobs)} pending job(s)")
        started = self.clock()
        for index, job in enumerate(jobs):
            if self.clock() - started >= self.tick_budget:
                result.deferred = len(jobs) - index
                logger.warning(f"Tick budget of {self.tick_budget}s spent; deferring {result.deferred} job(s)")
                break

            try:
                outcome = await self.process_job(job)
            except Exception:
                logger.exception(f"Export job {job.id} could not be processed")
                outcome = False
            if outcome is None:
                result.skipped += 1
                continue
            result.job_ids.append(str(job.id))
            if outcome:
                result.completed += 1
            else:
                result.failed += 1
        return result

    async def process_job(self, job: ExportJob) -> bool | None:
        """Claim and run a single job.

        Returns:
            True when completed, False when failed, None when another worker
            claimed the job first.
        """
        async with self.session_factory() as session:
            if not await job_service.claim_job(session, job.id):
                logger.info(f"Export job {job.id} already claimed; skipping")
                return None

        logger.info(f"Processing export job {job.id} ({job.job_type})")
        filters = dict(job.filters or {})
        writer: CsvWriter | None = None
        try:
            template = await self._load_template(job)
            columns, headers = self._layout(job.job_type, template)

            total = await self.data_source.count(job.job_type, filters, template)
            async with self.session_factory() as session:
                await job_service.update_progress(session, job.id, 0, total)

            path = build_export_path(self.export_dir, job.job_type, utc_now())
            writer = CsvWriter(path, columns, headers)

            offset = 0
            while offset < total:
                limit = min(self.batch_size, total - offset)
                rows = await self.data_source.fetch_batch(job.job_type, filters, offset, limit, template)
                if not rows:
                    break
                offset += writer.write_batch(sanitize_rows(rows))
                async with self.session_factory() as session:
                    await job_service.update_progress(session, job.id, offset)
                logger.debug(f"Export job {job.id}: {offset}/{total}")

            writer.close()
            async with self.session_factory() as session:
                completed = await job_service.update_status(
                    session,
                    job.id,
                    JobStatus.COMPLETED,
                    file_path=str(path),
                    processed_items=offset,
                )
            if not completed:
                msg = f"Job {job.id} left processing before it could complete"
                raise RuntimeError(msg)
        except Exception as exc:
            logger.exception(f"Export job {job.id} failed")
            if writer is not None:
                writer.discard()
            async with self.session_factory() as session:
                await job_service.update_status(session, job.id, JobStatus.FAILED, error_message=str(exc))
            await self._notify_failure(job, str(exc))
            return False

        logger.info(f"Export job {job.id} completed: {offset} rows written to {path}")
        await self._notify_completion(job, offset)
        return True

    async def _load_template(self, job: ExportJob) -> ExportTemplate | None:
        if job.job_type != JobType.CUSTOM:
            return None
        template_id = (job.filters or {}).get("template_id")
        if not template_id:
            msg = "Custom export is missing template_id"
            raise ValueError(msg)
        async with self.session_factory() as session:
            return await require_template(session, template_id)

    @staticmethod
    def _layout(job_type: str, template: ExportTemplate | None) -> tuple[list[str], list[str]]:
        """Column keys and header labels for a job's report kind."""
        if job_type == JobType.MARKETING:
            return list(MARKETING_COLUMNS), list(MARKETING_COLUMNS)
        if job_type == JobType.ANALYTICS:
            return list(ANALYTICS_COLUMNS), list(ANALYTICS_COLUMNS)
        if job_type == JobType.CUSTOM and template is not None:
            return template.columns, template.headers
        msg = f"Unsupported export type: {job_type}"
        raise ValueError(msg)

    def download_url(self, job: ExportJob) -> str:
        return f"{self.download_base_url}/{job.id}/download?hash={job.file_url_hash}"

    async def resolve_recipients(self, job: ExportJob) -> list[str]:
        """Override list, else the requester's address, else the fallback."""
        if job.notification_recipients:
            return job.notification_recipients
        if self.requester_email_lookup is not None:
            email = await self.requester_email_lookup(job.requester_id)
            if email:
                return [email]
        if self.fallback_email:
            return [self.fallback_email]
        return []

    async def _notify_completion(self, job: ExportJob, processed: int) -> None:
        try:
            recipients = await self.resolve_recipients(job)
            if not recipients:
                logger.info(f"No recipients for export job {job.id}; skipping notification")
                return
            summary = JobSummary(
                job_id=job.id,
                job_type=job.job_type,
                processed_items=processed,
                created_at=job.created_at,
            )
            await self.notifier.send_completion(recipients, summary, self.download_url(job))
        except Exception:
            logger.exception(f"Completion notification for export job {job.id} failed")

    async def _notify_failure(self, job: ExportJob, error_message: str) -> None:
        try:
            recipients = await self.resolve_recipients(job)
            if not recipients:
                return
            await self.notifier.send_failure(recipients, error_message)
        except Exception:
            logger.exception(f"Failure notification for export job {job.id} failed")


def build_export_worker(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    notifier: Notifier | None = None,
    data_source: DataSource | None = None,
) -> ExportWorker:
    """Wire an ExportWorker with the SQL data source and configured notifier."""
    if data_source is None:
        decoder = ConsentDecoder(keywords=tuple(settings.consent_keyword_list))
        resolver = FieldResolver(decoder, consent_meta_key=settings.consent_meta_key)
        data_source = SqlOrderSource(
            session_factory,
            resolver=resolver,
            consent_meta_key=settings.consent_meta_key,
            tz=settings.tzinfo,
        )
    return ExportWorker(
        session_factory,
        data_source,
        notifier or build_notifier(settings),
        export_dir=settings.export_dir,
        batch_size=settings.export_batch_size,
        jobs_per_tick=settings.export_jobs_per_tick,
        tick_budget=settings.export_tick_budget_seconds,
        download_base_url=settings.download_base_url,
        fallback_email=settings.fallback_notification_email,
    )
