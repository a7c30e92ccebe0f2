"""Worker CLI commands: single ticks for cron and a long-running loop."""

import asyncio

import typer
from loguru import logger

worker_app = typer.Typer()


@worker_app.command("process-jobs")
def process_jobs() -> None:
    """Run one export worker tick over pending jobs."""
    asyncio.run(_process_jobs())


async def _process_jobs() -> None:
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, get_session_factory, init_engine
    from order_exporter.services.export_worker import build_export_worker

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        worker = build_export_worker(settings, get_session_factory())
        result = await worker.process_pending_jobs()
        typer.echo(
            f"Completed: {result.completed}  Failed: {result.failed}  "
            f"Skipped: {result.skipped}  Deferred: {result.deferred}"
        )
    finally:
        await dispose_engine()


@worker_app.command("check-schedules")
def check_schedules() -> None:
    """Fire every due schedule once."""
    asyncio.run(_check_schedules())


async def _check_schedules() -> None:
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, get_session_factory, init_engine
    from order_exporter.services.schedule_worker import ScheduleWorker

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        worker = ScheduleWorker(get_session_factory(), tz=settings.tzinfo)
        result = await worker.check_and_run_schedules()
        typer.echo(f"Fired: {result.fired}  Failed: {result.failed}")
        for job_id in result.job_ids:
            typer.echo(f"  queued job {job_id}")
    finally:
        await dispose_engine()


@worker_app.command("run")
def run() -> None:
    """Run the export and schedule loops until interrupted."""
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Worker loops stopped")


async def _run() -> None:
    from order_exporter.core.background import start_worker_loops, stop_tasks
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, init_engine

    settings = get_settings()
    init_engine(settings.database_url)
    tasks = start_worker_loops(settings)
    try:
        await asyncio.gather(*tasks)
    finally:
        await stop_tasks(tasks)
        await dispose_engine()


@worker_app.command("cleanup")
def cleanup(
    retention_days: int | None = typer.Option(None, "--retention-days", help="Delete completed jobs older than this"),
    expiry_days: int | None = typer.Option(None, "--expiry-days", help="Remove files older than this"),
) -> None:
    """Delete old completed jobs and expired export files."""
    asyncio.run(_cleanup(retention_days, expiry_days))


async def _cleanup(retention_days: int | None, expiry_days: int | None) -> None:
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, get_session_factory, init_engine
    from order_exporter.services.job_service import cleanup_expired_files, delete_old_jobs

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        factory = get_session_factory()
        async with factory() as session:
            removed = await cleanup_expired_files(session, expiry_days or settings.download_expiry_days)
            deleted = await delete_old_jobs(session, retention_days or settings.job_retention_days)
        typer.echo(f"Expired files removed: {removed}  Old jobs deleted: {deleted}")
    finally:
        await dispose_engine()
