"""Export CLI commands for queueing and inspecting export jobs."""

import asyncio
import uuid

import typer

from order_exporter.models.export_job import JobStatus, JobType

export_app = typer.Typer()


@export_app.command("create")
def export_create(
    job_type: JobType = typer.Option(..., "--type", help="Export type"),
    start_date: str | None = typer.Option(None, "--start-date", help="Inclusive start date (YYYY-MM-DD)"),
    end_date: str | None = typer.Option(None, "--end-date", help="Inclusive end date (YYYY-MM-DD)"),
    template_id: str | None = typer.Option(None, "--template", help="Template ID for custom exports"),
    email: str | None = typer.Option(None, "--email", help="Comma-separated notification recipients"),
    requester: str = typer.Option("system", "--requester", help="Requester id recorded on the job"),
) -> None:
    """Queue an export job for the next worker tick."""
    filters = {"start_date": start_date, "end_date": end_date, "template_id": template_id}
    asyncio.run(_export_create(job_type, filters, email, requester))


async def _export_create(job_type: str, filters: dict, email: str | None, requester: str) -> None:
    """Async implementation of export create."""
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, get_session_factory, init_engine
    from order_exporter.core.exceptions import ExportValidationError
    from order_exporter.services.job_service import create_export_job

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                job = await create_export_job(
                    session,
                    job_type=job_type,
                    filters=filters,
                    requester_id=requester,
                    notification_email=email,
                )
            except ExportValidationError as exc:
                typer.echo(f"Error: {exc}", err=True)
                raise typer.Exit(code=1) from exc
        typer.echo(f"Export job queued: {job.id}")
        typer.echo(f"  Type:    {job.job_type}")
        typer.echo(f"  Filters: {job.filters}")
    finally:
        await dispose_engine()


@export_app.command("status")
def export_status(
    job_id: str = typer.Argument(..., help="Export job ID"),
) -> None:
    """Show the status and progress of an export job."""
    asyncio.run(_export_status(job_id))


async def _export_status(job_id: str) -> None:
    from order_exporter.core.config import get_settings
    from order_exporter.core.database import dispose_engine, get_session_factory, init_engine
    from order_exporter.services.job_service import get_export_job

    try:
        job_uuid = uuid.UUID(job_id)
    except ValueError as exc:
        typer.echo(f"Error: invalid job ID '{job_id}'", err=True)
        raise typer.Exit(code=1) from exc

    settings = get_settings()
    init_engine(settings.database_url)
    try:
        factory = get_session_factory()
        async with factory() as session:
            job = await get_export_job(session, job_uuid)
        if job is None:
            typer.echo(f"Error: export job {job_id} not found", err=True)
            raise typer.Exit(code=1)

        typer.echo(f"Job {job.id} ({job.job_type})")
        typer.echo(f"  Status:   {job.status}")
        typer.echo(f"  Progress: {job.processed_items}/{job.total_items or '?'} ({job.progress_percent}%)")
        if job.status == JobStatus.COMPLETED:
            typer.echo(f"  File:     {job.file_path}")
        if job.error_message:
            typer.echo(f"  Error:    {job.error_message}")
    finally:
        await dispose_engine()
