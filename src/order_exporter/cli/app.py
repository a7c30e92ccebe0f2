"""Typer CLI root application with serve command."""

import typer

from order_exporter.core.config import get_settings
from order_exporter.core.logging import setup_logging

app = typer.Typer(name="order-exporter", help="Background order export CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "order_exporter.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from order_exporter.cli.db_cmd import db_app
    from order_exporter.cli.export_cmd import export_app
    from order_exporter.cli.worker_cmd import worker_app

    app.add_typer(db_app, name="db", help="Database setup and migration commands")
    app.add_typer(export_app, name="export", help="Export job commands")
    app.add_typer(worker_app, name="worker", help="Export and schedule worker ticks")


_register_subcommands()
