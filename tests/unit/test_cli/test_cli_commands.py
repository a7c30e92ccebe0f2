"""Unit tests for the export and worker CLI commands against a SQLite file."""

import re
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from order_exporter.cli.app import app

runner = CliRunner()

_JOB_ID = re.compile(r"Export job queued: ([0-9a-f-]{36})")


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the CLI at a fresh database and keep loguru sinks untouched."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.delenv("SMTP_HOST", raising=False)
    with patch("order_exporter.cli.app.setup_logging"):
        result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0, result.output
        yield


def _queue(*args: str) -> str:
    result = runner.invoke(app, ["export", "create", "--type", "marketing_export", *args])
    assert result.exit_code == 0, result.output
    match = _JOB_ID.search(result.output)
    assert match is not None
    return match.group(1)


class TestExportCommands:
    """Tests for ``export create`` and ``export status``."""

    def test_create_then_status(self) -> None:
        job_id = _queue("--start-date", "2024-03-01", "--end-date", "2024-03-31")

        result = runner.invoke(app, ["export", "status", job_id])

        assert result.exit_code == 0
        assert "Status:   pending" in result.output
        assert "Progress: 0/?" in result.output

    def test_custom_without_template_exits_1(self) -> None:
        result = runner.invoke(app, ["export", "create", "--type", "custom_export"])
        assert result.exit_code == 1
        assert "template_id" in result.output

    def test_bad_date_exits_1(self) -> None:
        result = runner.invoke(app, ["export", "create", "--type", "analytics_export", "--start-date", "03/01/2024"])
        assert result.exit_code == 1

    def test_status_invalid_uuid(self) -> None:
        result = runner.invoke(app, ["export", "status", "not-a-uuid"])
        assert result.exit_code == 1
        assert "invalid job ID" in result.output

    def test_status_unknown_job(self) -> None:
        result = runner.invoke(app, ["export", "status", "00000000-0000-0000-0000-000000000000"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestWorkerCommands:
    """Tests for the single-tick worker commands."""

    def test_process_jobs_completes_queued_export(self) -> None:
        job_id = _queue()

        result = runner.invoke(app, ["worker", "process-jobs"])
        assert result.exit_code == 0
        assert "Completed: 1" in result.output

        status = runner.invoke(app, ["export", "status", job_id])
        assert "Status:   completed" in status.output
        assert "File:" in status.output

    def test_check_schedules_with_nothing_due(self) -> None:
        result = runner.invoke(app, ["worker", "check-schedules"])
        assert result.exit_code == 0
        assert "Fired: 0  Failed: 0" in result.output

    def test_cleanup_reports_counts(self) -> None:
        result = runner.invoke(app, ["worker", "cleanup"])
        assert result.exit_code == 0
        assert "Expired files removed: 0  Old jobs deleted: 0" in result.output
