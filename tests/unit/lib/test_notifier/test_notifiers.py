"""Tests for notification rendering and delivery."""

import uuid
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from order_exporter.core.config import Settings
from order_exporter.lib.notifier import JobSummary, LogNotifier, SmtpNotifier, build_notifier
from order_exporter.lib.notifier.base import completion_body, completion_subject, failure_body, failure_subject


def _summary() -> JobSummary:
    return JobSummary(
        job_id=uuid.uuid4(),
        job_type="marketing_export",
        processed_items=1200,
        created_at=datetime(2024, 3, 10, 14, 5, tzinfo=UTC),
    )


class TestMessageRendering:
    """Tests for subjects and bodies."""

    def test_completion_message(self) -> None:
        body = completion_body("Shop", _summary(), "http://x/download?hash=abc", 7)
        assert completion_subject("Shop") == "[Shop] Your data export is ready"
        assert "Export type: Marketing" in body
        assert "Records: 1200" in body
        assert "Requested: 2024-03-10 14:05" in body
        assert "http://x/download?hash=abc" in body
        assert "7 days" in body

    def test_failure_message(self) -> None:
        assert failure_subject("Shop") == "[Shop] Data export failed"
        assert "Error: disk full" in failure_body("Shop", "disk full")

    def test_unknown_type_label_falls_back_to_raw_value(self) -> None:
        summary = JobSummary(job_id=uuid.uuid4(), job_type="other", processed_items=0)
        assert summary.type_label == "other"


class TestSmtpNotifier:
    """Tests for SmtpNotifier."""

    def test_build_message_headers(self) -> None:
        notifier = SmtpNotifier("smtp.test", from_email="shop@test", from_name="Shop")
        msg = notifier.build_message(["a@test", "b@test"], "Subject", "Body")
        assert msg["To"] == "a@test, b@test"
        assert msg["From"] == "Shop <shop@test>"
        assert msg["Subject"] == "Subject"

    @pytest.mark.asyncio
    async def test_send_completion_uses_starttls_and_login(self) -> None:
        notifier = SmtpNotifier("smtp.test", 2525, username="user", password="secret", site_name="Shop")
        server = MagicMock()
        with patch("order_exporter.lib.notifier.smtp.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value = server
            await notifier.send_completion(["a@test"], _summary(), "http://x")

        smtp_cls.assert_called_once_with("smtp.test", 2525, timeout=10.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        sent = server.send_message.call_args[0][0]
        assert sent["Subject"] == "[Shop] Your data export is ready"

    @pytest.mark.asyncio
    async def test_send_failure_without_tls_or_login(self) -> None:
        notifier = SmtpNotifier("smtp.test", use_tls=False)
        server = MagicMock()
        with patch("order_exporter.lib.notifier.smtp.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value = server
            await notifier.send_failure(["a@test"], "boom")

        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_delivery_errors_propagate(self) -> None:
        notifier = SmtpNotifier("smtp.test")
        with patch("order_exporter.lib.notifier.smtp.smtplib.SMTP", side_effect=OSError("refused")):
            with pytest.raises(OSError, match="refused"):
                await notifier.send_failure(["a@test"], "boom")


class TestBuildNotifier:
    """Tests for build_notifier."""

    def test_log_notifier_without_smtp_host(self, settings: Settings) -> None:
        assert isinstance(build_notifier(settings), LogNotifier)

    def test_smtp_notifier_with_host(self, settings: Settings) -> None:
        configured = settings.model_copy(update={"smtp_host": "smtp.test", "smtp_port": 25})
        notifier = build_notifier(configured)
        assert isinstance(notifier, SmtpNotifier)
        assert notifier.host == "smtp.test"
        assert notifier.port == 25

    @pytest.mark.asyncio
    async def test_log_notifier_sends_nothing(self) -> None:
        notifier = LogNotifier()
        await notifier.send_completion(["a@test"], _summary(), "http://x")
        await notifier.send_failure(["a@test"], "boom")
