"""Notifier library: job completion and failure messages.

Provides the :class:`Notifier` protocol, an SMTP implementation and a
log-only implementation, plus :func:`build_notifier` choosing between them
from settings.
"""

from order_exporter.core.config import Settings
from order_exporter.lib.notifier.base import JobSummary, LogNotifier, Notifier
from order_exporter.lib.notifier.smtp import SmtpNotifier


def build_notifier(settings: Settings) -> Notifier:
    """Return an SMTP notifier when a host is configured, else a log-only one."""
    if not settings.smtp_host:
        return LogNotifier(site_name=settings.site_name, expiry_days=settings.download_expiry_days)
    return SmtpNotifier(
        settings.smtp_host,
        settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        from_email=settings.smtp_from_email,
        from_name=settings.smtp_from_name,
        site_name=settings.site_name,
        expiry_days=settings.download_expiry_days,
        timeout=settings.smtp_timeout,
    )


__all__ = ["JobSummary", "LogNotifier", "Notifier", "SmtpNotifier", "build_notifier"]
