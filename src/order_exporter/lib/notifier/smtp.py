"""SMTP notifier built on the standard library mail client.

``smtplib`` is blocking, so each send runs in a worker thread.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from loguru import logger

from order_exporter.lib.notifier.base import (
    JobSummary,
    completion_body,
    completion_subject,
    failure_body,
    failure_subject,
)


class SmtpNotifier:
    """Sends plain-text notification mails through an SMTP relay.

    Args:
        host: SMTP server host.
        port: SMTP server port.
        username: Login user; login is skipped when empty.
        password: Login password.
        use_tls: Issue STARTTLS after connecting.
        from_email: Envelope and header sender address.
        from_name: Display name for the From header.
        site_name: Shop name used in subjects and signatures.
        expiry_days: Download validity mentioned in completion mails.
        timeout: Socket timeout in seconds.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str = "noreply@example.com",
        from_name: str = "Order Exporter",
        site_name: str = "Shop",
        expiry_days: int = 7,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.from_name = from_name
        self.site_name = site_name
        self.expiry_days = expiry_days
        self.timeout = timeout

    def build_message(self, recipients: list[str], subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = ", ".join(recipients)
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def _send(self, recipients: list[str], subject: str, body: str) -> None:
        msg = self.build_message(recipients, subject, body)
        await asyncio.to_thread(self._deliver, msg)
        logger.info(f"Sent '{subject}' to {len(recipients)} recipient(s)")

    async def send_completion(self, recipients: list[str], job_summary: JobSummary, download_url: str) -> None:
        await self._send(
            recipients,
            completion_subject(self.site_name),
            completion_body(self.site_name, job_summary, download_url, self.expiry_days),
        )

    async def send_failure(self, recipients: list[str], error_message: str) -> None:
        await self._send(
            recipients,
            failure_subject(self.site_name),
            failure_body(self.site_name, error_message),
        )
