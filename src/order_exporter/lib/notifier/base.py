"""Notifier interface and message rendering shared by implementations."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from loguru import logger

JOB_TYPE_LABELS = {
    "marketing_export": "Marketing",
    "analytics_export": "Analytics",
    "custom_export": "Custom",
}


@dataclass(frozen=True)
class JobSummary:
    """What a completion message says about the finished job."""

    job_id: uuid.UUID
    job_type: str
    processed_items: int
    created_at: datetime | None = None

    @property
    def type_label(self) -> str:
        return JOB_TYPE_LABELS.get(self.job_type, self.job_type)


class Notifier(Protocol):
    """Delivers job outcome messages. Failures propagate to the caller."""

    async def send_completion(self, recipients: list[str], job_summary: JobSummary, download_url: str) -> None: ...

    async def send_failure(self, recipients: list[str], error_message: str) -> None: ...


def completion_subject(site_name: str) -> str:
    return f"[{site_name}] Your data export is ready"


def completion_body(site_name: str, job_summary: JobSummary, download_url: str, expiry_days: int) -> str:
    created = job_summary.created_at.strftime("%Y-%m-%d %H:%M") if job_summary.created_at else "-"
    return (
        "Hello,\n\n"
        "Your data export has been generated.\n\n"
        f"Export type: {job_summary.type_label}\n"
        f"Records: {job_summary.processed_items}\n"
        f"Requested: {created}\n\n"
        f"Download the file:\n{download_url}\n\n"
        f"The link stays active for {expiry_days} days.\n\n"
        f"Regards,\n{site_name}\n"
    )


def failure_subject(site_name: str) -> str:
    return f"[{site_name}] Data export failed"


def failure_body(site_name: str, error_message: str) -> str:
    return (
        "Hello,\n\n"
        "Unfortunately your data export could not be generated.\n\n"
        f"Error: {error_message}\n\n"
        "Please contact the site administrator.\n\n"
        f"Regards,\n{site_name}\n"
    )


class LogNotifier:
    """Notifier that only logs; used when no SMTP host is configured."""

    def __init__(self, site_name: str = "Shop", expiry_days: int = 7) -> None:
        self.site_name = site_name
        self.expiry_days = expiry_days

    async def send_completion(self, recipients: list[str], job_summary: JobSummary, download_url: str) -> None:
        logger.info(
            "Export {} ready for {} ({} records): {}",
            job_summary.job_id,
            ", ".join(recipients),
            job_summary.processed_items,
            download_url,
        )

    async def send_failure(self, recipients: list[str], error_message: str) -> None:
        logger.info("Export failure notice for {}: {}", ", ".join(recipients), error_message)
