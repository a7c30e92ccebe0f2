"""ExportJob model: one queued export request and its execution record."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from order_exporter.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class JobType(enum.StrEnum):
    """Report shape produced by a job."""

    MARKETING = "marketing_export"
    ANALYTICS = "analytics_export"
    CUSTOM = "custom_export"


class JobStatus(enum.StrEnum):
    """Lifecycle state of an export job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Legal predecessors for each target status
ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset(),
    JobStatus.PROCESSING: frozenset({JobStatus.PENDING}),
    JobStatus.COMPLETED: frozenset({JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
}


class ExportJob(Base, UUIDMixin, TimestampMixin):
    """Tracks an export request from queueing to a finished CSV file.

    ``schedule_id`` is a plain back-reference without a foreign key: the
    schedule may be deleted later and the job row must survive it.
    """

    __tablename__ = "export_jobs"

    job_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JobStatus.PENDING,
        server_default=JobStatus.PENDING.value,
    )
    filters: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # Progress
    processed_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_items: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Output
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_url_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Ownership
    requester_id: Mapped[str] = mapped_column(String(100), nullable=False)
    notification_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    schedule_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_export_jobs_status_created", "status", "created_at"),
        Index("ix_export_jobs_requester", "requester_id"),
        Index("ix_export_jobs_schedule", "schedule_id"),
    )

    @property
    def progress_percent(self) -> int:
        """Progress as a 0-100 integer (0 until the total is known)."""
        if not self.total_items:
            return 0
        percent = round(self.processed_items / self.total_items * 100)
        return min(100, max(0, percent))

    @property
    def notification_recipients(self) -> list[str]:
        """Parse the override address list."""
        if not self.notification_email:
            return []
        return [e.strip() for e in self.notification_email.split(",") if e.strip()]
