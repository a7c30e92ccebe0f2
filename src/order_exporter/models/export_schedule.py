"""ExportSchedule model: recurring export definition."""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String, Text, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from order_exporter.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class FrequencyType(enum.StrEnum):
    """How a schedule recurs; see ``frequency_value`` for the parameter."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ExportSchedule(Base, UUIDMixin, TimestampMixin):
    """A recurrence definition that periodically enqueues export jobs.

    ``frequency_value`` is the day interval for daily schedules, the ISO
    weekday (1=Monday) for weekly ones and the day of month for monthly ones.
    """

    __tablename__ = "export_schedules"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    job_type: Mapped[str] = mapped_column(String(30), nullable=False)
    template_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    frequency_type: Mapped[str] = mapped_column(String(20), nullable=False)
    frequency_value: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    notification_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    filters: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (Index("ix_export_schedules_due", "is_active", "next_run_at"),)
