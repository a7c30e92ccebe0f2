"""Pydantic v2 schemas for recurring export schedules."""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from order_exporter.lib.recurrence import describe_frequency
from order_exporter.models.export_job import JobType
from order_exporter.models.export_schedule import FrequencyType
from order_exporter.schemas.common import PaginationMeta


class ScheduleCreateRequest(BaseModel):
    """Request body for creating a schedule."""

    name: str = Field(min_length=1, max_length=200)
    job_type: JobType
    template_id: uuid.UUID | None = Field(default=None, description="Required for custom exports")
    frequency_type: FrequencyType
    frequency_value: int = Field(
        description="Day interval (daily), ISO weekday 1-7 (weekly) or day of month 1-31 (monthly)",
    )
    start_date: date
    notification_email: str | None = Field(default=None, description="Comma-separated recipients")
    filters: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class ScheduleUpdateRequest(BaseModel):
    """Request body for a partial schedule update."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    job_type: JobType | None = None
    template_id: uuid.UUID | None = None
    frequency_type: FrequencyType | None = None
    frequency_value: int | None = None
    start_date: date | None = None
    notification_email: str | None = None
    filters: dict[str, Any] | None = None
    is_active: bool | None = None


class ScheduleToggleRequest(BaseModel):
    """Request body for pausing or resuming a schedule."""

    is_active: bool


class ScheduleResponse(BaseModel):
    """Schedule detail response."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    job_type: str
    template_id: uuid.UUID | None
    frequency_type: str
    frequency_value: int
    start_date: date
    next_run_at: datetime
    last_run_at: datetime | None
    notification_email: str | None
    filters: dict[str, Any]
    is_active: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def frequency_description(self) -> str:
        return describe_frequency(self.frequency_type, self.frequency_value)


class PaginatedScheduleResponse(BaseModel):
    """Paginated list of schedules."""

    items: list[ScheduleResponse]
    pagination: PaginationMeta
