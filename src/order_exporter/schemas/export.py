"""Export Pydantic v2 request/response schemas."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from order_exporter.models.export_job import JobType
from order_exporter.schemas.common import PaginationMeta


class ExportFilters(BaseModel):
    """Filter criteria for export requests."""

    start_date: date | None = Field(default=None, description="Inclusive start (YYYY-MM-DD)")
    end_date: date | None = Field(default=None, description="Inclusive end (YYYY-MM-DD)")
    template_id: uuid.UUID | None = Field(default=None, description="Template for custom exports")

    @model_validator(mode="after")
    def check_range(self) -> "ExportFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            msg = "start_date must not be after end_date"
            raise ValueError(msg)
        return self

    def to_job_filters(self) -> dict[str, str]:
        """Serialize to the job's stored filter mapping."""
        filters: dict[str, str] = {}
        if self.start_date:
            filters["start_date"] = self.start_date.isoformat()
        if self.end_date:
            filters["end_date"] = self.end_date.isoformat()
        if self.template_id:
            filters["template_id"] = str(self.template_id)
        return filters


class ExportRequest(BaseModel):
    """Request to queue an export."""

    job_type: JobType
    filters: ExportFilters = Field(default_factory=ExportFilters)
    notification_email: str | None = Field(
        default=None,
        description="Comma-separated recipients overriding the requester's address",
    )


class ExportJobResponse(BaseModel):
    """Response for an export job."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    job_type: str
    status: str
    filters: dict
    processed_items: int
    total_items: int | None = None
    progress_percent: int
    error_message: str | None = None
    requester_id: str
    notification_email: str | None = None
    schedule_id: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    download_url: str | None = None


class PaginatedExportJobResponse(BaseModel):
    """Paginated list of export jobs."""

    items: list[ExportJobResponse]
    pagination: PaginationMeta


class CsvPreviewResponse(BaseModel):
    """One page of a finished export file."""

    headers: list[str]
    rows: list[list[str]]
    total_rows: int
    page: int
    per_page: int
    total_pages: int


class WorkerTickResponse(BaseModel):
    """Result of a manually triggered export tick."""

    completed: int
    failed: int
    skipped: int
    deferred: int
    job_ids: list[str]
