"""Tests for export and schedule schemas."""

import uuid
from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError

from order_exporter.models.export_job import JobType
from order_exporter.schemas.common import PaginationMeta
from order_exporter.schemas.export import ExportFilters, ExportRequest
from order_exporter.schemas.schedule import ScheduleCreateRequest, ScheduleResponse


class TestExportFilters:
    """Tests for ExportFilters."""

    def test_serializes_to_job_filters(self) -> None:
        template_id = uuid.uuid4()
        filters = ExportFilters(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), template_id=template_id)
        assert filters.to_job_filters() == {
            "start_date": "2024-03-01",
            "end_date": "2024-03-31",
            "template_id": str(template_id),
        }

    def test_empty_filters(self) -> None:
        assert ExportFilters().to_job_filters() == {}

    def test_rejects_inverted_range(self) -> None:
        with pytest.raises(ValidationError, match="start_date"):
            ExportFilters(start_date=date(2024, 4, 1), end_date=date(2024, 3, 1))

    def test_rejects_malformed_date(self) -> None:
        with pytest.raises(ValidationError):
            ExportFilters(start_date="01/03/2024")  # type: ignore[arg-type]


class TestExportRequest:
    """Tests for ExportRequest."""

    def test_job_type_enum(self) -> None:
        request = ExportRequest(job_type="analytics_export")  # type: ignore[arg-type]
        assert request.job_type == JobType.ANALYTICS

    def test_rejects_unknown_job_type(self) -> None:
        with pytest.raises(ValidationError):
            ExportRequest(job_type="pdf_export")  # type: ignore[arg-type]


class TestScheduleSchemas:
    """Tests for schedule request/response schemas."""

    def test_rejects_unknown_frequency(self) -> None:
        with pytest.raises(ValidationError):
            ScheduleCreateRequest(
                name="S",
                job_type="marketing_export",  # type: ignore[arg-type]
                frequency_type="hourly",  # type: ignore[arg-type]
                frequency_value=1,
                start_date=date(2024, 3, 1),
            )

    def test_response_includes_frequency_description(self) -> None:
        now = datetime(2024, 3, 1, tzinfo=UTC)
        response = ScheduleResponse(
            id=uuid.uuid4(),
            name="Weekly",
            job_type="marketing_export",
            template_id=None,
            frequency_type="weekly",
            frequency_value=1,
            start_date=date(2024, 3, 1),
            next_run_at=now,
            last_run_at=None,
            notification_email=None,
            filters={},
            is_active=True,
            created_by="1",
            created_at=now,
            updated_at=now,
        )
        assert response.model_dump()["frequency_description"] == "Every week on Monday"


class TestPaginationMeta:
    """Tests for PaginationMeta.build."""

    def test_total_pages(self) -> None:
        assert PaginationMeta.build(0, 1, 20).total_pages == 0
        assert PaginationMeta.build(41, 1, 20).total_pages == 3
