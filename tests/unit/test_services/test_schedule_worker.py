"""Tests for the schedule worker."""

from datetime import UTC, date, datetime
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_exporter.models.base import as_utc
from order_exporter.models.export_job import JobStatus
from order_exporter.models.export_schedule import ExportSchedule
from order_exporter.models.export_template import ExportTemplate
from order_exporter.schemas.schedule import ScheduleCreateRequest
from order_exporter.services import job_service, schedule_service
from order_exporter.services.schedule_worker import ScheduleWorker, build_schedule_filters

CREATED_AT = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
# Monday 2024-03-11, shortly after midnight
TICK_AT = datetime(2024, 3, 11, 0, 5, tzinfo=UTC)


async def _schedule(session: AsyncSession, **overrides: object) -> ExportSchedule:
    data: dict = {
        "name": "Weekly marketing",
        "job_type": "marketing_export",
        "frequency_type": "weekly",
        "frequency_value": 1,
        "start_date": date(2024, 1, 1),
        "notification_email": "team@example.com",
        "filters": {"start_date": "2000-01-01", "channel": "web"},
    }
    data.update(overrides)
    return await schedule_service.create_schedule(
        session, ScheduleCreateRequest(**data), created_by="2", now=CREATED_AT
    )


class TestBuildScheduleFilters:
    """Tests for build_schedule_filters."""

    def test_computed_window_overrides_stored_dates(self) -> None:
        schedule = ExportSchedule(
            job_type="marketing_export",
            frequency_type="monthly",
            frequency_value=1,
            filters={"start_date": "2000-01-01", "channel": "web"},
            template_id=None,
        )
        filters = build_schedule_filters(schedule, datetime(2024, 3, 1, 0, 5, tzinfo=UTC))
        assert filters == {"start_date": "2024-02-01", "end_date": "2024-02-29", "channel": "web"}


class TestCheckAndRunSchedules:
    """Tests for ScheduleWorker.check_and_run_schedules."""

    @pytest.mark.asyncio
    async def test_fires_due_schedule_once(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        schedule = await _schedule(async_session)
        assert as_utc(schedule.next_run_at) == datetime(2024, 3, 4, tzinfo=UTC)

        worker = ScheduleWorker(session_factory)
        result = await worker.check_and_run_schedules(now=TICK_AT)

        assert (result.fired, result.failed) == (1, 0)
        jobs, total = await job_service.list_export_jobs(async_session)
        assert total == 1
        job = jobs[0]
        assert job.status == JobStatus.PENDING
        assert job.schedule_id == schedule.id
        assert job.requester_id == "2"
        assert job.notification_email == "team@example.com"
        assert job.filters == {"start_date": "2024-03-04", "end_date": "2024-03-10", "channel": "web"}

        await async_session.refresh(schedule)
        assert as_utc(schedule.last_run_at) == TICK_AT
        assert as_utc(schedule.next_run_at) == datetime(2024, 3, 18, tzinfo=UTC)

        # Advanced past now, so a second tick fires nothing
        again = await worker.check_and_run_schedules(now=TICK_AT)
        assert again.fired == 0

    @pytest.mark.asyncio
    async def test_inactive_schedule_not_fired(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        await _schedule(async_session, is_active=False)
        result = await ScheduleWorker(session_factory).check_and_run_schedules(now=TICK_AT)
        assert result.fired == 0

    @pytest.mark.asyncio
    async def test_custom_schedule_carries_template(
        self,
        async_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        sample_template: ExportTemplate,
    ) -> None:
        await _schedule(async_session, job_type="custom_export", template_id=sample_template.id)

        await ScheduleWorker(session_factory).check_and_run_schedules(now=TICK_AT)

        jobs, _total = await job_service.list_export_jobs(async_session)
        assert jobs[0].filters["template_id"] == str(sample_template.id)

    @pytest.mark.asyncio
    async def test_failed_firing_leaves_schedule_unchanged(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        schedule = await _schedule(async_session)
        next_run = as_utc(schedule.next_run_at)

        with patch(
            "order_exporter.services.schedule_worker.job_service.create_export_job",
            side_effect=RuntimeError("database unavailable"),
        ):
            result = await ScheduleWorker(session_factory).check_and_run_schedules(now=TICK_AT)

        assert (result.fired, result.failed) == (0, 1)
        await async_session.refresh(schedule)
        assert as_utc(schedule.next_run_at) == next_run
        assert schedule.last_run_at is None

    @pytest.mark.asyncio
    async def test_advance_failure_rolls_back_job_and_continues(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        first = await _schedule(async_session, name="First")
        second = await _schedule(async_session, name="Second")
        real_mark_as_run = schedule_service.mark_as_run
        calls = 0

        async def flaky_mark_as_run(*args: object, **kwargs: object) -> ExportSchedule:
            nonlocal calls
            calls += 1
            if calls == 1:
                msg = "db blip"
                raise RuntimeError(msg)
            return await real_mark_as_run(*args, **kwargs)  # type: ignore[arg-type]

        worker = ScheduleWorker(session_factory)
        with patch.object(schedule_service, "mark_as_run", side_effect=flaky_mark_as_run):
            result = await worker.check_and_run_schedules(now=TICK_AT)

        assert (result.fired, result.failed) == (1, 1)
        jobs, total = await job_service.list_export_jobs(async_session)
        assert total == 1
        await async_session.refresh(first)
        await async_session.refresh(second)
        assert sorted(s.last_run_at is None for s in (first, second)) == [False, True]

        retry = await worker.check_and_run_schedules(now=TICK_AT)

        assert (retry.fired, retry.failed) == (1, 0)
        jobs, total = await job_service.list_export_jobs(async_session)
        assert total == 2
        assert {job.schedule_id for job in jobs} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_next_run_uses_shop_timezone(
        self, async_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        warsaw = ZoneInfo("Europe/Warsaw")
        schedule = await _schedule(async_session, frequency_type="daily", frequency_value=1)

        await ScheduleWorker(session_factory, tz=warsaw).check_and_run_schedules(now=TICK_AT)

        await async_session.refresh(schedule)
        # Next Warsaw midnight after 01:05 CET on the 11th is the 12th at 00:00 CET
        assert as_utc(schedule.next_run_at) == datetime(2024, 3, 11, 23, 0, tzinfo=UTC)
