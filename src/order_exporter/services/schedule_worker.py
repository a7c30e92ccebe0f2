"""Schedule worker: turns due schedules into export jobs.

Each due schedule fires at most once per tick. A firing computes the
reporting window for the schedule's frequency, enqueues one job and then
advances the schedule in the same transaction. When any step fails nothing
is committed, the schedule is left exactly as it was and the next tick
retries it; the other due schedules still fire.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_exporter.lib.recurrence import period_window
from order_exporter.models.base import utc_now
from order_exporter.models.export_job import ExportJob, JobType
from order_exporter.models.export_schedule import ExportSchedule
from order_exporter.services import job_service, schedule_service


@dataclass
class ScheduleTickResult:
    """Outcome counters for one schedule tick."""

    fired: int = 0
    failed: int = 0
    job_ids: list[str] = field(default_factory=list)


def build_schedule_filters(schedule: ExportSchedule, local_now: datetime) -> dict[str, Any]:
    """Stored filters overlaid with the period window (computed dates win)."""
    start, end = period_window(schedule.frequency_type, schedule.frequency_value, local_now.date())
    filters: dict[str, Any] = dict(schedule.filters or {})
    filters["start_date"] = start.isoformat()
    filters["end_date"] = end.isoformat()
    if schedule.job_type == JobType.CUSTOM and schedule.template_id is not None:
        filters["template_id"] = str(schedule.template_id)
    return filters


class ScheduleWorker:
    """Fires due schedules.

    Args:
        session_factory: Factory for the per-schedule sessions.
        tz: Shop timezone used for reporting windows and next-run midnights.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, tz: tzinfo = UTC) -> None:
        self.session_factory = session_factory
        self.tz = tz

    async def check_and_run_schedules(self, now: datetime | None = None) -> ScheduleTickResult:
        """Fire every active schedule whose ``next_run_at`` has passed."""
        now = now or utc_now()
        result = ScheduleTickResult()
        async with self.session_factory() as session:
            due = await schedule_service.get_due_schedules(session, now)

        if not due:
            logger.debug("No due export schedules")
            return result

        logger.info(f"Schedule tick: {len(due)} due schedule(s)")
        for schedule in due:
            job = await self.process_schedule(schedule, now)
            if job is None:
                result.failed += 1
            else:
                result.fired += 1
                result.job_ids.append(str(job.id))
        return result

    async def process_schedule(self, schedule: ExportSchedule, now: datetime) -> ExportJob | None:
        """Enqueue one job for ``schedule`` and advance it.

        Returns:
            The created job, or None if the firing failed.
        """
        try:
            filters = build_schedule_filters(schedule, now.astimezone(self.tz))
            async with self.session_factory() as session:
                current = await session.get(ExportSchedule, schedule.id)
                if current is None:
                    logger.warning(f"Schedule {schedule.id} disappeared before firing")
                    return None
                job = await job_service.create_export_job(
                    session,
                    job_type=current.job_type,
                    filters=filters,
                    requester_id=current.created_by,
                    notification_email=current.notification_email,
                    schedule_id=current.id,
                    commit=False,
                )
                # The job and the advanced schedule are committed together
                current = await schedule_service.mark_as_run(session, current, tz=self.tz, now=now)
                await session.refresh(job)
        except Exception:
            logger.exception(f"Failed to fire schedule {schedule.id} ({schedule.name})")
            return None

        logger.info(f"Schedule {schedule.id} fired job {job.id}; next run {current.next_run_at}")
        return job
