"""In-process periodic loops driving the export and schedule workers.

Cron-style deployments call the CLI tick commands instead; these loops
serve ``worker run`` and the optional API lifespan tasks.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from order_exporter.core.config import Settings

Tick = Callable[[], Awaitable[Any]]


async def periodic_loop(name: str, interval: float, tick: Tick, *, run_immediately: bool = True) -> None:
    """Run ``tick`` every ``interval`` seconds until cancelled.

    A failing tick is logged and the loop keeps going.
    """
    logger.info("{} loop started (interval={}s)", name, interval)
    first = True
    while True:
        try:
            if not (first and run_immediately):
                await asyncio.sleep(interval)
            first = False
            await tick()
        except asyncio.CancelledError:
            logger.info("{} loop cancelled", name)
            break
        except Exception:
            logger.exception("{} loop error", name)


def start_worker_loops(settings: Settings) -> list[asyncio.Task[None]]:
    """Start the export and schedule loops on the running event loop."""
    from order_exporter.core.database import get_session_factory
    from order_exporter.services.export_worker import build_export_worker
    from order_exporter.services.schedule_worker import ScheduleWorker

    factory = get_session_factory()
    export_worker = build_export_worker(settings, factory)
    schedule_worker = ScheduleWorker(factory, tz=settings.tzinfo)
    return [
        asyncio.create_task(
            periodic_loop("Export worker", settings.export_tick_interval, export_worker.process_pending_jobs)
        ),
        asyncio.create_task(
            periodic_loop("Schedule worker", settings.schedule_tick_interval, schedule_worker.check_and_run_schedules)
        ),
    ]


async def stop_tasks(tasks: list[asyncio.Task[None]]) -> None:
    """Cancel loop tasks and wait for them to finish."""
    for task in tasks:
        task.cancel()
    for task in tasks:
        with contextlib.suppress(asyncio.CancelledError):
            await task
