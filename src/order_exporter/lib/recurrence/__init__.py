"""Recurrence library: next-run and reporting-period math for schedules."""

from order_exporter.lib.recurrence.rules import (
    FREQUENCY_DAILY,
    FREQUENCY_MONTHLY,
    FREQUENCY_WEEKLY,
    describe_frequency,
    first_run_at,
    next_run_from,
    period_window,
    validate_frequency,
)

__all__ = [
    "FREQUENCY_DAILY",
    "FREQUENCY_MONTHLY",
    "FREQUENCY_WEEKLY",
    "describe_frequency",
    "first_run_at",
    "next_run_from",
    "period_window",
    "validate_frequency",
]
