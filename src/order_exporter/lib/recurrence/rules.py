"""Recurrence rules for export schedules.

All functions are pure: callers pass ``now`` explicitly. Datetimes are
returned in the timezone of the ``now`` they were computed from, truncated to
midnight, so callers control which calendar the midnights belong to.
"""

import calendar
from datetime import date, datetime, time, timedelta

FREQUENCY_DAILY = "daily"
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_MONTHLY = "monthly"

_WEEKDAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def validate_frequency(frequency_type: str, frequency_value: int) -> None:
    """Check that ``frequency_value`` is in range for ``frequency_type``.

    Raises:
        ValueError: If the type is unknown or the value is out of range.
    """
    if frequency_type == FREQUENCY_DAILY:
        if frequency_value < 1:
            msg = "Daily interval must be at least 1 day"
            raise ValueError(msg)
    elif frequency_type == FREQUENCY_WEEKLY:
        if not 1 <= frequency_value <= 7:
            msg = "Weekly schedules need an ISO weekday between 1 (Monday) and 7 (Sunday)"
            raise ValueError(msg)
    elif frequency_type == FREQUENCY_MONTHLY:
        if not 1 <= frequency_value <= 31:
            msg = "Monthly schedules need a day of month between 1 and 31"
            raise ValueError(msg)
    else:
        msg = f"Unknown frequency type: {frequency_type}"
        raise ValueError(msg)


def _midnight(day: date, like: datetime) -> datetime:
    return datetime.combine(day, time.min, tzinfo=like.tzinfo)


def next_run_from(frequency_type: str, frequency_value: int, now: datetime) -> datetime:
    """Compute the next firing strictly after ``now``'s calendar day.

    Args:
        frequency_type: daily, weekly or monthly.
        frequency_value: Interval in days, ISO weekday, or day of month.
        now: Reference instant.

    Returns:
        Midnight of the next firing day.
    """
    validate_frequency(frequency_type, frequency_value)
    today = now.date()

    if frequency_type == FREQUENCY_DAILY:
        return _midnight(today + timedelta(days=frequency_value), now)

    if frequency_type == FREQUENCY_WEEKLY:
        days_ahead = frequency_value - today.isoweekday()
        if days_ahead <= 0:
            days_ahead += 7
        return _midnight(today + timedelta(days=days_ahead), now)

    # Monthly: first day of next month, then clamp to the month's length
    year, month = (today.year + 1, 1) if today.month == 12 else (today.year, today.month + 1)
    last_day = calendar.monthrange(year, month)[1]
    return _midnight(date(year, month, min(frequency_value, last_day)), now)


def first_run_at(start_date: date, frequency_type: str, frequency_value: int, now: datetime) -> datetime:
    """Compute the first ``next_run_at`` for a new or re-anchored schedule.

    A start date strictly in the future is used verbatim (at midnight);
    otherwise the regular rule applies from ``now``.
    """
    validate_frequency(frequency_type, frequency_value)
    start = _midnight(start_date, now)
    if start > now:
        return start
    return next_run_from(frequency_type, frequency_value, now)


def period_window(frequency_type: str, frequency_value: int, today: date) -> tuple[date, date]:
    """Reporting window covered by a firing on ``today``.

    Daily schedules cover the previous ``frequency_value`` days, weekly ones
    the previous seven days, both ending yesterday. Monthly schedules cover
    the whole previous calendar month.

    Returns:
        Inclusive ``(start_date, end_date)``.
    """
    validate_frequency(frequency_type, frequency_value)
    yesterday = today - timedelta(days=1)

    if frequency_type == FREQUENCY_DAILY:
        return today - timedelta(days=frequency_value), yesterday
    if frequency_type == FREQUENCY_WEEKLY:
        return today - timedelta(days=7), yesterday

    last_of_previous = today.replace(day=1) - timedelta(days=1)
    return last_of_previous.replace(day=1), last_of_previous


def describe_frequency(frequency_type: str, frequency_value: int) -> str:
    """Human-readable description of a recurrence."""
    if frequency_type == FREQUENCY_DAILY:
        if frequency_value == 1:
            return "Every day"
        return f"Every {frequency_value} days"
    if frequency_type == FREQUENCY_WEEKLY:
        return f"Every week on {_WEEKDAY_NAMES.get(frequency_value, '?')}"
    if frequency_type == FREQUENCY_MONTHLY:
        return f"Every month on day {frequency_value}"
    return "Unknown"
