"""Row sanitization applied to every batch before it is written."""

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

STATUS_FIELDS = frozenset({"order_status"})
DATE_FIELDS = frozenset({"order_date", "last_order_date"})
CURRENCY_FIELDS = frozenset({"total_spent", "order_total", "item_total"})

STATUS_PREFIX = "wc-"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_order_status(status: str) -> str:
    """Strip the raw status-code prefix (``wc-completed`` -> ``completed``)."""
    return status.replace(STATUS_PREFIX, "", 1) if status.startswith(STATUS_PREFIX) else status


def format_date(value: Any) -> Any:
    """Normalize a date-like value to ``YYYY-MM-DD HH:MM:SS``.

    Unparseable strings are returned unchanged.
    """
    if isinstance(value, datetime):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time()).strftime(DATE_FORMAT)
    if isinstance(value, str) and value.strip():
        try:
            return date_parser.parse(value.strip()).strftime(DATE_FORMAT)
        except (ValueError, OverflowError):
            return value
    return value


def format_currency(value: Any) -> Any:
    """Format a numeric value with exactly two decimals, no grouping."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return value
    return f"{amount:.2f}"


def sanitize_value(key: str, value: Any) -> Any:
    """Apply the display rules for one cell."""
    if value is None:
        return ""
    if key in STATUS_FIELDS and isinstance(value, str):
        value = format_order_status(value)
    if key in DATE_FIELDS and value != "":
        value = format_date(value)
    if key in CURRENCY_FIELDS and value != "" and not isinstance(value, bool):
        value = format_currency(value)
    if isinstance(value, str):
        value = value.strip()
    return value


def sanitize_rows(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return sanitized copies of ``rows``; the input is not modified."""
    return [{key: sanitize_value(key, value) for key, value in row.items()} for row in rows]
