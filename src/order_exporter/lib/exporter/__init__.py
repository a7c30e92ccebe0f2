"""Exporter library: column sets, row sanitization and the CSV sink.

Provides the fixed report headers, file naming for generated exports and
re-exports the writer and sanitizer used by the export worker.
"""

import secrets
import string
from datetime import datetime
from pathlib import Path

from order_exporter.lib.exporter.csv_writer import CsvPage, CsvWriter, read_csv_page
from order_exporter.lib.exporter.sanitizer import format_order_status, sanitize_rows, sanitize_value

MARKETING_COLUMNS = [
    "email",
    "first_name",
    "last_name",
    "marketing_consent",
    "total_spent",
    "order_count",
    "last_order_date",
]

ANALYTICS_COLUMNS = [
    "order_id",
    "order_date",
    "order_status",
    "order_total",
    "order_currency",
    "billing_email",
    "billing_phone",
    "billing_full_name",
    "billing_city",
    "billing_postcode",
    "user_id",
    "item_name",
    "item_quantity",
    "item_total",
    "coupons_used",
    "marketing_consent",
]

_SUFFIX_ALPHABET = string.ascii_letters + string.digits


def random_token(length: int) -> str:
    """Generate a random alphanumeric token."""
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def build_export_path(export_dir: Path, job_type: str, now: datetime) -> Path:
    """Return a unique file path ``{job_type}_{timestamp}_{random}.csv``."""
    timestamp = now.strftime("%Y-%m-%d_%H-%M-%S")
    return Path(export_dir) / f"{job_type}_{timestamp}_{random_token(8)}.csv"


__all__ = [
    "ANALYTICS_COLUMNS",
    "MARKETING_COLUMNS",
    "CsvPage",
    "CsvWriter",
    "build_export_path",
    "format_order_status",
    "random_token",
    "read_csv_page",
    "sanitize_rows",
    "sanitize_value",
]
