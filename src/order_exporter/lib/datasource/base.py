"""Data source interface consumed by the export worker."""

from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol

Row = dict[str, Any]


class TemplateLike(Protocol):
    """Subset of a custom-export template the data source needs."""

    @property
    def columns(self) -> list[str]: ...


class DataSource(Protocol):
    """Read-only, paginated provider of export rows.

    ``kind`` is a job type value (marketing_export, analytics_export or
    custom_export). Custom reads require ``template``.
    """

    async def count(
        self,
        kind: str,
        filters: dict[str, Any],
        template: TemplateLike | None = None,
    ) -> int:
        """Return the total number of rows the export will contain."""
        ...

    async def fetch_batch(
        self,
        kind: str,
        filters: dict[str, Any],
        offset: int,
        limit: int,
        template: TemplateLike | None = None,
    ) -> Sequence[Row]:
        """Return up to ``limit`` rows starting at ``offset``."""
        ...


def parse_filter_date(value: Any) -> date | None:
    """Parse a ``YYYY-MM-DD`` filter value; empty values mean no bound.

    Raises:
        ValueError: If the value is present but not a valid date.
    """
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
