"""Streaming CSV writer for export files."""

import csv
import math
import os
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any, Self

# Characters that trigger formula execution in spreadsheet applications
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

# utf-8-sig writes the byte-order mark spreadsheet tools use to detect UTF-8
CSV_ENCODING = "utf-8-sig"


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def _sanitize_cell(value: object) -> object:
    """Sanitize a cell value to prevent CSV formula injection.

    Prefixes values starting with formula-triggering characters with a single
    quote. Plain numbers such as ``-12.50`` are left untouched.

    Args:
        value: The cell value to sanitize.

    Returns:
        The sanitized value.
    """
    if isinstance(value, str) and value and value[0] in _FORMULA_PREFIXES and not _is_number(value):
        return f"'{value}"
    return value


class CsvWriter:
    """Appends row batches to a CSV file with a fixed column set.

    The file starts with a UTF-8 BOM and exactly one header row. Rows are
    dicts keyed by ``columns``; missing keys render as empty cells and extra
    keys are ignored, so every data row has ``len(columns)`` cells.

    Args:
        path: Target file (parent directories are created).
        columns: Keys read from each row, in output order.
        headers: Header labels; defaults to ``columns``.
    """

    def __init__(self, path: Path, columns: Sequence[str], headers: Sequence[str] | None = None) -> None:
        if headers is not None and len(headers) != len(columns):
            msg = f"Header count {len(headers)} does not match column count {len(columns)}"
            raise ValueError(msg)
        self.path = Path(path)
        self.columns = list(columns)
        self.headers = list(headers) if headers is not None else list(self.columns)
        self.rows_written = 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", newline="", encoding=CSV_ENCODING)
        self._writer = csv.writer(self._file, delimiter=",", quotechar='"', quoting=csv.QUOTE_MINIMAL)
        self._writer.writerow(self.headers)

    @property
    def closed(self) -> bool:
        return self._file.closed

    def _prepare(self, row: dict[str, Any]) -> list[object]:
        return [_sanitize_cell(row.get(column, "")) for column in self.columns]

    def write_batch(self, rows: Sequence[dict[str, Any]]) -> int:
        """Append a batch of rows.

        Every row is prepared before anything is written, so a bad row
        leaves the file untouched.

        Returns:
            Number of rows written.
        """
        if self.closed:
            msg = f"CSV writer for {self.path} is closed"
            raise ValueError(msg)
        if not rows:
            return 0
        prepared = [self._prepare(row) for row in rows]
        self._writer.writerows(prepared)
        self._file.flush()
        self.rows_written += len(prepared)
        return len(prepared)

    def close(self) -> None:
        """Flush buffered data to disk and close the file."""
        if self.closed:
            return
        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()

    def discard(self) -> None:
        """Close and delete a partially written file."""
        if not self.closed:
            self._file.close()
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


@dataclass
class CsvPage:
    """A page of rows read back from an export file."""

    header: list[str]
    rows: list[list[str]]
    page: int
    per_page: int
    total_rows: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_rows / self.per_page))


def read_csv_page(path: Path, page: int = 1, per_page: int = 100) -> CsvPage:
    """Read one page of data rows from a finished export for previewing.

    Args:
        path: CSV file written by :class:`CsvWriter`.
        page: 1-based page number.
        per_page: Rows per page.

    Returns:
        The header, the requested rows and the total data-row count.
    """
    if page < 1 or per_page < 1:
        msg = "page and per_page must be positive"
        raise ValueError(msg)

    start = (page - 1) * per_page
    end = start + per_page
    rows: list[list[str]] = []
    total = 0

    with Path(path).open(newline="", encoding=CSV_ENCODING) as f:
        reader = csv.reader(f)
        header = next(reader, [])
        for index, row in enumerate(reader):
            if start <= index < end:
                rows.append(row)
            total += 1

    return CsvPage(header=header, rows=rows, page=page, per_page=per_page, total_rows=total)
