"""Tests for export row sanitization."""

from datetime import UTC, date, datetime
from decimal import Decimal

from order_exporter.lib.exporter import format_order_status, sanitize_rows, sanitize_value


class TestFormatOrderStatus:
    """Tests for format_order_status."""

    def test_strips_prefix(self) -> None:
        assert format_order_status("wc-completed") == "completed"

    def test_leaves_unprefixed_status(self) -> None:
        assert format_order_status("completed") == "completed"

    def test_only_strips_leading_prefix(self) -> None:
        assert format_order_status("custom-wc-status") == "custom-wc-status"


class TestSanitizeValue:
    """Tests for sanitize_value."""

    def test_none_becomes_empty_string(self) -> None:
        assert sanitize_value("email", None) == ""

    def test_status_field(self) -> None:
        assert sanitize_value("order_status", "wc-on-hold") == "on-hold"

    def test_status_prefix_kept_on_other_fields(self) -> None:
        assert sanitize_value("note", "wc-completed") == "wc-completed"

    def test_datetime_formatting(self) -> None:
        value = datetime(2024, 3, 10, 14, 5, 9, tzinfo=UTC)
        assert sanitize_value("order_date", value) == "2024-03-10 14:05:09"

    def test_date_formatting(self) -> None:
        assert sanitize_value("last_order_date", date(2024, 3, 10)) == "2024-03-10 00:00:00"

    def test_date_string_is_parsed(self) -> None:
        assert sanitize_value("order_date", "2024-03-10T14:05:09") == "2024-03-10 14:05:09"

    def test_unparseable_date_string_passes_through(self) -> None:
        assert sanitize_value("order_date", "not a date") == "not a date"

    def test_currency_two_decimals(self) -> None:
        assert sanitize_value("total_spent", Decimal("15.5")) == "15.50"
        assert sanitize_value("order_total", 1234567.891) == "1234567.89"
        assert sanitize_value("item_total", "7") == "7.00"

    def test_currency_non_numeric_passes_through(self) -> None:
        assert sanitize_value("order_total", "n/a") == "n/a"

    def test_strings_are_trimmed(self) -> None:
        assert sanitize_value("first_name", "  Jan  ") == "Jan"

    def test_numbers_untouched(self) -> None:
        assert sanitize_value("order_count", 2) == 2


class TestSanitizeRows:
    """Tests for sanitize_rows."""

    def test_returns_copies(self) -> None:
        rows = [{"order_status": "wc-completed", "email": " a@b.pl "}]
        result = sanitize_rows(rows)
        assert result == [{"order_status": "completed", "email": "a@b.pl"}]
        assert rows[0]["order_status"] == "wc-completed"

    def test_empty_input(self) -> None:
        assert sanitize_rows([]) == []
