"""Unit tests for lenient date parsing and display helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from assistant_toolkit.capabilities._dates import (
    format_date,
    format_datetime,
    format_day,
    optional_date,
    parse_flexible_date,
    require_date,
    start_of_day,
)
from assistant_toolkit.exceptions import ToolArgumentError


class TestParseFlexibleDate:
    @pytest.mark.parametrize(
        "text",
        [
            "2026-02-01T10:00:00",
            "2026-02-01 10:00:00",
            "2026-02-01 10:00",
            "2026-02-01T10:00",
            "2026/02/01 10:00:00",
            "2026/02/01 10:00",
            "02/01/2026 10:00",
            "01-02-2026 10:00",
            "  2026-02-01 10:00  ",
        ],
    )
    def test_naive_formats(self, text: str) -> None:
        assert parse_flexible_date(text) == datetime(2026, 2, 1, 10, 0)

    def test_date_only_iso(self) -> None:
        assert parse_flexible_date("2026-02-01") == datetime(2026, 2, 1)

    def test_utc_suffix_converted_to_local(self) -> None:
        expected = (
            datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        )
        assert parse_flexible_date("2026-02-01T10:00:00Z") == expected

    def test_fractional_seconds_with_offset(self) -> None:
        parsed = parse_flexible_date("2026-02-01T10:00:00.500+00:00")
        assert parsed is not None
        assert parsed.tzinfo is None

    @pytest.mark.parametrize("text", ["", "   ", "tomorrow", "2026-13-01 10:00"])
    def test_unparseable(self, text: str) -> None:
        assert parse_flexible_date(text) is None


class TestArgumentHelpers:
    def test_require_date(self) -> None:
        assert require_date({"start_date": "2026-02-01 10:00"}, "start_date") == datetime(
            2026, 2, 1, 10
        )

    def test_require_date_invalid(self) -> None:
        with pytest.raises(ToolArgumentError, match="Expected formats"):
            require_date({"start_date": "soon"}, "start_date")

    def test_optional_date_missing(self) -> None:
        assert optional_date({}, "due_date") is None
        assert optional_date({"due_date": ""}, "due_date") is None


class TestFormatting:
    def test_formats(self) -> None:
        moment = datetime(2026, 2, 1, 9, 5)
        assert format_date(moment) == "Feb 1, 2026"
        assert format_datetime(moment) == "Feb 1, 2026 at 09:05"
        assert format_day(moment) == "Sunday, February 1, 2026"
        assert start_of_day(moment) == datetime(2026, 2, 1)
