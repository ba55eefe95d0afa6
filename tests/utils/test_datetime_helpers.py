#!/usr/bin/env python3
"""
Tests for datetime utility functions

Covers provider timestamp parsing, day keys in a fixed timezone and
whole-day window normalization.
"""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import pytest

from omnilens.utils.datetime_utils import (
    WindowError,
    coerce_day,
    day_bounds,
    ensure_aware,
    normalize_window,
    parse_provider_timestamp,
    to_day,
    window_start_for,
)


class TestParseProviderTimestamp:
    """Tests for parse_provider_timestamp()"""

    def test_z_suffix(self):
        assert parse_provider_timestamp("2026-02-10T10:00:00Z") == datetime(2026, 2, 10, 10, 0, tzinfo=UTC)

    def test_offset_is_kept(self):
        parsed = parse_provider_timestamp("2026-02-10T10:00:00+02:00")

        assert parsed.utcoffset().total_seconds() == 7200

    def test_naive_treated_as_utc(self):
        assert parse_provider_timestamp("2026-02-10T10:00:00").tzinfo is UTC

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_returns_none(self, value):
        assert parse_provider_timestamp(value) is None

    @pytest.mark.parametrize("value", ["yesterday", "2026-13-45T00:00:00Z", 12345])
    def test_invalid_raises_value_error(self, value):
        with pytest.raises(ValueError):
            parse_provider_timestamp(value)


class TestDayKeys:
    """Tests for to_day() and coerce_day()"""

    def test_to_day_in_timezone(self):
        late_evening = datetime(2026, 3, 1, 23, 30, tzinfo=UTC)

        assert to_day(late_evening) == date(2026, 3, 1)
        assert to_day(late_evening, ZoneInfo("Asia/Tokyo")) == date(2026, 3, 2)
        assert to_day(late_evening, ZoneInfo("America/New_York")) == date(2026, 3, 1)

    @pytest.mark.parametrize(
        "value",
        [date(2026, 3, 2), datetime(2026, 3, 2, 15, tzinfo=UTC), "2026-03-02", "2026-03-02T15:00:00Z"],
    )
    def test_coerce_day_accepts_several_forms(self, value):
        assert coerce_day(value) == date(2026, 3, 2)

    @pytest.mark.parametrize("value", ["03/02/2026", "2026-02-30", 20260302])
    def test_coerce_day_rejects_garbage(self, value):
        with pytest.raises(WindowError):
            coerce_day(value)

    def test_ensure_aware_leaves_aware_values(self):
        tokyo = datetime(2026, 3, 2, 9, tzinfo=ZoneInfo("Asia/Tokyo"))

        assert ensure_aware(tokyo) is tokyo


class TestWindows:
    """Tests for window normalization"""

    def test_normalize_window_covers_whole_days(self):
        start, end = normalize_window("2026-01-01T13:45:00Z", date(2026, 1, 30))

        assert start == datetime(2026, 1, 1, 0, 0, tzinfo=UTC)
        assert end == datetime(2026, 1, 30, 23, 59, 59, 999999, tzinfo=UTC)

    def test_same_days_normalize_identically(self):
        assert normalize_window("2026-01-01T01:00:00Z", "2026-01-02T01:00:00Z") == normalize_window(
            "2026-01-01", "2026-01-02T23:00:00Z"
        )

    def test_single_day_window(self):
        start, end = normalize_window("2026-01-01", "2026-01-01")

        assert start.date() == end.date() == date(2026, 1, 1)

    def test_start_after_end_raises(self):
        with pytest.raises(WindowError, match="after end"):
            normalize_window("2026-01-02", "2026-01-01")

    def test_window_error_is_value_error(self):
        assert issubclass(WindowError, ValueError)

    def test_day_bounds_in_timezone(self):
        start, end = day_bounds(date(2026, 3, 2), ZoneInfo("Asia/Tokyo"))

        assert start.astimezone(UTC) == datetime(2026, 3, 1, 15, 0, tzinfo=UTC)
        assert end.date() == date(2026, 3, 2)

    @pytest.mark.parametrize(
        "days, expected",
        [(1, date(2026, 1, 30)), (7, date(2026, 1, 24)), (30, date(2026, 1, 1))],
    )
    def test_window_start_for(self, days, expected):
        assert window_start_for(date(2026, 1, 30), days) == expected

    @pytest.mark.parametrize("days", [0, -3])
    def test_window_start_for_rejects_non_positive(self, days):
        with pytest.raises(WindowError):
            window_start_for(date(2026, 1, 30), days)
