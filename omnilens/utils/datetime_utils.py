#!/usr/bin/env python3
"""
Datetime Utility Functions

Centralized datetime parsing and day arithmetic shared by the run normalizer,
the health classifier and the window cache.

Handles common patterns:
- Provider ISO timestamps with 'Z' suffix
- Assigning a timestamp to a calendar day in one fixed timezone
- Normalizing a requested window to whole days (start-of-day .. end-of-day)
- Deriving N-day window boundaries from an end day
"""

from datetime import UTC, date, datetime, time, timedelta, tzinfo


class WindowError(ValueError):
    """Raised when a requested time window is malformed."""

    pass


def parse_provider_timestamp(timestamp_str: str | None) -> datetime | None:
    """
    Parse a provider ISO timestamp with 'Z' suffix to an aware datetime.

    GitHub returns timestamps like "2026-02-10T10:00:00Z".

    Args:
        timestamp_str: ISO timestamp string, or None

    Returns:
        Timezone-aware datetime, or None if input is empty

    Raises:
        ValueError: If timestamp format is invalid or cannot be parsed

    Examples:
        >>> parse_provider_timestamp("2026-02-10T10:00:00Z")
        datetime.datetime(2026, 2, 10, 10, 0, tzinfo=datetime.timezone.utc)

        >>> parse_provider_timestamp(None)
        None
    """
    if not timestamp_str:
        return None

    if not isinstance(timestamp_str, str):
        raise ValueError(f"Timestamp must be a string, got {type(timestamp_str)}")

    try:
        parsed = datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid timestamp format: {timestamp_str}") from e

    return ensure_aware(parsed)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_day(value: datetime, tz: tzinfo = UTC) -> date:
    """
    Calendar day a timestamp falls on in the given timezone.

    Examples:
        >>> to_day(datetime(2026, 3, 1, 23, 30, tzinfo=UTC))
        datetime.date(2026, 3, 1)
    """
    return ensure_aware(value).astimezone(tz).date()


def coerce_day(value: date | datetime | str, tz: tzinfo = UTC) -> date:
    """
    Accept a date, datetime or ISO string and return the calendar day.

    Raises:
        WindowError: If a string cannot be parsed
    """
    if isinstance(value, datetime):
        return to_day(value, tz)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            if len(value) == 10:
                return date.fromisoformat(value)
            parsed = parse_provider_timestamp(value)
        except ValueError as e:
            raise WindowError(f"Invalid date: {value}") from e
        if parsed is None:
            raise WindowError("Date is required")
        return to_day(parsed, tz)
    raise WindowError(f"Unsupported date value: {value!r}")


def day_bounds(day: date, tz: tzinfo = UTC) -> tuple[datetime, datetime]:
    """
    First and last instant of a calendar day in the given timezone.

    Returns:
        (start_of_day, end_of_day) where end_of_day has microsecond 999999
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def normalize_window(
    start: date | datetime | str,
    end: date | datetime | str,
    tz: tzinfo = UTC,
) -> tuple[datetime, datetime]:
    """
    Normalize a requested window to whole days in a single fixed timezone.

    The start is moved to the start of its day and the end to the end of its
    day, so two requests for the same calendar days map to the same window no
    matter what time of day the client sent.

    Raises:
        WindowError: If start falls after end

    Examples:
        >>> normalize_window("2026-01-01", "2026-01-30")
        (datetime.datetime(2026, 1, 1, 0, 0, tzinfo=datetime.timezone.utc),
         datetime.datetime(2026, 1, 30, 23, 59, 59, 999999, tzinfo=datetime.timezone.utc))
    """
    start_day = coerce_day(start, tz)
    end_day = coerce_day(end, tz)

    if start_day > end_day:
        raise WindowError(f"Window start {start_day.isoformat()} is after end {end_day.isoformat()}")

    return day_bounds(start_day, tz)[0], day_bounds(end_day, tz)[1]


def window_start_for(end_day: date, window_days: int) -> date:
    """
    First day of an N-day window ending (inclusive) on end_day.

    Raises:
        WindowError: If window_days is not positive

    Examples:
        >>> window_start_for(date(2026, 1, 30), 30)
        datetime.date(2026, 1, 1)
    """
    if window_days <= 0:
        raise WindowError(f"Window length must be positive, got {window_days}")
    return end_day - timedelta(days=window_days - 1)

