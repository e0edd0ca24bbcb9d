"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All timestamps are stored in UTC
Calendar days: A care log's log_date is the care recipient's local calendar day,
derived from the recipient's IANA timezone, never from the server clock's zone.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (SQLite hands back naive datetimes).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def to_iso_string(dt: datetime) -> str:
    """
    Render a datetime as an ISO 8601 UTC string with a 'Z' suffix.
    """
    return as_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso_string(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 string to UTC datetime.
    Handles both with and without 'Z' suffix.

    Args:
        iso_string: ISO 8601 string (e.g., "2024-12-28T10:30:00.000Z" or "2024-12-28T10:30:00+00:00")

    Returns:
        datetime object in UTC timezone
    """
    if iso_string.endswith("Z"):
        iso_string = iso_string[:-1] + "+00:00"

    dt = datetime.fromisoformat(iso_string)
    return as_utc(dt)


def get_zone(tz_name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.
    Raises ValueError for unknown names.
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def local_date(tz_name: str, at: datetime | None = None) -> date:
    """
    Calendar date in the given timezone at instant `at` (defaults to now).

    Example: 2025-06-01T17:30Z is already 2025-06-02 in Asia/Singapore.
    """
    instant = as_utc(at) if at is not None else utc_now()
    return instant.astimezone(get_zone(tz_name)).date()
