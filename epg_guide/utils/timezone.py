"""
Date and Time utilities

This module handles XMLTV timestamp parsing, timezone lookup and the
human-readable formatting used for programme start/stop times.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
import re

logger = logging.getLogger(__name__)

XMLTV_TIME_FORMAT = '%Y%m%d%H%M%S'
DISPLAY_TIME_FORMAT = '%a, %d %b %Y %H:%M:%S %Z'

_OFFSET_PATTERN = re.compile(r'^([+-])(\d{2})(\d{2})$')


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


class InvalidTimezoneError(ValueError):
    """Raised when a timezone name is not a known IANA zone"""
    pass


def get_zone(timezone_name: str) -> ZoneInfo:
    """
    Look up an IANA timezone by name

    Args:
        timezone_name: Timezone name (e.g., 'UTC', 'Europe/London')

    Returns:
        ZoneInfo instance

    Raises:
        InvalidTimezoneError: If the name is empty or unknown
    """
    if not timezone_name:
        raise InvalidTimezoneError("Timezone name must not be empty")
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(
            f"Invalid timezone: {timezone_name}. Must be a valid IANA timezone "
            "(e.g., 'Europe/London', 'America/New_York') or 'UTC'"
        ) from e


def parse_xmltv_time(time_str: str) -> datetime:
    """
    Convert XMLTV time format to a timezone-aware UTC datetime

    Args:
        time_str: XMLTV time like '20080715003000 -0600'. A missing offset is read as UTC.

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the time string format is invalid
    """
    if not time_str or not time_str.strip():
        raise DateFormatError("Empty XMLTV time value")

    parts = time_str.strip().split()
    time_part = parts[0]  # YYYYMMDDHHMMSS
    tz_part = parts[1] if len(parts) > 1 else '+0000'

    try:
        dt = datetime.strptime(time_part, XMLTV_TIME_FORMAT)
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV time format: '{time_str}'") from e

    match = _OFFSET_PATTERN.match(tz_part)
    if match is None or len(parts) > 2:
        raise DateFormatError(f"Invalid XMLTV timezone offset: '{time_str}'")

    # Parse timezone offset (±HHMM)
    sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes))
    if sign == '-':
        offset = -offset

    try:
        return dt.replace(tzinfo=timezone(offset)).astimezone(timezone.utc)
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV timezone offset: '{time_str}'") from e


def format_for_timezone(value: datetime, timezone_name: str) -> str:
    """
    Format an aware datetime for display in the target timezone

    Args:
        value: Timezone-aware datetime
        timezone_name: Target timezone (IANA format or 'UTC')

    Returns:
        String like 'Mon, 01 Jan 2024 19:30:00 CET'
    """
    return value.astimezone(get_zone(timezone_name)).strftime(DISPLAY_TIME_FORMAT)


def reference_instant(timezone_name: str, now: datetime | None = None) -> datetime:
    """
    Get the "now" instant evaluated in the given timezone

    Args:
        timezone_name: Timezone the instant is expressed in
        now: Optional explicit instant; a naive value is read as local time in timezone_name

    Returns:
        Timezone-aware datetime in the requested timezone
    """
    zone = get_zone(timezone_name)
    if now is None:
        return datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)
