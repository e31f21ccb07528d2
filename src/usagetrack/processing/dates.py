"""Local calendar-day helpers.

Date strings are YYYY-MM-DD keys of a local calendar day; timestamps are
UTC epoch milliseconds.
"""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

UTC = ZoneInfo("UTC")
DATE_FORMAT = "%Y-%m-%d"


def parse_date_string(date_string: str) -> date:
    """Parse a YYYY-MM-DD key.

    Raises:
        ValueError: If the string is not a valid date.
    """
    return datetime.strptime(date_string, DATE_FORMAT).date()


def format_date(value: date) -> str:
    """Format a date as a YYYY-MM-DD key."""
    return value.strftime(DATE_FORMAT)


def start_of_day_millis(date_string: str, tz: ZoneInfo = UTC) -> int:
    """UTC millis of local midnight starting the given day."""
    day = parse_date_string(date_string)
    start = datetime.combine(day, time.min, tzinfo=tz)
    return int(start.timestamp() * 1000)


def end_of_day_millis(date_string: str, tz: ZoneInfo = UTC) -> int:
    """UTC millis of the last millisecond of the given local day."""
    day = parse_date_string(date_string)
    next_start = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return int(next_start.timestamp() * 1000) - 1


def local_hour(timestamp: int, tz: ZoneInfo = UTC) -> int:
    """Local hour-of-day (0-23) of a UTC millis timestamp."""
    return datetime.fromtimestamp(timestamp / 1000, tz=tz).hour


def date_string_for(timestamp: int, tz: ZoneInfo = UTC) -> str:
    """Local day key of a UTC millis timestamp."""
    return format_date(datetime.fromtimestamp(timestamp / 1000, tz=tz).date())


__all__ = [
    "DATE_FORMAT",
    "UTC",
    "date_string_for",
    "end_of_day_millis",
    "format_date",
    "local_hour",
    "parse_date_string",
    "start_of_day_millis",
]
