"""
Bikepark Reports - Date and Timezone Utilities

Raw and cache tables store naive local (Europe/Amsterdam) timestamps. API
input arrives as ISO 8601 strings, usually in UTC ('2025-08-11T22:00:00Z').
Everything is converted to naive local time at the boundary and stays naive
inside the engine.

A municipality may start its reporting day later than midnight ("day begins
at"). Raw timestamps are shifted back by that offset before bucketing, so a
transaction at 02:30 with a 03:00 day start counts towards the previous day.
"""

from datetime import datetime, date, time, timedelta
from typing import Iterator, Optional, Tuple, Union
from zoneinfo import ZoneInfo

REPORT_TZ = ZoneInfo('Europe/Amsterdam')

DateLike = Union[date, datetime]


def get_now_local() -> datetime:
    """Current local wall-clock time as a naive datetime."""
    return datetime.now(REPORT_TZ).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 date or datetime string to naive local time.

    Args:
        value: '2025-08-11', '2025-08-11T10:00:00', '2025-08-11T08:00:00Z', ...

    Returns:
        Naive datetime in REPORT_TZ, or None for empty input

    Raises:
        ValueError: If the string is not a valid ISO date/datetime
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(REPORT_TZ).replace(tzinfo=None)
    return parsed


def start_of_day(value: DateLike) -> datetime:
    """Midnight at the start of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: DateLike) -> datetime:
    """Last whole second of the given day (23:59:59), for inclusive BETWEEN bounds."""
    return day_after(value) - timedelta(seconds=1)


def day_after(value: DateLike) -> datetime:
    """Midnight at the start of the following day."""
    return start_of_day(value) + timedelta(days=1)


def iter_days(start: DateLike, end: DateLike) -> Iterator[datetime]:
    """
    Yield the start of every calendar day from start to end, both inclusive.

    Example:
        >>> [d.day for d in iter_days(date(2024, 1, 30), date(2024, 2, 1))]
        [30, 31, 1]
    """
    current = start_of_day(start)
    last = start_of_day(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def parse_day_begins_at(value: Union[str, int, None], default: int = 0) -> int:
    """
    Convert a "day begins at" setting to minutes after midnight.

    Accepts an int (minutes), 'HH:MM', or an ISO datetime whose time part is
    used (the form stored with municipality contacts).
    """
    if value is None or value == '':
        return default
    if isinstance(value, int):
        return value

    text = str(value).strip()
    if text.isdigit():
        return int(text)
    if 'T' in text or ' ' in text:
        parsed = parse_iso_datetime(text)
        return parsed.hour * 60 + parsed.minute

    hours, _, minutes = text.partition(':')
    return int(hours) * 60 + int(minutes or 0)


def get_adjusted_start_end_dates(
    start_dt: Optional[datetime],
    end_dt: Optional[datetime],
    offset_minutes: int
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Move a reporting range onto raw-table time by adding the day offset.

    Args:
        start_dt: Start of the range in reporting-day time
        end_dt: End of the range in reporting-day time
        offset_minutes: Minutes after midnight at which the reporting day begins

    Returns:
        (adjusted_start, adjusted_end); None values are passed through
    """
    delta = timedelta(minutes=offset_minutes)
    adjusted_start = start_dt + delta if start_dt is not None else None
    adjusted_end = end_dt + delta if end_dt is not None else None
    return adjusted_start, adjusted_end
