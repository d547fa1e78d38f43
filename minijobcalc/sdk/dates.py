"""Calendar date helpers.

All date math uses plain ``datetime.date`` values, so there is no timezone
and no time-of-day component to drift across a day boundary. "Today" is
taken from UTC.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from .errors import InvalidDateRange

DateLike = Union[date, str]


def today_utc() -> date:
    """Current date in UTC."""
    return datetime.now(timezone.utc).date()


def parse_date(value: DateLike, field: str = "date") -> date:
    """Parse YYYY-MM-DD (or DD.MM.YYYY) into a date.

    Dates that do not exist (2025-02-31) are rejected rather than rolled over.

    Raises:
        InvalidDateRange: If the value is empty or not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise InvalidDateRange(f"{field} is required", field=field, value=value)

    text = str(value).strip()
    fmt = "%d.%m.%Y" if "." in text else "%Y-%m-%d"
    try:
        return datetime.strptime(text, fmt).date()
    except ValueError:
        raise InvalidDateRange(
            f"Invalid {field} '{text}': expected YYYY-MM-DD", field=field, value=text
        )


def date_before(day: date) -> date:
    return day - timedelta(days=1)


def date_after(day: date) -> date:
    return day + timedelta(days=1)


def days_between(start: date, end: date) -> int:
    """Absolute number of days between two dates."""
    return abs((end - start).days)


def periods_overlap(
    start1: date, end1: Optional[date], start2: date, end2: Optional[date]
) -> bool:
    """True if two inclusive ranges overlap. ``None`` as end means unbounded."""
    if end1 is not None and end1 < start2:
        return False
    if end2 is not None and end2 < start1:
        return False
    return True


def format_date_for_display(day: Optional[date]) -> str:
    """German display format (DD.MM.YYYY)."""
    if day is None:
        return "unbegrenzt"
    return day.strftime("%d.%m.%Y")


def date_range_info(start: date, end: Optional[date], today: Optional[date] = None) -> Dict[str, Any]:
    """Classify a range relative to today as future, active or past."""
    if today is None:
        today = today_utc()

    if start > today:
        status = "future"
    elif end is None or end >= today:
        status = "active"
    else:
        status = "past"

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat() if end else None,
        "status": status,
        "duration_days": days_between(start, end) if end else None,
        "start_formatted": format_date_for_display(start),
        "end_formatted": format_date_for_display(end),
    }
