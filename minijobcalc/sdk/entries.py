"""Work entry earnings.

SDK layer - pure logic. The ledger treats an entry's earnings as an opaque
amount; this module is the default way to produce that amount from a
shift (start time, end time, break) and an hourly rate.

Shifts may cross midnight (22:00-02:00 is four hours).
"""

import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from .money import CENT, Amount
from .schemas import Entry

MINUTES_PER_DAY = 24 * 60
MAX_BREAK_MINUTES = 480
MIN_WORK_MINUTES = 15
DEFAULT_BREAK_MINUTES = 30

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_HHMMSS = re.compile(r"^\d{2}:\d{2}:\d{2}$")


def normalize_time(value: Optional[str]) -> str:
    """Normalize a time string to HH:MM:SS.

    Raises:
        ValueError: If the value is neither HH:MM nor HH:MM:SS
    """
    if not value:
        return "00:00:00"

    cleaned = value.strip()
    if _HHMMSS.match(cleaned):
        return cleaned
    match = re.match(r"^(\d{1,2}):(\d{2})$", cleaned)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}:00"

    raise ValueError(f"Invalid time format: {value}")


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for HH:MM or HH:MM:SS."""
    parts = value.split(":")
    return int(parts[0]) * 60 + int(parts[1])


def work_minutes(start_time: str, end_time: str, break_minutes: int = 0) -> int:
    """Paid minutes of a shift, never negative."""
    total = time_to_minutes(end_time) - time_to_minutes(start_time)
    if total < 0:
        total += MINUTES_PER_DAY
    return max(0, total - (break_minutes or 0))


def compute_earnings(minutes: int, hourly_rate: Amount) -> Decimal:
    """Earnings for worked minutes, rounded half-up to cents."""
    rate = Decimal(str(hourly_rate))
    return (Decimal(minutes) / 60 * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_time_entry(
    start_time: Optional[str],
    end_time: Optional[str],
    break_minutes: Optional[int] = None,
) -> List[str]:
    """Validate shift input.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not start_time:
        errors.append("Start time is required")
    elif not _HHMM.match(start_time.strip()):
        errors.append("Start time must be HH:MM")

    if not end_time:
        errors.append("End time is required")
    elif not _HHMM.match(end_time.strip()):
        errors.append("End time must be HH:MM")

    if break_minutes is not None and not 0 <= break_minutes <= MAX_BREAK_MINUTES:
        errors.append(f"Break must be between 0 and {MAX_BREAK_MINUTES} minutes")

    if errors:
        return errors

    start_min = time_to_minutes(start_time.strip())
    end_min = time_to_minutes(end_time.strip())
    if start_min == end_min:
        errors.append("Start and end time must differ")
    else:
        span = end_min - start_min
        if span < 0:
            span += MINUTES_PER_DAY
        if span < MIN_WORK_MINUTES:
            errors.append(f"Minimum working time is {MIN_WORK_MINUTES} minutes")

    return errors


def make_entry(
    employee_id: str,
    entry_date: date,
    start_time: str,
    end_time: str,
    hourly_rate: Amount,
    break_minutes: int = DEFAULT_BREAK_MINUTES,
    description: Optional[str] = None,
) -> Entry:
    """Build an Entry from a shift.

    Raises:
        ValueError: If the shift fails validation
    """
    errors = validate_time_entry(start_time, end_time, break_minutes)
    if errors:
        raise ValueError("; ".join(errors))

    minutes = work_minutes(normalize_time(start_time), normalize_time(end_time), break_minutes)
    return Entry(
        employee_id=employee_id,
        entry_date=entry_date,
        earnings=compute_earnings(minutes, hourly_rate),
        work_minutes=minutes,
        description=description,
    )
