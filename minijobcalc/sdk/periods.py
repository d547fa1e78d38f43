"""Billing period calculation.

SDK layer - pure functions, no I/O. Turns an employee's billing
configuration (start day, end day) into concrete calendar ranges.

Two shapes of billing period exist:

- Same-month (start_day <= end_day): e.g. 1-31 is the calendar month,
  5-20 covers only the 5th through the 20th.
- Cross-month (start_day > end_day): e.g. 22-21 runs from the 22nd of the
  reference month to the 21st of the following month. These periods are
  labelled by the month they END in, so 22 July - 21 August is "August".

Either boundary clamps to the last day of its month when the configured
day does not exist there (31 in April becomes 30, 29 in February 2025
becomes 28).

A clamped cross-month start never reaches back into the previous period:
when it would fall on or before the previous period's end (31-30 in a
30-day month, 30-29 in February 2025), the period starts the day after
that end instead. Consecutive periods are therefore disjoint.

Usage:
    from minijobcalc.sdk.periods import compute_period

    period = compute_period(22, 21, date(2025, 7, 15))
    period.start_date  # 2025-07-22
    period.end_date    # 2025-08-21
    period.label       # "August 2025"
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .dates import days_between, format_date_for_display

logger = logging.getLogger(__name__)

MIN_DAY = 1
MAX_DAY = 31
# Days above this do not exist in every month and get clamped.
SAFE_DAY = 28
REFERENCE_DAY = 15

MONTH_NAMES = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]

PREVIEW_REFERENCE_DATES = [
    date(2024, 1, 15),   # 31 days
    date(2024, 2, 15),   # 29 days, leap year
    date(2024, 4, 15),   # 30 days
    date(2024, 7, 15),   # 31 days, cross-month into August
    date(2025, 2, 15),   # 28 days
]


@dataclass(frozen=True)
class WorkPeriod:
    """A materialized billing period for one reference month."""

    start_date: date
    end_date: date
    reference_year: int
    reference_month: int
    crosses_month: bool

    @property
    def label_year(self) -> int:
        return self.end_date.year if self.crosses_month else self.reference_year

    @property
    def label_month(self) -> int:
        return self.end_date.month if self.crosses_month else self.reference_month

    @property
    def label(self) -> str:
        """Human-readable name, e.g. "August 2025"."""
        return f"{month_name(self.label_month)} {self.label_year}"

    @property
    def key(self) -> str:
        """Reference month as YYYY-MM."""
        return f"{self.reference_year}-{self.reference_month:02d}"

    @property
    def day_count(self) -> int:
        return days_between(self.start_date, self.end_date) + 1

    @property
    def description(self) -> str:
        start = format_date_for_display(self.start_date)
        end = format_date_for_display(self.end_date)
        return f"{self.label} ({start} – {end})"

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "crosses_month": self.crosses_month,
            "day_count": self.day_count,
        }


def month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return "Unbekannt"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def add_months(year: int, month: int, offset: int) -> Tuple[int, int]:
    """Shift a (year, month) pair by ``offset`` months (negative allowed)."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def reference_date(year: int, month: int) -> date:
    """The conventional reference date of a month (the 15th)."""
    return date(year, month, REFERENCE_DAY)


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, days_in_month(year, month)))


def compute_period(start_day: int, end_day: int, reference: date) -> WorkPeriod:
    """Compute the billing period selected by ``reference``'s month.

    Args:
        start_day: First day of the period (1-31), validated by the caller
        end_day: Last day of the period (1-31), validated by the caller
        reference: Any date in the reference month (conventionally the 15th)

    Returns:
        WorkPeriod with clamped start and end dates
    """
    year, month = reference.year, reference.month
    start_date = _clamped(year, month, start_day)

    if start_day <= end_day:
        end_date = _clamped(year, month, end_day)
        crosses = False
    else:
        # The previous reference month's period ends on end_day of this month.
        previous_end = _clamped(year, month, end_day)
        if start_date <= previous_end:
            start_date = previous_end + timedelta(days=1)
        end_year, end_month = next_month(year, month)
        end_date = _clamped(end_year, end_month, end_day)
        crosses = True

    logger.debug(
        f"billing period {start_day}-{end_day} for {year}-{month:02d}: "
        f"{start_date} to {end_date}"
    )
    return WorkPeriod(
        start_date=start_date,
        end_date=end_date,
        reference_year=year,
        reference_month=month,
        crosses_month=crosses,
    )


def period_for_month(config, year: int, month: int) -> WorkPeriod:
    """Billing period of a BillingPeriodConfig for a reference month."""
    return compute_period(config.start_day, config.end_day, reference_date(year, month))


def first_period_month(config, day: date) -> Tuple[int, int]:
    """Earliest reference month whose period does not end before ``day``.

    This is where a history replay must begin so that an entry on ``day``
    is not skipped (an entry on 10 July under a 22-21 configuration belongs
    to the June reference month).
    """
    year, month = previous_month(day.year, day.month)
    while period_for_month(config, year, month).end_date < day:
        year, month = next_month(year, month)
    return year, month


def period_containing(config, day: date) -> Optional[WorkPeriod]:
    """The billing period that contains ``day``, or None for gap days.

    Same-month configurations that do not cover the whole month (e.g. 5-20)
    leave days that belong to no period.
    """
    for year, month in ((day.year, day.month), previous_month(day.year, day.month)):
        period = period_for_month(config, year, month)
        if period.contains(day):
            return period
    return None


def iter_periods(
    config,
    start_year: int,
    start_month: int,
    end_year: int,
    end_month: int,
) -> Iterator[WorkPeriod]:
    """Yield periods for every reference month from start to end, inclusive."""
    year, month = start_year, start_month
    while (year, month) <= (end_year, end_month):
        yield period_for_month(config, year, month)
        year, month = next_month(year, month)


def yearly_billing_periods(config, year: int) -> List[Dict[str, Any]]:
    """All twelve billing periods whose reference month falls in ``year``."""
    periods = []
    for period in iter_periods(config, year, 1, year, 12):
        item = period.to_dict()
        item["id"] = period.key
        item["month"] = period.reference_month
        item["year"] = period.reference_year
        periods.append(item)
    return periods


def generate_billing_periods(
    config,
    today: date,
    months_back: int = 12,
    months_forward: int = 3,
) -> List[Dict[str, Any]]:
    """Build a selector list of periods around the current month.

    Returns:
        List of dicts (oldest first) with value, label, start/end dates,
        and is_current for the period whose reference month is today's month.
    """
    periods = []
    for offset in range(-months_back, months_forward + 1):
        year, month = add_months(today.year, today.month, offset)
        period = period_for_month(config, year, month)
        periods.append({
            "value": period.key,
            "label": period.description,
            "year": year,
            "month": month,
            "month_name": month_name(month),
            "start_date": period.start_date.isoformat(),
            "end_date": period.end_date.isoformat(),
            "is_current": offset == 0,
        })
    return periods


def validate_billing_period(start_day: Any, end_day: Any) -> Tuple[List[str], List[str]]:
    """Validate billing day configuration.

    Returns:
        Tuple of (errors, warnings). Errors block saving the configuration.
    """
    errors = []
    warnings = []

    for field, value in (("start_day", start_day), ("end_day", end_day)):
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{field} must be an integer, got {value!r}")
        elif not MIN_DAY <= value <= MAX_DAY:
            errors.append(f"{field} must be between {MIN_DAY} and {MAX_DAY}, got {value}")

    if not errors and (start_day > SAFE_DAY or end_day > SAFE_DAY):
        warnings.append(
            "Days 29-31 do not exist in every month; "
            "the last day of the month is used instead."
        )

    return errors, warnings


def billing_period_preview(start_day: int, end_day: int) -> List[Dict[str, Any]]:
    """Evaluate a configuration against months of every length."""
    preview = []
    for ref in PREVIEW_REFERENCE_DATES:
        period = compute_period(start_day, end_day, ref)
        preview.append({
            "reference_month": f"{ref.year}-{ref.month:02d}",
            "period": period.to_dict(),
            "day_count": period.day_count,
        })
    return preview
