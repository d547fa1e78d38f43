"""Pydantic schemas for minijob-calc data validation.

All schemas use extra='forbid' to reject unknown fields, ensuring
typos in profile or data files cause clear errors rather than silent ignoring.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import DEFAULT_HOURLY_RATE
from .dates import periods_overlap
from .money import to_decimal
from .periods import MAX_DAY, MIN_DAY, SAFE_DAY

MAX_MONTHLY_LIMIT = Decimal("999999.99")


# =============================================================================
# Earnings cap timeline
# =============================================================================


class CapPeriod(BaseModel):
    """A contiguous interval during which a single monthly earnings cap applies."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: Optional[int] = Field(default=None, description="Assigned by the repository on insert")
    limit: Decimal = Field(..., gt=0, le=MAX_MONTHLY_LIMIT, description="Monthly earnings cap in EUR")
    valid_from: date = Field(..., description="First day the cap applies (inclusive)")
    valid_until: Optional[date] = Field(
        default=None, description="Last day the cap applies (inclusive); None = open-ended"
    )
    created_by: str = Field(..., min_length=1, description="Administrator who defined the period")
    description: str = Field(default="", max_length=500)
    is_active: bool = Field(default=False, description="True for the period containing today")

    @field_validator("limit")
    @classmethod
    def round_limit(cls, value: Decimal) -> Decimal:
        return to_decimal(value)

    @model_validator(mode="after")
    def check_range(self) -> "CapPeriod":
        """valid_until may equal valid_from (single-day period) but never precede it."""
        if self.valid_until is not None and self.valid_until < self.valid_from:
            raise ValueError(
                f"valid_until ({self.valid_until}) precedes valid_from ({self.valid_from})"
            )
        return self

    @property
    def is_open_ended(self) -> bool:
        return self.valid_until is None

    def contains(self, day: date) -> bool:
        if day < self.valid_from:
            return False
        return self.valid_until is None or day <= self.valid_until

    def overlaps(self, start: date, end: Optional[date]) -> bool:
        return periods_overlap(self.valid_from, self.valid_until, start, end)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


# =============================================================================
# Employee configuration
# =============================================================================


class BillingPeriodConfig(BaseModel):
    """Billing day-of-month configuration for one employee."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start_day: int = Field(default=1, ge=MIN_DAY, le=MAX_DAY)
    end_day: int = Field(default=31, ge=MIN_DAY, le=MAX_DAY)

    @property
    def crosses_month(self) -> bool:
        return self.start_day > self.end_day

    @property
    def is_calendar_month(self) -> bool:
        return self.start_day == 1 and self.end_day == 31

    @property
    def warning(self) -> Optional[str]:
        if self.start_day > SAFE_DAY or self.end_day > SAFE_DAY:
            return (
                "Days 29-31 do not exist in every month; "
                "the last day of the month is used instead."
            )
        return None


class Employee(BaseModel):
    """An employee as supplied by the configuration provider."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    billing: BillingPeriodConfig = Field(default_factory=BillingPeriodConfig)
    hourly_rate: Decimal = Field(default=DEFAULT_HOURLY_RATE, gt=0)


# =============================================================================
# Work entries
# =============================================================================


class Entry(BaseModel):
    """One day of recorded work with precomputed earnings."""

    model_config = ConfigDict(extra="forbid")

    employee_id: str = Field(..., min_length=1)
    entry_date: date = Field(..., description="Work date")
    earnings: Decimal = Field(..., ge=0, description="Earnings in EUR for this day")
    work_minutes: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("earnings")
    @classmethod
    def round_earnings(cls, value: Decimal) -> Decimal:
        return to_decimal(value)
