"""Earnings cap timeline.

Owns the ordered set of cap periods and keeps it free of overlaps. Inserting
or deleting a period can require changing the neighbouring period's end
date; those changes happen in the same repository transaction and are
always reported back to the caller as Adjustments.

Rules:
- New periods start today or later and end after they start.
- A new period that overlaps exactly one open-ended period starting before
  it truncates that period to the day before. Any other overlap is an error.
- Only periods starting after today can be deleted. The predecessor is
  stretched to the successor (or made open-ended if there is none).
- Periods already in effect only accept description changes.
"""

import bisect
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from .dates import date_before, today_utc
from .errors import (
    InvalidDateRange,
    OverlappingPeriods,
    PeriodNotDeletable,
    PeriodNotEditable,
    PeriodNotFound,
)
from .money import to_decimal
from .schemas import CapPeriod
from .store import CapPeriodRepository

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _iso(day: Optional[date]) -> Optional[str]:
    return day.isoformat() if day else None


@dataclass
class Adjustment:
    """An automatic change to a neighbouring period's end date."""

    period_id: int
    valid_from: date
    old_valid_until: Optional[date]
    new_valid_until: Optional[date]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.period_id,
            "valid_from": self.valid_from.isoformat(),
            "old_valid_until": _iso(self.old_valid_until),
            "new_valid_until": _iso(self.new_valid_until),
        }


@dataclass
class InsertResult:
    committed: CapPeriod
    auto_adjusted: List[Adjustment] = field(default_factory=list)


@dataclass
class UpdateResult:
    updated: CapPeriod
    auto_adjusted: List[Adjustment] = field(default_factory=list)


@dataclass
class DeleteResult:
    deleted: CapPeriod
    auto_adjusted: List[Adjustment] = field(default_factory=list)


class CapIndex:
    """Read-only lookup over a snapshot of cap periods, sorted by start date.

    Assumes the snapshot has no overlaps; use CapTimeline.find_applicable
    when overlaps must be detected.
    """

    def __init__(self, periods: List[CapPeriod]):
        self._periods = sorted(periods, key=lambda p: p.valid_from)
        self._starts = [p.valid_from for p in self._periods]

    def __len__(self) -> int:
        return len(self._periods)

    def find(self, day: date) -> Optional[CapPeriod]:
        pos = bisect.bisect_right(self._starts, day)
        if pos == 0:
            return None
        candidate = self._periods[pos - 1]
        return candidate if candidate.contains(day) else None


class CapTimeline:
    """Transaction-scoped command object over a CapPeriodRepository."""

    def __init__(self, repository: CapPeriodRepository, today: Optional[Callable[[], date]] = None):
        self.repository = repository
        self._today = today or today_utc

    def today(self) -> date:
        return self._today()

    # --- queries ---

    def list_periods(self) -> List[CapPeriod]:
        """All periods, ascending by valid_from."""
        return sorted(self.repository.list_all(), key=lambda p: (p.valid_from, p.id))

    def get(self, period_id: int) -> CapPeriod:
        period = self.repository.get(period_id)
        if period is None:
            raise PeriodNotFound(period_id)
        return period

    def find_applicable(self, day: date) -> Optional[CapPeriod]:
        """The period containing ``day``, or None.

        Raises:
            OverlappingPeriods: If more than one period contains ``day``
        """
        matches = [p for p in self.list_periods() if p.contains(day)]
        if len(matches) > 1:
            logger.warning(f"{len(matches)} cap periods contain {day}: {[p.id for p in matches]}")
            raise OverlappingPeriods(
                day, day, matches,
                message=f"{len(matches)} cap periods contain {day.isoformat()}; "
                        f"run recalculate to repair the timeline",
            )
        return matches[0] if matches else None

    def current(self) -> Optional[CapPeriod]:
        return self.find_applicable(self.today())

    def index(self) -> CapIndex:
        """Snapshot for repeated lookups (ledger replay)."""
        return CapIndex(self.repository.list_all())

    def check_overlaps(
        self,
        valid_from: date,
        valid_until: Optional[date],
        exclude_id: Optional[int] = None,
    ) -> List[CapPeriod]:
        """Existing periods overlapping [valid_from, valid_until] (None = unbounded)."""
        return [
            p for p in self.list_periods()
            if p.id != exclude_id and p.overlaps(valid_from, valid_until)
        ]

    def statistics(self) -> Dict[str, Any]:
        periods = self.list_periods()
        active = sum(1 for p in periods if p.is_active)
        current = self.current()
        return {
            "total": len(periods),
            "active": active,
            "inactive": len(periods) - active,
            "current_limit": str(current.limit) if current else None,
            "current_id": current.id if current else None,
        }

    # --- commands ---

    def insert(self, new_period: CapPeriod) -> InsertResult:
        """Add a period, truncating an open-ended predecessor if that resolves the overlap.

        Raises:
            InvalidDateRange: If valid_from is in the past or valid_until <= valid_from
            OverlappingPeriods: If the overlap is anything but the open-ended predecessor case
        """
        today = self.today()
        self._validate_dates(new_period.valid_from, new_period.valid_until, today)

        with self.repository.transaction():
            adjustments = self._resolve_overlaps(new_period.valid_from, new_period.valid_until)
            committed = self.repository.add(
                new_period.model_copy(update={"id": None, "is_active": False})
            )
            self._apply_active_flags(today)
            committed = self.get(committed.id)

        logger.info(
            f"cap period {committed.id} added: {committed.limit} from "
            f"{committed.valid_from} until {_iso(committed.valid_until) or 'open-ended'}"
        )
        return InsertResult(committed=committed, auto_adjusted=adjustments)

    def update(
        self,
        period_id: int,
        limit: Optional[Any] = None,
        valid_from: Optional[date] = None,
        valid_until: Any = _UNSET,
        description: Optional[str] = None,
    ) -> UpdateResult:
        """Edit a period. Pass valid_until=None to make it open-ended.

        Raises:
            PeriodNotFound: If no such period
            PeriodNotEditable: If the period is in effect or past and limit/dates change
            InvalidDateRange, OverlappingPeriods: As for insert
        """
        today = self.today()

        with self.repository.transaction():
            current = self.get(period_id)
            changes: Dict[str, Any] = {}
            if limit is not None and to_decimal(limit) != current.limit:
                changes["limit"] = to_decimal(limit)
            if valid_from is not None and valid_from != current.valid_from:
                changes["valid_from"] = valid_from
            if valid_until is not _UNSET and valid_until != current.valid_until:
                changes["valid_until"] = valid_until

            if changes and current.valid_from <= today:
                raise PeriodNotEditable(period_id, current.valid_from, sorted(changes))

            adjustments: List[Adjustment] = []
            if "valid_from" in changes or "valid_until" in changes:
                new_from = changes.get("valid_from", current.valid_from)
                new_until = changes.get("valid_until", current.valid_until)
                self._validate_dates(new_from, new_until, today)
                adjustments = self._resolve_overlaps(new_from, new_until, exclude_id=period_id)

            if description is not None:
                changes["description"] = description

            updated = CapPeriod(**{**current.model_dump(), **changes})
            self.repository.save(updated)
            self._apply_active_flags(today)
            updated = self.get(period_id)

        logger.info(f"cap period {period_id} updated: {sorted(changes)}")
        return UpdateResult(updated=updated, auto_adjusted=adjustments)

    def delete(self, period_id: int) -> DeleteResult:
        """Delete a future period and close the gap it leaves.

        Raises:
            PeriodNotFound: If no such period
            PeriodNotDeletable: If valid_from <= today
        """
        today = self.today()

        with self.repository.transaction():
            target = self.get(period_id)
            if target.valid_from <= today:
                raise PeriodNotDeletable(period_id, target.valid_from, today)

            others = [p for p in self.list_periods() if p.id != period_id]
            earlier = [p for p in others if p.valid_from < target.valid_from]
            later = [p for p in others if p.valid_from > target.valid_from]

            adjustments: List[Adjustment] = []
            if earlier:
                predecessor = earlier[-1]
                new_until = date_before(later[0].valid_from) if later else None
                adjustment = self._set_valid_until(predecessor, new_until)
                if adjustment:
                    adjustments.append(adjustment)

            self.repository.remove(period_id)
            self._apply_active_flags(today)

        logger.info(f"cap period {period_id} deleted, {len(adjustments)} adjustment(s)")
        return DeleteResult(deleted=target, auto_adjusted=adjustments)

    def recalculate_all(self) -> List[Adjustment]:
        """Force every period to end the day before the next one starts.

        The last period becomes open-ended. Running this twice makes no
        further changes.

        Raises:
            OverlappingPeriods: If two periods share a start date
        """
        with self.repository.transaction():
            periods = self.list_periods()
            for current, following in zip(periods, periods[1:]):
                if current.valid_from == following.valid_from:
                    raise OverlappingPeriods(
                        current.valid_from, current.valid_until, [current, following],
                        message=f"Cap periods {current.id} and {following.id} both start "
                                f"{current.valid_from.isoformat()}",
                    )

            adjustments = []
            for i, period in enumerate(periods):
                following = periods[i + 1] if i + 1 < len(periods) else None
                new_until = date_before(following.valid_from) if following else None
                adjustment = self._set_valid_until(period, new_until)
                if adjustment:
                    adjustments.append(adjustment)

            self._apply_active_flags(self.today())

        logger.info(f"cap periods recalculated: {len(adjustments)} adjustment(s)")
        return adjustments

    def set_active_flags(self, today: Optional[date] = None) -> Optional[CapPeriod]:
        """Mark the period containing ``today`` active and every other inactive."""
        with self.repository.transaction():
            return self._apply_active_flags(today or self.today())

    # --- internals ---

    def _validate_dates(self, valid_from: date, valid_until: Optional[date], today: date) -> None:
        if valid_from < today:
            raise InvalidDateRange(
                f"valid_from {valid_from.isoformat()} is in the past (today is {today.isoformat()})",
                field="valid_from", value=valid_from,
            )
        if valid_until is not None and valid_until <= valid_from:
            raise InvalidDateRange(
                f"valid_until {valid_until.isoformat()} must be after valid_from {valid_from.isoformat()}",
                field="valid_until", value=valid_until,
            )

    def _resolve_overlaps(
        self,
        valid_from: date,
        valid_until: Optional[date],
        exclude_id: Optional[int] = None,
    ) -> List[Adjustment]:
        conflicts = self.check_overlaps(valid_from, valid_until, exclude_id=exclude_id)
        if not conflicts:
            return []

        only = conflicts[0]
        if len(conflicts) == 1 and only.is_open_ended and only.valid_from < valid_from:
            adjustment = self._set_valid_until(only, date_before(valid_from))
            logger.info(
                f"cap period {only.id} truncated to {adjustment.new_valid_until} "
                f"for new period starting {valid_from}"
            )
            return [adjustment]

        raise OverlappingPeriods(valid_from, valid_until, conflicts)

    def _set_valid_until(self, period: CapPeriod, new_until: Optional[date]) -> Optional[Adjustment]:
        old_until = period.valid_until
        if old_until == new_until:
            return None
        period.valid_until = new_until
        self.repository.save(period)
        return Adjustment(
            period_id=period.id,
            valid_from=period.valid_from,
            old_valid_until=old_until,
            new_valid_until=new_until,
        )

    def _apply_active_flags(self, today: date) -> Optional[CapPeriod]:
        active = self.find_applicable(today)
        for period in self.list_periods():
            should_be_active = active is not None and period.id == active.id
            if period.is_active != should_be_active:
                period.is_active = should_be_active
                self.repository.save(period)
        return active


def cap_limit_for(index: CapIndex, day: date, default_limit: Decimal) -> Decimal:
    """Limit in effect on ``day``, or ``default_limit`` when no period covers it."""
    period = index.find(day)
    return period.limit if period else default_limit
