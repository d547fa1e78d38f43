"""Carry-forward ledger.

SDK layer - pure computation over injected repositories, no direct I/O.

A Minijob pays at most the monthly cap per billing period. Earnings above
the cap are not lost; they carry into the next period:

    actual    = period_total + carry_in
    paid      = min(actual, cap)
    carry_out = max(0, actual - cap)

carry_in for a period is found by replaying every period from the one
containing the employee's first entry. Each replayed period uses the cap in
effect on its end date, so a cap change part-way through history changes
how much carry accumulates. All arithmetic is on integer cents.

Replay is the correctness baseline. Per-period entry totals can be memoized
in a PeriodTotalsMemo; the memo must be invalidated from the date of any
entry that changes. Cap changes need no invalidation because caps are
resolved fresh on every replay.
"""

import bisect
import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .config import DEFAULT_MONTHLY_LIMIT
from .dates import today_utc
from .employees import EmployeeProvider
from .errors import InvalidCap
from .money import Amount, from_cents, to_cents, to_decimal
from .periods import (
    WorkPeriod,
    add_months,
    first_period_month,
    iter_periods,
    period_for_month,
    previous_month,
)
from .schemas import BillingPeriodConfig
from .store import EntryRepository
from .timeline import CapIndex, CapTimeline, cap_limit_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodTotals:
    """Aggregated entries of one billing period."""

    earnings_cents: int
    minutes: int
    entry_count: int


@dataclass
class PeriodSummary:
    """Outcome of one billing period."""

    period: WorkPeriod
    entry_count: int
    total_minutes: int
    total_earnings: Decimal
    carry_in: Decimal
    actual_earnings: Decimal
    paid: Decimal
    carry_out: Decimal
    limit: Decimal
    exceeds_limit: bool

    @property
    def total_hours(self) -> Decimal:
        return (Decimal(self.total_minutes) / 60).quantize(Decimal("0.01"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "entry_count": self.entry_count,
            "total_hours": str(self.total_hours),
            "total_earnings": str(self.total_earnings),
            "carry_in": str(self.carry_in),
            "actual_earnings": str(self.actual_earnings),
            "paid": str(self.paid),
            "carry_out": str(self.carry_out),
            "limit": str(self.limit),
            "exceeds_limit": self.exceeds_limit,
        }


def carry_forward(total_cents: int, carry_in_cents: int, cap_cents: int) -> Tuple[int, int, int]:
    """Apply the cap to one period.

    Returns:
        Tuple of (actual, paid, carry_out) in cents
    """
    actual = total_cents + carry_in_cents
    paid = min(actual, cap_cents)
    carry_out = max(0, actual - cap_cents)
    return actual, paid, carry_out


def parse_cap(cap: Amount) -> Decimal:
    """Validate a cap override.

    Raises:
        InvalidCap: If ``cap`` is not a number or not above zero after rounding
    """
    try:
        value = to_decimal(cap)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidCap(cap)
    if not value.is_finite() or value <= 0:
        raise InvalidCap(cap)
    return value


class PeriodTotalsMemo:
    """Per-employee cache of period totals, indexed by period start date."""

    def __init__(self):
        self._lock = threading.Lock()
        self._starts: Dict[str, List[date]] = {}
        self._items: Dict[str, Dict[date, Tuple[date, PeriodTotals]]] = {}

    def get(self, employee_id: str, period: WorkPeriod) -> Optional[PeriodTotals]:
        with self._lock:
            item = self._items.get(employee_id, {}).get(period.start_date)
            if item is None or item[0] != period.end_date:
                return None
            return item[1]

    def put(self, employee_id: str, period: WorkPeriod, totals: PeriodTotals) -> None:
        with self._lock:
            items = self._items.setdefault(employee_id, {})
            starts = self._starts.setdefault(employee_id, [])
            if period.start_date not in items:
                bisect.insort(starts, period.start_date)
            items[period.start_date] = (period.end_date, totals)

    def invalidate(self, employee_id: str, from_date: Optional[date] = None) -> int:
        """Drop the period containing ``from_date`` and every later one.

        Returns:
            Number of cached periods removed
        """
        with self._lock:
            items = self._items.get(employee_id)
            if not items:
                return 0
            starts = self._starts[employee_id]
            if from_date is None:
                removed = len(starts)
                del self._items[employee_id]
                del self._starts[employee_id]
                return removed

            pos = bisect.bisect_right(starts, from_date)
            # Earlier-starting periods may still reach from_date.
            while pos > 0 and items[starts[pos - 1]][0] >= from_date:
                pos -= 1
            for start in starts[pos:]:
                del items[start]
            removed = len(starts) - pos
            del starts[pos:]
            return removed

    def __len__(self) -> int:
        with self._lock:
            return sum(len(items) for items in self._items.values())


class CarryForwardLedger:
    """Computes carry-in, paid amount and carry-out per billing period."""

    def __init__(
        self,
        entries: EntryRepository,
        employees: EmployeeProvider,
        timeline: Optional[CapTimeline] = None,
        default_limit: Optional[Amount] = None,
        memo: Optional[PeriodTotalsMemo] = None,
    ):
        self.entries = entries
        self.employees = employees
        self.timeline = timeline
        self.default_limit = Decimal(str(default_limit)) if default_limit is not None else DEFAULT_MONTHLY_LIMIT
        self.memo = memo

    # --- lookups ---

    def billing_config(self, employee_id: str) -> BillingPeriodConfig:
        return self.employees.get_employee(employee_id).billing

    def period_for(self, employee_id: str, year: int, month: int) -> WorkPeriod:
        """The employee's billing period for a reference month."""
        return period_for_month(self.billing_config(employee_id), year, month)

    def period_totals(self, employee_id: str, period: WorkPeriod) -> PeriodTotals:
        if self.memo is not None:
            cached = self.memo.get(employee_id, period)
            if cached is not None:
                return cached

        entries = self.entries.list_entries(employee_id, period.start_date, period.end_date)
        totals = PeriodTotals(
            earnings_cents=sum(to_cents(e.earnings) for e in entries),
            minutes=sum(e.work_minutes or 0 for e in entries),
            entry_count=len(entries),
        )
        if self.memo is not None:
            self.memo.put(employee_id, period, totals)
        return totals

    def _cap_index(self) -> CapIndex:
        return self.timeline.index() if self.timeline is not None else CapIndex([])

    def cap_for(self, period: WorkPeriod, index: Optional[CapIndex] = None) -> Decimal:
        """Cap applying to a period: the one in effect on its end date."""
        if index is None:
            index = self._cap_index()
        return cap_limit_for(index, period.end_date, self.default_limit)

    def invalidate(self, employee_id: str, from_date: Optional[date] = None) -> None:
        """Forget memoized totals after an entry on/after ``from_date`` changed."""
        if self.memo is not None:
            removed = self.memo.invalidate(employee_id, from_date)
            logger.debug(f"memo invalidated for {employee_id} from {from_date}: {removed} period(s)")

    # --- replay ---

    def _summarize(
        self,
        employee_id: str,
        period: WorkPeriod,
        carry_in_cents: int,
        cap: Decimal,
    ) -> Tuple[PeriodSummary, int]:
        totals = self.period_totals(employee_id, period)
        cap_cents = to_cents(cap)
        actual, paid, carry_out = carry_forward(totals.earnings_cents, carry_in_cents, cap_cents)
        summary = PeriodSummary(
            period=period,
            entry_count=totals.entry_count,
            total_minutes=totals.minutes,
            total_earnings=from_cents(totals.earnings_cents),
            carry_in=from_cents(carry_in_cents),
            actual_earnings=from_cents(actual),
            paid=from_cents(paid),
            carry_out=from_cents(carry_out),
            limit=from_cents(cap_cents),
            exceeds_limit=actual > cap_cents,
        )
        return summary, carry_out

    def _replay(
        self,
        employee_id: str,
        target_period: WorkPeriod,
        cap: Optional[Decimal],
        index: CapIndex,
    ) -> Iterator[PeriodSummary]:
        """Yield a summary for every period before ``target_period``.

        Only the target's reference month is used; periods are rebuilt from
        the employee's own billing configuration.
        """
        first = self.entries.first_entry_date(employee_id)
        if first is None:
            return

        config = self.billing_config(employee_id)
        start_year, start_month = first_period_month(config, first)
        end_year, end_month = previous_month(target_period.reference_year, target_period.reference_month)

        carry_cents = 0
        for period in iter_periods(config, start_year, start_month, end_year, end_month):
            period_cap = cap if cap is not None else cap_limit_for(
                index, period.end_date, self.default_limit
            )
            summary, carry_cents = self._summarize(employee_id, period, carry_cents, period_cap)
            logger.debug(
                f"carry replay {employee_id} {period.key}: earned={summary.total_earnings} "
                f"cap={summary.limit} carry={summary.carry_out}"
            )
            yield summary

    def compute_carry_in(
        self,
        employee_id: str,
        target_period: WorkPeriod,
        cap: Optional[Amount] = None,
    ) -> Decimal:
        """Excess earnings carried into ``target_period``.

        Args:
            employee_id: Employee whose history is replayed
            target_period: Period to compute carry-in for (excluded from replay)
            cap: Apply this cap to every replayed period instead of the timeline

        Returns:
            Non-negative Decimal

        Raises:
            InvalidCap: If ``cap`` is given but not a positive amount
        """
        if cap is not None:
            cap = parse_cap(cap)
        carry = Decimal("0.00")
        for summary in self._replay(employee_id, target_period, cap, self._cap_index()):
            carry = summary.carry_out
        return carry

    def compute_period_summary(
        self,
        employee_id: str,
        target_period: WorkPeriod,
        cap: Optional[Amount] = None,
    ) -> PeriodSummary:
        """Paid amount and carry-out for ``target_period``."""
        return self.history(employee_id, target_period, cap)[-1]

    def monthly_summary(self, employee_id: str, year: int, month: int) -> PeriodSummary:
        return self.compute_period_summary(employee_id, self.period_for(employee_id, year, month))

    def history(
        self,
        employee_id: str,
        through_period: WorkPeriod,
        cap: Optional[Amount] = None,
    ) -> List[PeriodSummary]:
        """Summaries from the first entry's period through ``through_period``.

        The last element is always ``through_period``, even without entries.
        """
        if cap is not None:
            cap = parse_cap(cap)
        index = self._cap_index()
        summaries = list(self._replay(employee_id, through_period, cap, index))
        carry_cents = to_cents(summaries[-1].carry_out) if summaries else 0
        target_cap = cap if cap is not None else cap_limit_for(
            index, through_period.end_date, self.default_limit
        )
        target, _ = self._summarize(employee_id, through_period, carry_cents, target_cap)
        summaries.append(target)
        return summaries

    def multi_period_stats(
        self,
        employee_id: str,
        months_back: int = 12,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Summaries for the last ``months_back`` reference months, oldest first."""
        if today is None:
            today = today_utc()
        config = self.billing_config(employee_id)

        current = period_for_month(config, today.year, today.month)
        by_key = {s.period.key: s for s in self.history(employee_id, current)}

        index = self._cap_index()
        summaries = []
        for offset in range(-(months_back - 1), 1):
            year, month = add_months(today.year, today.month, offset)
            period = period_for_month(config, year, month)
            summary = by_key.get(period.key)
            if summary is None:
                # Before the first entry: nothing earned, nothing carried.
                summary, _ = self._summarize(employee_id, period, 0, self.cap_for(period, index))
            summaries.append(summary)

        total_minutes = sum(s.total_minutes for s in summaries)
        total_hours = (Decimal(total_minutes) / 60).quantize(Decimal("0.01"))
        return {
            "periods": [s.to_dict() for s in summaries],
            "totals": {
                "total_hours": str(total_hours),
                "total_earnings": str(sum((s.total_earnings for s in summaries), Decimal("0.00"))),
                "total_paid": str(sum((s.paid for s in summaries), Decimal("0.00"))),
                "average_monthly_hours": str(
                    (total_hours / len(summaries)).quantize(Decimal("0.01")) if summaries else Decimal("0.00")
                ),
            },
        }
