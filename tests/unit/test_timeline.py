"""Unit tests for the earnings cap timeline.

The timeline is given a fixed "today" so that past/future rules are
deterministic.
"""

import itertools
from datetime import date
from decimal import Decimal

import pytest

from minijobcalc.sdk import (
    CapPeriod,
    CapTimeline,
    InMemoryCapPeriodRepository,
    InvalidDateRange,
    OverlappingPeriods,
    PeriodNotDeletable,
    PeriodNotEditable,
    PeriodNotFound,
)

TODAY = date(2025, 1, 10)


def make_period(limit, valid_from, valid_until=None, **kwargs):
    return CapPeriod(
        limit=limit,
        valid_from=valid_from,
        valid_until=valid_until,
        created_by=kwargs.pop("created_by", "admin"),
        **kwargs,
    )


def make_timeline(*periods, today=TODAY):
    repo = InMemoryCapPeriodRepository(list(periods))
    return CapTimeline(repo, today=lambda: today)


def assert_no_overlaps(timeline):
    periods = timeline.list_periods()
    for a, b in itertools.combinations(periods, 2):
        assert not a.overlaps(b.valid_from, b.valid_until), f"{a.id} overlaps {b.id}"
    open_ended = [p for p in periods if p.is_open_ended]
    assert len(open_ended) <= 1
    if open_ended:
        assert open_ended[0].id == periods[-1].id


class TestInsert:
    """Tests for CapTimeline.insert."""

    def test_insert_into_empty_timeline(self):
        timeline = make_timeline()

        result = timeline.insert(make_period("538.00", date(2025, 2, 1)))

        assert result.committed.id == 1
        assert result.committed.limit == Decimal("538.00")
        assert result.auto_adjusted == []
        assert len(timeline.list_periods()) == 1

    def test_insert_truncates_open_ended_predecessor(self):
        timeline = make_timeline(make_period("520.00", date(2024, 1, 1)))

        result = timeline.insert(make_period("538.00", date(2025, 3, 1)))

        assert len(result.auto_adjusted) == 1
        adjustment = result.auto_adjusted[0]
        assert adjustment.period_id == 1
        assert adjustment.old_valid_until is None
        assert adjustment.new_valid_until == date(2025, 2, 28)
        assert timeline.get(1).valid_until == date(2025, 2, 28)
        assert_no_overlaps(timeline)

    def test_insert_starting_today_is_allowed(self):
        timeline = make_timeline(make_period("520.00", date(2024, 1, 1)))

        result = timeline.insert(make_period("538.00", TODAY))

        assert result.committed.is_active
        assert not timeline.get(1).is_active
        assert timeline.get(1).valid_until == date(2025, 1, 9)

    def test_insert_in_past_rejected(self):
        timeline = make_timeline()

        with pytest.raises(InvalidDateRange) as exc_info:
            timeline.insert(make_period("538.00", date(2025, 1, 9)))

        assert exc_info.value.field == "valid_from"
        assert exc_info.value.code == "INVALID_DATE_RANGE"

    def test_insert_single_day_rejected(self):
        """Admin input requires valid_until strictly after valid_from."""
        timeline = make_timeline()

        with pytest.raises(InvalidDateRange) as exc_info:
            timeline.insert(make_period("538.00", date(2025, 3, 1), date(2025, 3, 1)))

        assert exc_info.value.field == "valid_until"

    def test_insert_overlapping_closed_period_rejected_without_mutation(self):
        timeline = make_timeline(
            make_period("520.00", date(2025, 2, 1), date(2025, 6, 30)),
            make_period("538.00", date(2025, 7, 1)),
        )
        before = timeline.list_periods()

        with pytest.raises(OverlappingPeriods) as exc_info:
            timeline.insert(make_period("550.00", date(2025, 5, 1), date(2025, 5, 31)))

        assert exc_info.value.conflict_ids == [1]
        assert timeline.list_periods() == before

    def test_insert_spanning_two_periods_rejected(self):
        timeline = make_timeline(
            make_period("520.00", date(2025, 2, 1), date(2025, 6, 30)),
            make_period("538.00", date(2025, 7, 1)),
        )
        before = timeline.list_periods()

        with pytest.raises(OverlappingPeriods) as exc_info:
            timeline.insert(make_period("550.00", date(2025, 6, 1)))

        assert exc_info.value.conflict_ids == [1, 2]
        assert exc_info.value.to_dict()["code"] == "OVERLAPPING_PERIODS"
        assert timeline.list_periods() == before

    def test_insert_same_start_as_open_ended_rejected(self):
        timeline = make_timeline(make_period("538.00", date(2025, 3, 1)))

        with pytest.raises(OverlappingPeriods):
            timeline.insert(make_period("550.00", date(2025, 3, 1)))

        assert timeline.get(1).valid_until is None

    def test_insert_before_open_ended_successor_rejected(self):
        """An open-ended period starting later is not truncated."""
        timeline = make_timeline(make_period("538.00", date(2025, 6, 1)))

        with pytest.raises(OverlappingPeriods):
            timeline.insert(make_period("550.00", date(2025, 3, 1)))

    def test_insert_into_gap(self):
        timeline = make_timeline(
            make_period("520.00", date(2025, 2, 1), date(2025, 2, 28)),
            make_period("538.00", date(2025, 6, 1)),
        )

        result = timeline.insert(make_period("530.00", date(2025, 3, 1), date(2025, 5, 31)))

        assert result.auto_adjusted == []
        assert_no_overlaps(timeline)


class TestDelete:
    """Tests for CapTimeline.delete."""

    def test_delete_middle_bridges_predecessor_to_successor(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2025, 2, 28)),
            make_period("530.00", date(2025, 3, 1), date(2025, 5, 31)),
            make_period("538.00", date(2025, 6, 1)),
        )

        result = timeline.delete(2)

        assert result.deleted.id == 2
        assert len(result.auto_adjusted) == 1
        assert result.auto_adjusted[0].period_id == 1
        assert result.auto_adjusted[0].new_valid_until == date(2025, 5, 31)
        assert [p.id for p in timeline.list_periods()] == [1, 3]
        assert_no_overlaps(timeline)

    def test_delete_last_makes_predecessor_open_ended(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2025, 2, 28)),
            make_period("538.00", date(2025, 3, 1)),
        )

        result = timeline.delete(2)

        assert result.auto_adjusted[0].old_valid_until == date(2025, 2, 28)
        assert result.auto_adjusted[0].new_valid_until is None
        assert timeline.get(1).is_open_ended

    def test_delete_without_predecessor(self):
        timeline = make_timeline(make_period("538.00", date(2025, 3, 1)))

        result = timeline.delete(1)

        assert result.auto_adjusted == []
        assert timeline.list_periods() == []

    def test_delete_active_period_rejected(self):
        timeline = make_timeline(make_period("538.00", date(2024, 1, 1)))

        with pytest.raises(PeriodNotDeletable) as exc_info:
            timeline.delete(1)

        assert exc_info.value.code == "CANNOT_DELETE_ACTIVE"
        assert len(timeline.list_periods()) == 1

    def test_delete_period_starting_today_rejected(self):
        timeline = make_timeline(make_period("538.00", TODAY))

        with pytest.raises(PeriodNotDeletable):
            timeline.delete(1)

    def test_delete_unknown_period(self):
        timeline = make_timeline()

        with pytest.raises(PeriodNotFound):
            timeline.delete(99)


class TestUpdate:
    """Tests for CapTimeline.update."""

    def test_active_period_description_can_change(self):
        timeline = make_timeline(make_period("538.00", date(2024, 1, 1)))

        result = timeline.update(1, description="Mindestlohn 2024")

        assert result.updated.description == "Mindestlohn 2024"

    def test_active_period_limit_cannot_change(self):
        timeline = make_timeline(make_period("538.00", date(2024, 1, 1)))

        with pytest.raises(PeriodNotEditable) as exc_info:
            timeline.update(1, limit="556.00")

        assert exc_info.value.fields == ["limit"]
        assert timeline.get(1).limit == Decimal("538.00")

    def test_unchanged_values_are_not_edits(self):
        timeline = make_timeline(make_period("538.00", date(2024, 1, 1)))

        result = timeline.update(1, limit="538.00", valid_until=None)

        assert result.updated.limit == Decimal("538.00")

    def test_future_period_limit_can_change(self):
        timeline = make_timeline(make_period("538.00", date(2025, 3, 1)))

        result = timeline.update(1, limit="556")

        assert result.updated.limit == Decimal("556.00")

    def test_future_period_move_into_neighbour_rejected(self):
        timeline = make_timeline(
            make_period("520.00", date(2025, 2, 1), date(2025, 5, 31)),
            make_period("538.00", date(2025, 6, 1)),
        )

        with pytest.raises(OverlappingPeriods):
            timeline.update(2, valid_from=date(2025, 5, 1))

        assert timeline.get(2).valid_from == date(2025, 6, 1)

    def test_future_period_made_open_ended_rejected_when_successor_exists(self):
        timeline = make_timeline(
            make_period("520.00", date(2025, 2, 1), date(2025, 5, 31)),
            make_period("538.00", date(2025, 6, 1)),
        )

        with pytest.raises(OverlappingPeriods):
            timeline.update(1, valid_until=None)


class TestRecalculate:
    """Tests for CapTimeline.recalculate_all."""

    def test_closes_gaps_and_reopens_last(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 6, 30)),
            make_period("530.00", date(2024, 9, 1), date(2024, 12, 31)),
            make_period("538.00", date(2025, 1, 1), date(2025, 12, 31)),
        )

        adjustments = timeline.recalculate_all()

        assert [a.period_id for a in adjustments] == [1, 3]
        assert timeline.get(1).valid_until == date(2024, 8, 31)
        assert timeline.get(3).valid_until is None
        assert_no_overlaps(timeline)

    def test_idempotent(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 6, 30)),
            make_period("538.00", date(2024, 9, 1), date(2024, 12, 31)),
        )

        timeline.recalculate_all()
        first = timeline.list_periods()

        assert timeline.recalculate_all() == []
        assert timeline.list_periods() == first

    def test_duplicate_start_dates_rejected(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 6, 30)),
            make_period("538.00", date(2024, 1, 1), date(2024, 12, 31)),
        )

        with pytest.raises(OverlappingPeriods):
            timeline.recalculate_all()

        assert timeline.get(1).valid_until == date(2024, 6, 30)


class TestQueries:
    """Tests for lookups and active flags."""

    def test_find_applicable(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 12, 31)),
            make_period("538.00", date(2025, 1, 1)),
        )

        assert timeline.find_applicable(date(2024, 12, 31)).id == 1
        assert timeline.find_applicable(date(2025, 1, 1)).id == 2
        assert timeline.find_applicable(date(2023, 12, 31)) is None

    def test_find_applicable_detects_overlap(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 12, 31)),
            make_period("538.00", date(2024, 6, 1)),
        )

        with pytest.raises(OverlappingPeriods):
            timeline.find_applicable(date(2024, 7, 1))

    def test_set_active_flags(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 12, 31), is_active=True),
            make_period("538.00", date(2025, 1, 1)),
        )

        active = timeline.set_active_flags()

        assert active.id == 2
        assert [p.is_active for p in timeline.list_periods()] == [False, True]

    def test_statistics(self):
        timeline = make_timeline(
            make_period("520.00", date(2024, 1, 1), date(2024, 12, 31)),
            make_period("538.00", date(2025, 1, 1)),
        )
        timeline.set_active_flags()

        stats = timeline.statistics()

        assert stats["total"] == 2
        assert stats["active"] == 1
        assert stats["current_limit"] == "538.00"


class TestNoOverlapSequences:
    """Any sequence of accepted operations leaves a consistent timeline."""

    def test_insert_delete_sequence(self):
        timeline = make_timeline(make_period("520.00", date(2024, 1, 1)))

        timeline.insert(make_period("530.00", date(2025, 3, 1)))
        assert_no_overlaps(timeline)
        timeline.insert(make_period("538.00", date(2025, 7, 1)))
        assert_no_overlaps(timeline)
        with pytest.raises(OverlappingPeriods):
            timeline.insert(make_period("545.00", date(2025, 5, 1), date(2025, 8, 31)))
        assert_no_overlaps(timeline)
        timeline.delete(2)
        assert_no_overlaps(timeline)
        timeline.recalculate_all()
        assert_no_overlaps(timeline)

        periods = timeline.list_periods()
        assert [p.id for p in periods] == [1, 3]
        assert periods[0].valid_until == date(2025, 6, 30)
        assert periods[1].is_open_ended
