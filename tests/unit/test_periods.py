"""Unit tests for billing period calculation."""

from datetime import date, timedelta

import pytest

from minijobcalc.sdk import BillingPeriodConfig
from minijobcalc.sdk.periods import (
    add_months,
    billing_period_preview,
    compute_period,
    first_period_month,
    generate_billing_periods,
    iter_periods,
    period_containing,
    period_for_month,
    validate_billing_period,
    yearly_billing_periods,
)


class TestComputePeriodSameMonth:
    """Periods where start_day <= end_day stay inside the reference month."""

    def test_calendar_month(self):
        period = compute_period(1, 31, date(2025, 3, 15))

        assert period.start_date == date(2025, 3, 1)
        assert period.end_date == date(2025, 3, 31)
        assert not period.crosses_month
        assert period.label == "März 2025"

    def test_end_day_clamped_in_february(self):
        """31 in February 2025 becomes the 28th."""
        period = compute_period(1, 31, date(2025, 2, 15))

        assert period.end_date == date(2025, 2, 28)
        assert period.day_count == 28

    def test_end_day_clamped_in_leap_february(self):
        period = compute_period(1, 31, date(2024, 2, 15))

        assert period.end_date == date(2024, 2, 29)
        assert period.day_count == 29

    def test_end_day_clamped_in_thirty_day_month(self):
        period = compute_period(1, 31, date(2025, 4, 15))

        assert period.end_date == date(2025, 4, 30)

    def test_partial_month(self):
        period = compute_period(5, 20, date(2025, 6, 1))

        assert period.start_date == date(2025, 6, 5)
        assert period.end_date == date(2025, 6, 20)
        assert period.day_count == 16

    def test_single_day_period(self):
        period = compute_period(10, 10, date(2025, 6, 15))

        assert period.start_date == period.end_date == date(2025, 6, 10)
        assert period.day_count == 1


class TestComputePeriodCrossMonth:
    """Periods where start_day > end_day run into the following month."""

    def test_22_to_21_labelled_by_end_month(self):
        period = compute_period(22, 21, date(2025, 7, 15))

        assert period.start_date == date(2025, 7, 22)
        assert period.end_date == date(2025, 8, 21)
        assert period.crosses_month
        assert period.label == "August 2025"
        assert period.key == "2025-07"

    def test_december_rolls_into_january(self):
        period = compute_period(16, 15, date(2024, 12, 15))

        assert period.start_date == date(2024, 12, 16)
        assert period.end_date == date(2025, 1, 15)
        assert period.label == "Januar 2025"

    def test_both_boundaries_clamped(self):
        """31-30 for January 2025: starts Jan 31, ends Feb 28."""
        period = compute_period(31, 30, date(2025, 1, 15))

        assert period.start_date == date(2025, 1, 31)
        assert period.end_date == date(2025, 2, 28)

    def test_start_clamped_in_short_month(self):
        """30-29 in February 2025: the January period already ends Feb 28."""
        period = compute_period(30, 29, date(2025, 2, 15))

        assert period.start_date == date(2025, 3, 1)
        assert period.end_date == date(2025, 3, 29)

    def test_start_clamped_in_leap_february(self):
        period = compute_period(30, 29, date(2024, 2, 15))

        assert period.start_date == date(2024, 3, 1)
        assert period.end_date == date(2024, 3, 29)

    def test_clamped_start_moves_past_previous_end(self):
        """31-30: January ends Feb 28, so February starts Mar 1."""
        config = BillingPeriodConfig(start_day=31, end_day=30)
        january, february, march, april = iter_periods(config, 2025, 1, 2025, 4)

        assert (january.start_date, january.end_date) == (date(2025, 1, 31), date(2025, 2, 28))
        assert (february.start_date, february.end_date) == (date(2025, 3, 1), date(2025, 3, 30))
        assert (march.start_date, march.end_date) == (date(2025, 3, 31), date(2025, 4, 30))
        assert (april.start_date, april.end_date) == (date(2025, 5, 1), date(2025, 5, 30))
        assert april.label == "Mai 2025"

    def test_consecutive_periods_are_contiguous(self):
        config = BillingPeriodConfig(start_day=22, end_day=21)
        periods = list(iter_periods(config, 2024, 11, 2025, 3))

        assert len(periods) == 5
        for current, following in zip(periods, periods[1:]):
            assert (following.start_date - current.end_date).days == 1

    @pytest.mark.parametrize("start_day", range(1, 32))
    def test_every_config_yields_disjoint_periods(self, start_day):
        """Across 30 months, including a leap February, no day is in two periods."""
        for end_day in range(1, 32):
            config = BillingPeriodConfig(start_day=start_day, end_day=end_day)
            periods = list(iter_periods(config, 2023, 11, 2026, 4))

            for current, following in zip(periods, periods[1:]):
                assert current.start_date <= current.end_date, (start_day, end_day, current)
                assert following.start_date > current.end_date, (start_day, end_day, following)
                if start_day == end_day + 1 or (start_day == 1 and end_day == 31):
                    assert (following.start_date - current.end_date).days == 1, (
                        start_day, end_day, following,
                    )

    def test_every_day_in_one_period_for_contiguous_configs(self):
        config = BillingPeriodConfig(start_day=31, end_day=30)
        periods = list(iter_periods(config, 2024, 1, 2025, 12))

        day = periods[0].start_date
        while day <= periods[-1].end_date:
            owners = [p for p in periods if p.contains(day)]
            assert len(owners) == 1, day
            assert period_containing(config, day) == owners[0]
            day += timedelta(days=1)


class TestPeriodLookup:
    """Tests for finding the period a date belongs to."""

    def test_first_period_month_for_cross_month_config(self):
        """10 July under 22-21 belongs to the June reference month."""
        config = BillingPeriodConfig(start_day=22, end_day=21)

        assert first_period_month(config, date(2025, 7, 10)) == (2025, 6)
        assert first_period_month(config, date(2025, 7, 25)) == (2025, 7)

    def test_first_period_month_for_calendar_month(self):
        config = BillingPeriodConfig()

        assert first_period_month(config, date(2025, 1, 1)) == (2025, 1)

    def test_period_containing_cross_month(self):
        config = BillingPeriodConfig(start_day=22, end_day=21)

        period = period_containing(config, date(2025, 8, 3))

        assert period.start_date == date(2025, 7, 22)
        assert period.end_date == date(2025, 8, 21)

    def test_period_containing_gap_day_is_none(self):
        config = BillingPeriodConfig(start_day=5, end_day=20)

        assert period_containing(config, date(2025, 6, 25)) is None

    def test_add_months_across_years(self):
        assert add_months(2025, 1, -1) == (2024, 12)
        assert add_months(2025, 11, 3) == (2026, 2)
        assert add_months(2025, 6, -18) == (2023, 12)


class TestPeriodLists:
    """Tests for yearly and selector period lists."""

    def test_yearly_billing_periods(self):
        config = BillingPeriodConfig(start_day=22, end_day=21)

        periods = yearly_billing_periods(config, 2025)

        assert len(periods) == 12
        assert periods[0]["id"] == "2025-01"
        assert periods[-1]["start_date"] == "2025-12-22"
        assert periods[-1]["end_date"] == "2026-01-21"

    def test_generate_billing_periods_marks_current(self):
        config = BillingPeriodConfig()

        periods = generate_billing_periods(config, date(2025, 5, 10), months_back=2, months_forward=1)

        assert [p["value"] for p in periods] == ["2025-03", "2025-04", "2025-05", "2025-06"]
        assert [p["is_current"] for p in periods] == [False, False, True, False]

    def test_preview_covers_month_lengths(self):
        preview = billing_period_preview(1, 31)

        assert [p["day_count"] for p in preview] == [31, 29, 30, 31, 28]


class TestValidateBillingPeriod:
    """Tests for billing day validation."""

    def test_valid_days(self):
        assert validate_billing_period(1, 28) == ([], [])

    @pytest.mark.parametrize("start_day,end_day", [(0, 10), (1, 32), ("1", 10), (None, 5)])
    def test_invalid_days(self, start_day, end_day):
        errors, _ = validate_billing_period(start_day, end_day)

        assert errors

    def test_day_above_28_warns(self):
        errors, warnings = validate_billing_period(30, 29)

        assert errors == []
        assert len(warnings) == 1

    def test_config_warning_matches(self):
        assert BillingPeriodConfig(start_day=1, end_day=31).warning is not None
        assert BillingPeriodConfig(start_day=22, end_day=21).warning is None

    def test_period_for_month_uses_config(self):
        config = BillingPeriodConfig(start_day=22, end_day=21)

        period = period_for_month(config, 2025, 7)

        assert period.start_date == date(2025, 7, 22)
