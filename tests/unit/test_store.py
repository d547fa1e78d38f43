"""Unit tests for cap period and entry repositories."""

import json
from datetime import date
from decimal import Decimal

import pytest

from minijobcalc.sdk import (
    CapPeriod,
    DuplicateEntry,
    Entry,
    InMemoryCapPeriodRepository,
    JsonCapPeriodRepository,
    JsonEntryRepository,
    PeriodNotFound,
)


def make_period(limit, valid_from, valid_until=None):
    return CapPeriod(limit=limit, valid_from=valid_from, valid_until=valid_until, created_by="admin")


class TestInMemoryCapPeriodRepository:
    """Tests for the in-memory repository and its transactions."""

    def test_add_assigns_ids(self):
        repo = InMemoryCapPeriodRepository()

        first = repo.add(make_period("520.00", date(2024, 1, 1)))
        second = repo.add(make_period("538.00", date(2025, 1, 1)))

        assert (first.id, second.id) == (1, 2)

    def test_returned_records_are_copies(self):
        repo = InMemoryCapPeriodRepository([make_period("520.00", date(2024, 1, 1))])

        period = repo.get(1)
        period.valid_until = date(2024, 6, 30)

        assert repo.get(1).valid_until is None

    def test_transaction_rolls_back_on_error(self):
        repo = InMemoryCapPeriodRepository([make_period("520.00", date(2024, 1, 1))])

        with pytest.raises(RuntimeError):
            with repo.transaction():
                period = repo.get(1)
                period.valid_until = date(2024, 12, 31)
                repo.save(period)
                repo.add(make_period("538.00", date(2025, 1, 1)))
                raise RuntimeError("boom")

        assert [p.id for p in repo.list_all()] == [1]
        assert repo.get(1).valid_until is None
        assert repo.add(make_period("538.00", date(2025, 1, 1))).id == 2

    def test_nested_transaction_joins_outer(self):
        repo = InMemoryCapPeriodRepository()

        with pytest.raises(RuntimeError):
            with repo.transaction():
                with repo.transaction():
                    repo.add(make_period("538.00", date(2025, 1, 1)))
                raise RuntimeError("boom")

        assert repo.list_all() == []

    def test_save_unknown_period(self):
        repo = InMemoryCapPeriodRepository()

        with pytest.raises(PeriodNotFound):
            repo.save(make_period("538.00", date(2025, 1, 1)).model_copy(update={"id": 7}))


class TestJsonCapPeriodRepository:
    """Tests for the JSON file repository."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "cap_periods.json"
        repo = JsonCapPeriodRepository(path)
        repo.add(make_period("538.00", date(2025, 1, 1)))

        reopened = JsonCapPeriodRepository(path)

        periods = reopened.list_all()
        assert len(periods) == 1
        assert periods[0].limit == Decimal("538.00")
        assert reopened.add(make_period("556.00", date(2026, 1, 1))).id == 2

    def test_file_written_only_on_commit(self, tmp_path):
        path = tmp_path / "cap_periods.json"
        repo = JsonCapPeriodRepository(path)

        with pytest.raises(RuntimeError):
            with repo.transaction():
                repo.add(make_period("538.00", date(2025, 1, 1)))
                raise RuntimeError("boom")

        assert not path.exists()

    def test_file_layout(self, tmp_path):
        path = tmp_path / "cap_periods.json"
        JsonCapPeriodRepository(path).add(make_period("538.00", date(2025, 1, 1)))

        raw = json.loads(path.read_text())

        assert raw["next_id"] == 2
        assert raw["periods"][0]["limit"] == "538.00"
        assert raw["periods"][0]["valid_until"] is None


class TestJsonEntryRepository:
    """Tests for the JSON entry repository."""

    def test_round_trip_and_range_query(self, tmp_path):
        repo = JsonEntryRepository(tmp_path / "entries")
        for day, amount in [(date(2025, 1, 5), "50.00"), (date(2025, 2, 5), "60.00")]:
            repo.add_entry(Entry(employee_id="anna", entry_date=day, earnings=amount))

        reopened = JsonEntryRepository(tmp_path / "entries")

        assert reopened.first_entry_date("anna") == date(2025, 1, 5)
        january = reopened.list_entries("anna", date(2025, 1, 1), date(2025, 1, 31))
        assert [e.earnings for e in january] == [Decimal("50.00")]

    def test_duplicate_day_rejected(self, tmp_path):
        repo = JsonEntryRepository(tmp_path / "entries")
        repo.add_entry(Entry(employee_id="anna", entry_date=date(2025, 1, 5), earnings="50.00"))

        with pytest.raises(DuplicateEntry):
            repo.add_entry(Entry(employee_id="anna", entry_date=date(2025, 1, 5), earnings="10.00"))

    def test_delete(self, tmp_path):
        repo = JsonEntryRepository(tmp_path / "entries")
        repo.add_entry(Entry(employee_id="anna", entry_date=date(2025, 1, 5), earnings="50.00"))

        assert repo.delete_entry("anna", date(2025, 1, 5))
        assert not repo.delete_entry("anna", date(2025, 1, 5))
        assert JsonEntryRepository(tmp_path / "entries").first_entry_date("anna") is None
