"""
Storage for cap periods and work entries.

The engine never talks to storage directly. It depends on the repository
protocols below, and the CLI wires in the JSON-file implementations. Tests
and embedding applications can use the in-memory ones.

Atomicity
---------

Cap timeline changes touch more than one record (the new or deleted period
plus a neighbour). ``CapPeriodRepository.transaction()`` makes them one unit:

    with repo.transaction():
        repo.save(previous)
        repo.add(new_period)

- A re-entrant lock serializes writers; nested transactions join the outer one.
- State is snapshotted on entry and restored if the block raises.
- The JSON repository writes its file only when the outermost block commits,
  via a temp file and ``os.replace`` so readers never see a half-written file.

Returned records are copies. Mutating one has no effect until it is passed
back through ``save``.

Layout under the data directory:

    cap_periods.json              {"next_id": 3, "periods": [...]}
    entries/<employee_id>.json    [{"employee_id": ..., "entry_date": ...}, ...]
"""

import contextlib
import copy
import json
import logging
import os
import tempfile
import threading
from datetime import date
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol

from .errors import DuplicateEntry, PeriodNotFound
from .schemas import CapPeriod, Entry

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

CAP_PERIODS_FILENAME = "cap_periods.json"
ENTRIES_DIRNAME = "entries"


# =============================================================================
# PROTOCOLS
# =============================================================================

class CapPeriodRepository(Protocol):
    """Durable storage for CapPeriod records."""

    def list_all(self) -> List[CapPeriod]: ...

    def get(self, period_id: int) -> Optional[CapPeriod]: ...

    def add(self, period: CapPeriod) -> CapPeriod: ...

    def save(self, period: CapPeriod) -> CapPeriod: ...

    def remove(self, period_id: int) -> None: ...

    def transaction(self) -> contextlib.AbstractContextManager: ...


class EntryRepository(Protocol):
    """Read access to work entries (plus the writes the CLI needs)."""

    def list_entries(self, employee_id: str, start: date, end: date) -> List[Entry]: ...

    def first_entry_date(self, employee_id: str) -> Optional[date]: ...

    def add_entry(self, entry: Entry) -> Entry: ...

    def delete_entry(self, employee_id: str, entry_date: date) -> bool: ...


# =============================================================================
# CAP PERIODS
# =============================================================================

class InMemoryCapPeriodRepository:
    """Cap periods held in a dict, with snapshot/rollback transactions."""

    def __init__(self, periods: Optional[List[CapPeriod]] = None):
        self._lock = threading.RLock()
        self._depth = 0
        self._periods: Dict[int, CapPeriod] = {}
        self._next_id = 1
        for period in periods or []:
            self.add(period)

    # --- reads ---

    def list_all(self) -> List[CapPeriod]:
        with self._lock:
            periods = [p.model_copy(deep=True) for p in self._periods.values()]
        return sorted(periods, key=lambda p: (p.valid_from, p.id))

    def get(self, period_id: int) -> Optional[CapPeriod]:
        with self._lock:
            period = self._periods.get(period_id)
            return period.model_copy(deep=True) if period else None

    # --- writes ---

    def add(self, period: CapPeriod) -> CapPeriod:
        with self.transaction():
            stored = period.model_copy(deep=True)
            if stored.id is None:
                stored.id = self._next_id
            self._next_id = max(self._next_id, stored.id + 1)
            self._periods[stored.id] = stored
            return stored.model_copy(deep=True)

    def save(self, period: CapPeriod) -> CapPeriod:
        with self.transaction():
            if period.id not in self._periods:
                raise PeriodNotFound(period.id)
            self._periods[period.id] = period.model_copy(deep=True)
            return period

    def remove(self, period_id: int) -> None:
        with self.transaction():
            if period_id not in self._periods:
                raise PeriodNotFound(period_id)
            del self._periods[period_id]

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of writes as one unit; roll back if it raises."""
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = (copy.deepcopy(self._periods), self._next_id)
            self._depth = 1
            try:
                yield
                self._commit()
            except BaseException:
                self._periods, self._next_id = snapshot
                logger.debug("cap period transaction rolled back")
                raise
            finally:
                self._depth = 0

    def _commit(self) -> None:
        """Hook for durable subclasses; in-memory state is already current."""


class JsonCapPeriodRepository(InMemoryCapPeriodRepository):
    """Cap periods persisted to a single JSON file."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, "r") as f:
            raw = json.load(f)
        for item in raw.get("periods", []):
            period = CapPeriod.model_validate(item)
            self._periods[period.id] = period
        self._next_id = max(
            [raw.get("next_id", 1)] + [pid + 1 for pid in self._periods]
        )
        logger.debug(f"loaded {len(self._periods)} cap period(s) from {self.path}")

    def _commit(self) -> None:
        payload = {
            "next_id": self._next_id,
            "periods": [
                p.to_dict() for p in sorted(self._periods.values(), key=lambda p: p.valid_from)
            ],
        }
        _atomic_write_json(self.path, payload)


# =============================================================================
# ENTRIES
# =============================================================================

class InMemoryEntryRepository:
    """Entries keyed by employee and date (one entry per day)."""

    def __init__(self, entries: Optional[List[Entry]] = None):
        self._lock = threading.RLock()
        self._entries: Dict[str, Dict[date, Entry]] = {}
        for entry in entries or []:
            self.add_entry(entry)

    def _employee_entries(self, employee_id: str) -> Dict[date, Entry]:
        return self._entries.setdefault(employee_id, {})

    def list_entries(self, employee_id: str, start: date, end: date) -> List[Entry]:
        with self._lock:
            entries = self._employee_entries(employee_id)
            return [
                entries[day].model_copy()
                for day in sorted(entries)
                if start <= day <= end
            ]

    def first_entry_date(self, employee_id: str) -> Optional[date]:
        with self._lock:
            entries = self._employee_entries(employee_id)
            return min(entries) if entries else None

    def add_entry(self, entry: Entry) -> Entry:
        with self._lock:
            entries = self._employee_entries(entry.employee_id)
            if entry.entry_date in entries:
                raise DuplicateEntry(entry.employee_id, entry.entry_date)
            entries[entry.entry_date] = entry.model_copy()
            self._persist(entry.employee_id)
            return entry

    def delete_entry(self, employee_id: str, entry_date: date) -> bool:
        with self._lock:
            entries = self._employee_entries(employee_id)
            if entry_date not in entries:
                return False
            del entries[entry_date]
            self._persist(employee_id)
            return True

    def _persist(self, employee_id: str) -> None:
        """Hook for durable subclasses."""


class JsonEntryRepository(InMemoryEntryRepository):
    """Entries persisted as one JSON file per employee."""

    def __init__(self, entries_dir: Path):
        super().__init__()
        self.entries_dir = Path(entries_dir)

    def _path_for(self, employee_id: str) -> Path:
        return self.entries_dir / f"{employee_id}.json"

    def _employee_entries(self, employee_id: str) -> Dict[date, Entry]:
        if employee_id not in self._entries:
            loaded: Dict[date, Entry] = {}
            path = self._path_for(employee_id)
            if path.exists():
                with open(path, "r") as f:
                    for item in json.load(f):
                        entry = Entry.model_validate(item)
                        loaded[entry.entry_date] = entry
            self._entries[employee_id] = loaded
        return self._entries[employee_id]

    def _persist(self, employee_id: str) -> None:
        entries = self._entries.get(employee_id, {})
        payload = [entries[day].model_dump(mode="json") for day in sorted(entries)]
        _atomic_write_json(self._path_for(employee_id), payload)


# =============================================================================
# HELPERS
# =============================================================================

def _atomic_write_json(path: Path, payload) -> None:
    """Write JSON to a temp file in the same directory, then rename over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def open_cap_repository(data_dir: Path) -> JsonCapPeriodRepository:
    """Open the cap period store in a data directory."""
    return JsonCapPeriodRepository(Path(data_dir) / CAP_PERIODS_FILENAME)


def open_entry_repository(data_dir: Path) -> JsonEntryRepository:
    """Open the entry store in a data directory."""
    return JsonEntryRepository(Path(data_dir) / ENTRIES_DIRNAME)
