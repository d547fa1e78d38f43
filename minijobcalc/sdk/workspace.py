"""Wire the engine to the configured data directory and profile."""

from datetime import date
from typing import Callable, Optional, Tuple

from .config import get_data_path, get_default_monthly_limit, load_profile
from .employees import ProfileEmployeeProvider
from .ledger import CarryForwardLedger, PeriodTotalsMemo
from .store import JsonEntryRepository, open_cap_repository, open_entry_repository
from .timeline import CapTimeline


def open_workspace(
    today: Optional[Callable[[], date]] = None,
) -> Tuple[CapTimeline, CarryForwardLedger, JsonEntryRepository]:
    """Build timeline, ledger and entry store from settings and profile.yaml.

    Args:
        today: Optional callable returning the current date (tests)

    Returns:
        Tuple of (timeline, ledger, entry_repository)
    """
    profile = load_profile(require_exists=False)
    data_dir = get_data_path()

    timeline = CapTimeline(open_cap_repository(data_dir), today=today)
    entries = open_entry_repository(data_dir)
    ledger = CarryForwardLedger(
        entries=entries,
        employees=ProfileEmployeeProvider(profile),
        timeline=timeline,
        default_limit=get_default_monthly_limit(profile),
        memo=PeriodTotalsMemo(),
    )
    return timeline, ledger, entries
