"""Typed exceptions for the minijob engine.

Every error carries a machine-readable ``code`` and the structured data a
caller needs to present a corrective action (conflicting period IDs, the
date boundary that was violated). Catch by type, not by message.

    MinijobError (base)
    |
    +-- InvalidDateRange
    +-- OverlappingPeriods
    +-- PeriodNotDeletable
    +-- PeriodNotEditable
    +-- PeriodNotFound
    +-- EmployeeNotFound
    +-- DuplicateEntry
    +-- InvalidCap
    +-- InvalidProfile
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence


class MinijobError(Exception):
    """Base class for all engine errors."""

    code: str = "MINIJOB_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for CLI/MCP responses."""
        return {"code": self.code, "error": str(self)}


class InvalidDateRange(MinijobError):
    """Malformed or logically impossible date input."""

    code = "INVALID_DATE_RANGE"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["field"] = self.field
        result["value"] = self.value.isoformat() if isinstance(self.value, date) else self.value
        return result


class OverlappingPeriods(MinijobError):
    """A cap period conflicts with existing periods and cannot be auto-resolved."""

    code = "OVERLAPPING_PERIODS"

    def __init__(
        self,
        valid_from: date,
        valid_until: Optional[date],
        conflicts: Sequence[Any],
        message: Optional[str] = None,
    ):
        self.valid_from = valid_from
        self.valid_until = valid_until
        self.conflicts = list(conflicts)
        until = valid_until.isoformat() if valid_until else "open-ended"
        if message is None:
            message = (
                f"Period {valid_from.isoformat()} - {until} overlaps "
                f"{len(self.conflicts)} existing period(s): {self.conflict_ids}"
            )
        super().__init__(message)

    @property
    def conflict_ids(self) -> List[Any]:
        return [getattr(c, "id", None) for c in self.conflicts]

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["conflicts"] = [
            {
                "id": c.id,
                "valid_from": c.valid_from.isoformat(),
                "valid_until": c.valid_until.isoformat() if c.valid_until else None,
            }
            for c in self.conflicts
        ]
        return result


class PeriodNotDeletable(MinijobError):
    """Attempt to delete a cap period that is active or in the past."""

    code = "CANNOT_DELETE_ACTIVE"

    def __init__(self, period_id: Any, valid_from: date, today: date):
        self.period_id = period_id
        self.valid_from = valid_from
        self.today = today
        super().__init__(
            f"Cap period {period_id} starts {valid_from.isoformat()} (today is "
            f"{today.isoformat()}); only future periods can be deleted"
        )


class PeriodNotEditable(MinijobError):
    """Attempt to change limit or dates of a cap period already in effect."""

    code = "CANNOT_EDIT_ACTIVE"

    def __init__(self, period_id: Any, valid_from: date, fields: Sequence[str]):
        self.period_id = period_id
        self.valid_from = valid_from
        self.fields = list(fields)
        super().__init__(
            f"Cap period {period_id} is active or past (starts {valid_from.isoformat()}); "
            f"cannot change: {', '.join(self.fields)}"
        )


class PeriodNotFound(MinijobError):
    """No cap period with the requested ID."""

    code = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: Any):
        self.period_id = period_id
        super().__init__(f"Cap period not found: {period_id}")


class EmployeeNotFound(MinijobError):
    """No employee configuration with the requested ID."""

    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class DuplicateEntry(MinijobError):
    """An entry for this employee and date already exists."""

    code = "ENTRY_EXISTS"

    def __init__(self, employee_id: str, entry_date: date):
        self.employee_id = employee_id
        self.entry_date = entry_date
        super().__init__(
            f"Entry already exists for {employee_id} on {entry_date.isoformat()}"
        )


class InvalidCap(MinijobError):
    """A cap amount that is not a positive decimal."""

    code = "INVALID_CAP"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid cap '{value}': must be a positive amount")


class InvalidProfile(MinijobError):
    """profile.yaml holds employee configuration that does not validate."""

    code = "INVALID_PROFILE"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(
            f"Invalid employee configuration in profile.yaml: {'; '.join(self.errors)}. "
            f"Check with: minijob-calc profile validate"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "errors": self.errors}
