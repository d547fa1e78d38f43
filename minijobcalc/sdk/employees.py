"""Employee configuration providers.

Employees are defined in profile.yaml:

    employees:
      anna:
        name: Anna Schmidt
        billing:
          start_day: 22
          end_day: 21
        hourly_rate: 12.82

An employee without a billing section bills by calendar month (1-31).
"""

from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .config import get_default_hourly_rate, load_profile
from .errors import EmployeeNotFound, InvalidProfile
from .schemas import Employee


class EmployeeProvider(Protocol):
    """Supplies each employee's identity and billing configuration."""

    def get_employee(self, employee_id: str) -> Employee: ...

    def list_employees(self) -> List[Employee]: ...


class StaticEmployeeProvider:
    """Employees supplied up front (tests, embedding applications)."""

    def __init__(self, employees: Optional[List[Employee]] = None):
        self._employees = {e.id: e for e in employees or []}

    def get_employee(self, employee_id: str) -> Employee:
        try:
            return self._employees[employee_id]
        except KeyError:
            raise EmployeeNotFound(employee_id)

    def list_employees(self) -> List[Employee]:
        return [self._employees[k] for k in sorted(self._employees)]


def employee_from_profile(employee_id: str, data: Optional[Dict[str, Any]], default_rate=None) -> Employee:
    """Build an Employee from a profile.yaml entry.

    Raises:
        pydantic.ValidationError: If the entry has invalid or unknown fields
    """
    data = dict(data or {})
    if default_rate is not None:
        data.setdefault("hourly_rate", default_rate)
    return Employee(id=employee_id, **data)


class ProfileEmployeeProvider(StaticEmployeeProvider):
    """Employees loaded from the ``employees`` section of profile.yaml."""

    def __init__(self, profile: Optional[dict] = None):
        if profile is None:
            profile = load_profile(require_exists=False)
        default_rate = get_default_hourly_rate(profile)
        errors, _ = validate_employees(profile)
        if errors:
            raise InvalidProfile(errors)

        employees = []
        for employee_id, data in (profile.get("employees") or {}).items():
            try:
                employees.append(employee_from_profile(str(employee_id), data, default_rate))
            except ValidationError as e:
                raise InvalidProfile(_error_messages(employee_id, e)) from e
        super().__init__(employees)


def _error_messages(employee_id, error: ValidationError) -> List[str]:
    messages = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        messages.append(f"employees.{employee_id}.{loc}: {err['msg']}")
    return messages


def validate_employees(profile: dict) -> tuple[list, list]:
    """Validate the employees section of a profile.

    Returns:
        Tuple of (errors, warnings) lists
    """
    errors = []
    warnings = []

    employees = profile.get("employees")
    if employees is None:
        warnings.append("No employees configured (profile has no 'employees' section)")
        return errors, warnings
    if not isinstance(employees, dict):
        errors.append(f"'employees' must be a mapping, got {type(employees).__name__}")
        return errors, warnings

    for employee_id, data in employees.items():
        if data is not None and not isinstance(data, dict):
            errors.append(f"employees.{employee_id}: must be a mapping")
            continue
        try:
            employee = employee_from_profile(str(employee_id), data)
        except ValidationError as e:
            errors.extend(_error_messages(employee_id, e))
            continue
        if employee.billing.warning:
            warnings.append(f"employees.{employee_id}.billing: {employee.billing.warning}")

    return errors, warnings
