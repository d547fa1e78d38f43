"""Minijob Calc SDK - billing periods, cap timeline and carry-forward ledger."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    update_settings,
    get_profile_path,
    load_profile,
    get_profile_value,
    set_profile_value,
    get_data_path,
    get_default_monthly_limit,
    get_default_hourly_rate,
    validate_profile,
    ProfileValidationResult,
    ConfigNotFoundError,
    ProfileNotFoundError,
)

from .errors import (
    MinijobError,
    InvalidDateRange,
    OverlappingPeriods,
    PeriodNotDeletable,
    PeriodNotEditable,
    PeriodNotFound,
    EmployeeNotFound,
    DuplicateEntry,
    InvalidCap,
    InvalidProfile,
)

from .schemas import (
    CapPeriod,
    BillingPeriodConfig,
    Employee,
    Entry,
)

from .periods import (
    WorkPeriod,
    compute_period,
    period_for_month,
    period_containing,
    yearly_billing_periods,
    generate_billing_periods,
    validate_billing_period,
    billing_period_preview,
)

from .timeline import (
    CapTimeline,
    Adjustment,
    InsertResult,
    UpdateResult,
    DeleteResult,
)

from .ledger import (
    CarryForwardLedger,
    PeriodSummary,
    PeriodTotalsMemo,
    carry_forward,
)

from .store import (
    InMemoryCapPeriodRepository,
    JsonCapPeriodRepository,
    InMemoryEntryRepository,
    JsonEntryRepository,
    open_cap_repository,
    open_entry_repository,
)

from .employees import (
    StaticEmployeeProvider,
    ProfileEmployeeProvider,
)

from .workspace import open_workspace

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "update_settings",
    "get_profile_path",
    "load_profile",
    "get_profile_value",
    "set_profile_value",
    "get_data_path",
    "get_default_monthly_limit",
    "get_default_hourly_rate",
    "validate_profile",
    "ProfileValidationResult",
    "ConfigNotFoundError",
    "ProfileNotFoundError",
    # Errors
    "MinijobError",
    "InvalidDateRange",
    "OverlappingPeriods",
    "PeriodNotDeletable",
    "PeriodNotEditable",
    "PeriodNotFound",
    "EmployeeNotFound",
    "DuplicateEntry",
    "InvalidCap",
    "InvalidProfile",
    # Schemas
    "CapPeriod",
    "BillingPeriodConfig",
    "Employee",
    "Entry",
    # Periods
    "WorkPeriod",
    "compute_period",
    "period_for_month",
    "period_containing",
    "yearly_billing_periods",
    "generate_billing_periods",
    "validate_billing_period",
    "billing_period_preview",
    # Timeline
    "CapTimeline",
    "Adjustment",
    "InsertResult",
    "UpdateResult",
    "DeleteResult",
    # Ledger
    "CarryForwardLedger",
    "PeriodSummary",
    "PeriodTotalsMemo",
    "carry_forward",
    # Storage
    "InMemoryCapPeriodRepository",
    "JsonCapPeriodRepository",
    "InMemoryEntryRepository",
    "JsonEntryRepository",
    "open_cap_repository",
    "open_entry_repository",
    # Employees
    "StaticEmployeeProvider",
    "ProfileEmployeeProvider",
    # Wiring
    "open_workspace",
]

