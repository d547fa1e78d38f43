"""Configuration for Minijob Calc.

Two files live in the config directory ($MINIJOB_CALC_CONFIG_PATH, else
$XDG_CONFIG_HOME/minijob-calc):

    settings.json   this machine only: data_dir, profile (external path)
    profile.yaml    employees and minijob defaults

profile.yaml example:

    employees:
      anna:
        billing: {start_day: 22, end_day: 21}
        hourly_rate: 12.82
    minijob:
      default_monthly_limit: 538.00
      default_hourly_rate: 12.82

Cap periods and entries are stored under the data directory: settings.json
"data_dir", else $XDG_DATA_HOME/minijob-calc.
"""

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, List, Optional

import yaml


APP_NAME = "minijob-calc"

# Used when profile.yaml has no minijob section.
DEFAULT_MONTHLY_LIMIT = Decimal("538.00")
DEFAULT_HOURLY_RATE = Decimal("12.00")

MONTHLY_LIMIT_KEY = "minijob.default_monthly_limit"
HOURLY_RATE_KEY = "minijob.default_hourly_rate"


class ConfigNotFoundError(Exception):
    """Raised when configuration is missing or unusable."""
    pass


class ProfileNotFoundError(Exception):
    """Raised when no profile is found."""
    pass


def _xdg_dir(variable: str, fallback: Path) -> Path:
    return Path(os.environ.get(variable) or fallback) / APP_NAME


def get_config_dir() -> Path:
    env_path = os.environ.get("MINIJOB_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    return _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config")


def get_settings_path() -> Path:
    """Path to settings.json (may not exist yet)."""
    return get_config_dir() / "settings.json"


# =============================================================================
# settings.json
# =============================================================================

def load_settings() -> dict:
    """Contents of settings.json, or {} when it does not exist."""
    path = get_settings_path()
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return json.load(f)


def update_settings(**changes: Any) -> Path:
    """Write the given keys to settings.json. A value of None removes the key.

    Returns:
        Path to settings.json
    """
    settings = load_settings()
    for key, value in changes.items():
        if value is None:
            settings.pop(key, None)
        else:
            settings[key] = value

    path = get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(settings, f, indent=2)
    return path


def get_data_path() -> Path:
    """Data directory for cap_periods.json and entries/ (created on demand)."""
    custom = load_settings().get("data_dir")
    if custom:
        data_path = Path(custom).expanduser()
    else:
        data_path = _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")
    data_path.mkdir(parents=True, exist_ok=True)
    return data_path


# =============================================================================
# profile.yaml
# =============================================================================

def get_profile_path(require_exists: bool = False) -> Path:
    """Active profile: settings.json "profile" if set, else the config directory's.

    Raises:
        ProfileNotFoundError: If require_exists is set and the file is missing
    """
    custom = load_settings().get("profile")
    path = Path(custom) if custom else get_config_dir() / "profile.yaml"

    if require_exists and not path.exists():
        origin = "configured in settings.json" if custom else "default location"
        raise ProfileNotFoundError(
            f"No profile at {path} ({origin}).\n\n"
            f"Create it with: minijob-calc profile set employees.<id>.billing.start_day 1\n"
            f"or point to one: minijob-calc profile use /path/to/profile.yaml"
        )
    return path


def load_profile(require_exists: bool = True) -> dict:
    """Parsed profile.yaml ({} when missing and not required).

    Raises:
        ProfileNotFoundError: If require_exists is set and the file is missing
    """
    path = get_profile_path(require_exists=require_exists)
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def get_profile_value(key: str, default: Any = None, profile: Optional[dict] = None) -> Any:
    """Look up a dot-notation key such as "employees.anna.hourly_rate"."""
    value = load_profile(require_exists=False) if profile is None else profile
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return default
        value = value[part]
    return value


def set_profile_value(key: str, value: Any) -> Path:
    """Set a dot-notation key in profile.yaml, creating sections as needed.

    Returns:
        Path to the written profile
    """
    profile = load_profile(require_exists=False)
    *sections, leaf = key.split(".")
    node = profile
    for section in sections:
        if not isinstance(node.get(section), dict):
            node[section] = {}
        node = node[section]
    node[leaf] = value

    path = get_profile_path(require_exists=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(profile, f, default_flow_style=False, sort_keys=False)
    return path


def profile_amount(key: str, fallback: Decimal, profile: Optional[dict] = None) -> Decimal:
    """A positive amount from the profile, or ``fallback`` when unset.

    Raises:
        ConfigNotFoundError: If the value is not a positive number
    """
    raw = get_profile_value(key, None, profile=profile)
    if raw is None:
        return fallback
    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        raise ConfigNotFoundError(f"Profile value {key} is not a number: {raw!r}")
    if not amount.is_finite() or amount <= 0:
        raise ConfigNotFoundError(f"Profile value {key} must be positive, got {raw!r}")
    return amount


def get_default_monthly_limit(profile: Optional[dict] = None) -> Decimal:
    """Cap for periods that no cap period covers."""
    return profile_amount(MONTHLY_LIMIT_KEY, DEFAULT_MONTHLY_LIMIT, profile)


def get_default_hourly_rate(profile: Optional[dict] = None) -> Decimal:
    """Rate for employees without their own hourly_rate."""
    return profile_amount(HOURLY_RATE_KEY, DEFAULT_HOURLY_RATE, profile)


# =============================================================================
# Profile validation
# =============================================================================

@dataclass
class ProfileValidationResult:
    """Errors and warnings found in one profile."""

    location_path: Path
    profile: dict
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_profile(profile: Optional[dict] = None) -> ProfileValidationResult:
    """Check the employees and minijob sections.

    Args:
        profile: Profile to check (default: the active profile.yaml)

    Raises:
        ProfileNotFoundError: If no profile is given and none exists
    """
    from .employees import validate_employees

    location_path = get_profile_path(require_exists=False)
    if profile is None:
        profile = load_profile(require_exists=True)

    errors, warnings = validate_employees(profile)
    for key in (MONTHLY_LIMIT_KEY, HOURLY_RATE_KEY):
        try:
            profile_amount(key, DEFAULT_MONTHLY_LIMIT, profile)
        except ConfigNotFoundError as e:
            errors.append(str(e))

    return ProfileValidationResult(
        location_path=location_path,
        profile=profile,
        errors=errors,
        warnings=warnings,
    )
