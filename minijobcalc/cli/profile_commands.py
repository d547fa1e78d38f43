"""Profile CLI commands for Minijob Calc.

Manages profile.yaml - employees, billing days, default cap and hourly rate.
"""

from pathlib import Path

import click
import yaml

from minijobcalc.sdk import (
    ProfileNotFoundError,
    get_profile_path,
    get_profile_value,
    load_settings,
    set_profile_value,
    update_settings,
    validate_profile,
)


def _validate_profile_file(path):
    """Load and validate a profile file.

    Returns:
        Tuple of (profile_dict, validation_result)

    Raises:
        click.ClickException: If the file is missing, not YAML, or invalid
    """
    path = Path(path)

    if path.suffix not in (".yaml", ".yml"):
        raise click.ClickException(f"Profile must be a YAML file: {path}")

    try:
        with open(path, "r") as f:
            profile_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid YAML in {path}: {e}")

    if not isinstance(profile_data, dict) or not profile_data:
        raise click.ClickException(f"Profile must be a non-empty YAML dictionary: {path}")

    validation = validate_profile(profile=profile_data)
    if validation.errors:
        validation.location_path = path
        _display_validation(validation, show_contents=False, raise_on_errors=True)

    return profile_data, validation


def _display_validation(validation, show_contents=True, raise_on_errors=False):
    """Display validation results consistently across commands.

    Returns:
        True if valid (no errors), False if has errors
    """
    if validation.errors:
        click.echo()
        click.echo("Validation Errors (profile is invalid):")
        for error in validation.errors:
            click.echo(f"  ! {error}")
        click.echo()
        click.echo(f"Profile path: {validation.location_path}")

        if raise_on_errors:
            raise click.ClickException("Profile has validation errors. Fix them before continuing.")

    employees = validation.profile.get("employees") or {}
    if isinstance(employees, dict) and employees:
        click.echo()
        click.echo(f"Employees ({len(employees)}):")
        for employee_id, data in employees.items():
            billing = (data or {}).get("billing") or {}
            start_day = billing.get("start_day", 1)
            end_day = billing.get("end_day", 31)
            click.echo(f"  {employee_id}: billing {start_day}. - {end_day}.")

    if validation.warnings:
        click.echo()
        click.echo("Warnings:")
        for warning in validation.warnings:
            click.echo(f"  - {warning}")

    if show_contents:
        click.echo()
        click.echo("---")
        click.echo(yaml.dump(validation.profile, default_flow_style=False, sort_keys=False))

    return validation.is_valid


@click.group()
def profile():
    """Manage your profile configuration (profile.yaml).

    \b
    Profile contains:
    - employees: name, billing start/end day and hourly rate
    - minijob: default_monthly_limit, default_hourly_rate
    """
    pass


@profile.command("show")
def profile_show():
    """Show the active profile, its location, and validation status."""
    profile_path = get_profile_path(require_exists=False)

    if load_settings().get("profile"):
        location_label = "custom"
    elif profile_path.exists():
        location_label = "central (default)"
    else:
        location_label = "not created"

    click.echo(f"Profile: {profile_path}")
    click.echo(f"Location: {location_label}")

    if not profile_path.exists():
        click.echo()
        click.echo("Profile does not exist yet. Create with:")
        click.echo("  minijob-calc profile set employees.anna.billing.start_day 22")
        return

    try:
        _display_validation(validate_profile(), show_contents=True)
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))


@profile.command("validate")
def profile_validate():
    """Validate the active profile. Exits non-zero on errors."""
    try:
        validation = validate_profile()
    except ProfileNotFoundError as e:
        raise click.ClickException(str(e))

    click.echo(f"Profile: {validation.location_path}")
    _display_validation(validation, show_contents=False, raise_on_errors=True)
    click.echo()
    click.echo("Profile is valid.")


@profile.command("get")
@click.argument("key")
def profile_get(key):
    """Get a profile value by dot-notation KEY, e.g. 'minijob.default_monthly_limit'."""
    value = get_profile_value(key)
    if value is None:
        raise click.ClickException(f"Key '{key}' not found in profile")
    if isinstance(value, (dict, list)):
        raise click.ClickException(
            f"Key '{key}' is a complex value. Use 'minijob-calc profile show' to view."
        )
    click.echo(value)


@profile.command("set")
@click.argument("key")
@click.argument("value")
def profile_set(key, value):
    """Set a profile value by dot-notation KEY.

    \b
    Examples:
        minijob-calc profile set employees.anna.billing.start_day 22
        minijob-calc profile set minijob.default_monthly_limit 556.00
    """
    parsed_value = value
    try:
        parsed_value = float(value) if "." in value else int(value)
    except ValueError:
        pass

    profile_file = set_profile_value(key, parsed_value)
    click.echo(f"Set {key} = {parsed_value}")
    click.echo(f"Saved to: {profile_file}")

    _display_validation(validate_profile(), show_contents=False)


@profile.command("use")
@click.argument("profile_path", type=click.Path(exists=True))
def profile_use(profile_path):
    """Set the active profile to an external file.

    The profile is validated before being set as active.
    """
    path = Path(profile_path).expanduser().resolve()
    _, validation = _validate_profile_file(path)

    settings_file = update_settings(profile=str(path))
    click.echo(f"Active profile set to: {path}")
    click.echo(f"Saved to: {settings_file}")

    _display_validation(validation, show_contents=False)
