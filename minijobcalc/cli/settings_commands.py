"""Settings CLI commands for Minijob Calc.

Manages settings.json - data directory and active profile path.
"""

from pathlib import Path

import click

from minijobcalc.sdk import (
    get_data_path,
    get_settings_path,
    load_settings,
    update_settings,
)


@click.group()
def settings():
    """Manage settings (settings.json).

    \b
    Available settings:
    - data_dir: where cap periods and entries are stored
    - profile: path to profile.yaml (set via 'profile use')
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and the effective data directory."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    click.echo()
    click.echo("Effective paths:")
    suffix = "" if current.get("data_dir") else " (default)"
    click.echo(f"  data_dir: {get_data_path()}{suffix}")


@settings.command("data-dir")
@click.argument("path", required=False, type=click.Path())
@click.option("--clear", is_flag=True, help="Clear custom data_dir, revert to default")
def settings_data_dir(path, clear):
    """Set, show or clear the data directory.

    PATH is where minijob-calc keeps cap_periods.json and entries/.

    \b
    Examples:
        minijob-calc settings data-dir ~/minijob-data
        minijob-calc settings data-dir --clear
    """
    if clear:
        if "data_dir" not in load_settings():
            click.echo("data_dir was not set.")
            return
        update_settings(data_dir=None)
        click.echo("Cleared data_dir setting.")
        click.echo(f"Data directory is now: {get_data_path()} (default)")
        return

    if not path:
        configured = load_settings().get("data_dir")
        if configured:
            click.echo(f"Current data_dir: {configured}")
        else:
            click.echo(f"No custom data_dir set. Using default: {get_data_path()}")
        return

    data_path = Path(path).expanduser().resolve()
    if data_path.exists() and not data_path.is_dir():
        raise click.ClickException(f"Path exists but is not a directory: {data_path}")
    try:
        data_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Cannot create directory: {data_path}\n{e}")

    settings_file = update_settings(data_dir=str(data_path))
    click.echo(f"Set data_dir: {data_path}")
    click.echo(f"Saved to: {settings_file}")
