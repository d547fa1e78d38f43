"""Cap timeline CLI commands.

Manages the earnings cap periods stored in the data directory.
"""

import json

import click

from minijobcalc.sdk import (
    CapPeriod,
    InvalidDateRange,
    MinijobError,
    OverlappingPeriods,
)
from minijobcalc.sdk.dates import format_date_for_display, parse_date
from minijobcalc.sdk.money import format_eur

from .periods_commands import _workspace


def _parse_option_date(value, field, option):
    try:
        return parse_date(value, field=field)
    except InvalidDateRange as e:
        raise click.BadParameter(str(e), param_hint=option)


def _timeline():
    timeline, _, _ = _workspace()
    return timeline


def _echo_period(period, prefix="  "):
    marker = click.style(" (active)", fg="green") if period.is_active else ""
    until = format_date_for_display(period.valid_until)
    click.echo(
        f"{prefix}#{period.id}  {format_eur(period.limit):>12}  "
        f"{format_date_for_display(period.valid_from)} - {until}{marker}"
    )
    if period.description:
        click.echo(f"{prefix}     {period.description}")


def _echo_adjustments(adjustments):
    if not adjustments:
        return
    click.echo()
    click.secho("Adjusted automatically:", fg="yellow")
    for adj in adjustments:
        click.echo(
            f"  #{adj.period_id}: valid until "
            f"{format_date_for_display(adj.old_valid_until)} -> "
            f"{format_date_for_display(adj.new_valid_until)}"
        )


def _raise_click(error: MinijobError):
    message = str(error)
    if isinstance(error, OverlappingPeriods):
        lines = [message, "", "Conflicting periods:"]
        for c in error.conflicts:
            lines.append(
                f"  #{c.id}: {format_date_for_display(c.valid_from)} - "
                f"{format_date_for_display(c.valid_until)} ({format_eur(c.limit)})"
            )
        message = "\n".join(lines)
    raise click.ClickException(message)


@click.group("caps")
def caps():
    """Manage earnings cap periods.

    \b
    Each period sets the monthly earnings cap from a start date until an
    end date (or open-ended). Periods never overlap. Adding a period after
    an open-ended one ends that period the day before.
    """
    pass


@caps.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def caps_list(as_json):
    """List all cap periods, oldest first."""
    periods = _timeline().list_periods()

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in periods], indent=2))
        return

    if not periods:
        click.echo("No cap periods defined.")
        click.echo("\nAdd one with:")
        click.echo("  minijob-calc caps add 538.00 --from 2024-01-01 --by admin")
        return

    click.echo(f"Cap periods ({len(periods)}):\n")
    for period in periods:
        _echo_period(period)


@caps.command("current")
def caps_current():
    """Show the cap in effect today."""
    timeline = _timeline()
    try:
        period = timeline.current()
    except MinijobError as e:
        _raise_click(e)

    if period is None:
        click.echo(f"No cap period covers {timeline.today().isoformat()}.")
        return
    _echo_period(period, prefix="")


@caps.command("add")
@click.argument("limit", type=str)
@click.option("--from", "valid_from", required=True, help="First day (YYYY-MM-DD), today or later.")
@click.option("--until", "valid_until", default=None, help="Last day (YYYY-MM-DD). Omit for open-ended.")
@click.option("--by", "created_by", required=True, help="Administrator creating the period.")
@click.option("--description", "-d", default="", help="Free-text description.")
def caps_add(limit, valid_from, valid_until, created_by, description):
    """Add a cap period with monthly LIMIT in EUR.

    \b
    Examples:
      minijob-calc caps add 556.00 --from 2025-01-01 --by admin
      minijob-calc caps add 600 --from 2026-01-01 --until 2026-06-30 --by admin
    """
    start = _parse_option_date(valid_from, "valid_from", "--from")
    end = _parse_option_date(valid_until, "valid_until", "--until") if valid_until else None

    try:
        new_period = CapPeriod(
            limit=limit,
            valid_from=start,
            valid_until=end,
            created_by=created_by,
            description=description,
        )
    except ValueError as e:
        raise click.ClickException(f"Invalid cap period: {e}")

    try:
        result = _timeline().insert(new_period)
    except MinijobError as e:
        _raise_click(e)

    click.echo("Added cap period:")
    _echo_period(result.committed)
    _echo_adjustments(result.auto_adjusted)


@caps.command("edit")
@click.argument("period_id", type=int)
@click.option("--limit", default=None, help="New monthly limit in EUR.")
@click.option("--from", "valid_from", default=None, help="New first day (YYYY-MM-DD).")
@click.option("--until", "valid_until", default=None, help="New last day (YYYY-MM-DD).")
@click.option("--open-ended", is_flag=True, help="Remove the end date.")
@click.option("--description", "-d", default=None, help="New description.")
def caps_edit(period_id, limit, valid_from, valid_until, open_ended, description):
    """Edit cap period PERIOD_ID.

    Periods already in effect only accept a new description.
    """
    if valid_until and open_ended:
        raise click.UsageError("--until and --open-ended are mutually exclusive")

    kwargs = {"limit": limit, "description": description}
    if valid_from:
        kwargs["valid_from"] = _parse_option_date(valid_from, "valid_from", "--from")
    if valid_until:
        kwargs["valid_until"] = _parse_option_date(valid_until, "valid_until", "--until")
    elif open_ended:
        kwargs["valid_until"] = None

    try:
        result = _timeline().update(period_id, **kwargs)
    except MinijobError as e:
        _raise_click(e)
    except ValueError as e:
        raise click.ClickException(f"Invalid cap period: {e}")

    click.echo("Updated cap period:")
    _echo_period(result.updated)
    _echo_adjustments(result.auto_adjusted)


@caps.command("delete")
@click.argument("period_id", type=int)
@click.option("--force", "-f", is_flag=True, help="Skip confirmation.")
def caps_delete(period_id, force):
    """Delete future cap period PERIOD_ID.

    The previous period is extended to close the gap.
    """
    timeline = _timeline()
    try:
        period = timeline.get(period_id)
    except MinijobError as e:
        _raise_click(e)

    if not force:
        _echo_period(period)
        click.confirm("\nDelete this cap period?", abort=True)

    try:
        result = timeline.delete(period_id)
    except MinijobError as e:
        _raise_click(e)

    click.echo(f"Deleted cap period #{result.deleted.id}.")
    _echo_adjustments(result.auto_adjusted)


@caps.command("recalculate")
def caps_recalculate():
    """Make every period end the day before the next one starts."""
    try:
        adjustments = _timeline().recalculate_all()
    except MinijobError as e:
        _raise_click(e)

    if not adjustments:
        click.echo("Timeline is consistent, nothing to adjust.")
        return
    click.echo(f"{len(adjustments)} period(s) adjusted.")
    _echo_adjustments(adjustments)


@caps.command("refresh-status")
def caps_refresh_status():
    """Re-mark the period in effect today as active."""
    try:
        active = _timeline().set_active_flags()
    except MinijobError as e:
        _raise_click(e)

    if active is None:
        click.echo("No cap period is in effect today.")
    else:
        click.echo(f"Active cap period: #{active.id} ({format_eur(active.limit)})")


@caps.command("stats")
def caps_stats():
    """Show counts and the current limit."""
    try:
        stats = _timeline().statistics()
    except MinijobError as e:
        _raise_click(e)

    click.echo(f"Total:    {stats['total']}")
    click.echo(f"Active:   {stats['active']}")
    click.echo(f"Inactive: {stats['inactive']}")
    current = format_eur(stats["current_limit"]) if stats["current_limit"] else "none"
    click.echo(f"Current limit: {current}")
