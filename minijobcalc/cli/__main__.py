"""Minijob Calc CLI - billing periods, earnings caps and carry-over."""

import json

import click
from rich.console import Console

from minijobcalc import __version__
from minijobcalc.sdk import ConfigNotFoundError, MinijobError, ProfileNotFoundError

from .caps_commands import caps as caps_group
from .entries_commands import entries as entries_group
from .periods_commands import _parse_month, periods as periods_group
from .profile_commands import profile as profile_group
from .settings_commands import settings as settings_group


@click.group()
@click.version_option(version=__version__, prog_name="minijob-calc")
def cli():
    """Minijob Calc - capped monthly earnings with carry-over.

    Each employee is paid per billing period at most the cap in effect
    at the period's end. Earnings above the cap carry into the next period.

    Configuration is loaded from (in order):

    \b
    1. MINIJOB_CALC_CONFIG_PATH environment variable
    2. settings.json 'profile' key (if set via CLI)
    3. ~/.config/minijob-calc/profile.yaml (XDG default)

    Run 'minijob-calc profile show' to see the configured employees.
    """
    pass


cli.add_command(profile_group)
cli.add_command(settings_group)
cli.add_command(caps_group)
cli.add_command(periods_group)
cli.add_command(entries_group)


def _target_period(ledger, employee_id, month):
    from minijobcalc.sdk.dates import today_utc

    if month:
        year, month_num = _parse_month(month)
    else:
        today = today_utc()
        year, month_num = today.year, today.month
    return ledger.period_for(employee_id, year, month_num)


@cli.command("summary")
@click.argument("employee_id")
@click.option("--month", "-m", default=None, help="Reference month YYYY-MM (default: current month).")
@click.option("--cap", default=None, help="Use this cap for every period instead of the timeline.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def summary(employee_id, month, cap, as_json):
    """Show paid amount and carry-over for one billing period.

    \b
    Examples:
      minijob-calc summary anna
      minijob-calc summary anna --month 2025-02
      minijob-calc summary anna --month 2025-02 --cap 520
    """
    from minijobcalc.sdk import open_workspace
    from .renderers.summary_renderer import render_period_summary

    try:
        _, ledger, _ = open_workspace()
        period = _target_period(ledger, employee_id, month)
        result = ledger.compute_period_summary(employee_id, period, cap=cap)
    except (MinijobError, ConfigNotFoundError, ProfileNotFoundError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    render_period_summary(Console(), employee_id, result.to_dict())


@cli.command("history")
@click.argument("employee_id")
@click.option("--through", "month", default=None, help="Last reference month YYYY-MM (default: current month).")
@click.option("--cap", default=None, help="Use this cap for every period instead of the timeline.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def history(employee_id, month, cap, as_json):
    """Show every billing period since EMPLOYEE_ID's first entry."""
    from minijobcalc.sdk import open_workspace
    from .renderers.summary_renderer import render_history

    try:
        _, ledger, _ = open_workspace()
        period = _target_period(ledger, employee_id, month)
        summaries = [s.to_dict() for s in ledger.history(employee_id, period, cap=cap)]
    except (MinijobError, ConfigNotFoundError, ProfileNotFoundError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(summaries, indent=2))
        return

    render_history(Console(width=140), employee_id, summaries)


@cli.command("stats")
@click.argument("employee_id")
@click.option("--months", default=12, show_default=True, help="Number of reference months.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def stats(employee_id, months, as_json):
    """Show totals for EMPLOYEE_ID over the last MONTHS billing periods."""
    from minijobcalc.sdk import open_workspace
    from .renderers.summary_renderer import render_history

    if months < 1:
        raise click.BadParameter("must be at least 1", param_hint="--months")

    try:
        _, ledger, _ = open_workspace()
        result = ledger.multi_period_stats(employee_id, months_back=months)
    except (MinijobError, ConfigNotFoundError, ProfileNotFoundError) as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    render_history(Console(width=140), employee_id, result["periods"])
    totals = result["totals"]
    click.echo(f"Hours: {totals['total_hours']}  (avg {totals['average_monthly_hours']} per period)")
    click.echo(f"Earned: {totals['total_earnings']}  Paid: {totals['total_paid']}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
