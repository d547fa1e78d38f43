"""Billing period CLI commands.

Computes billing period boundaries for a start/end day configuration.
"""

import json

import click

from minijobcalc.sdk import (
    BillingPeriodConfig,
    ConfigNotFoundError,
    MinijobError,
    ProfileNotFoundError,
    billing_period_preview,
    compute_period,
    generate_billing_periods,
    open_workspace,
    period_for_month,
    validate_billing_period,
    yearly_billing_periods,
)
from minijobcalc.sdk.dates import today_utc
from minijobcalc.sdk.periods import MAX_DAY, MIN_DAY, reference_date

DAY = click.IntRange(MIN_DAY, MAX_DAY)


def _parse_month(value):
    """Parse YYYY-MM into (year, month)."""
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except ValueError:
        raise click.BadParameter(f"Invalid month '{value}'. Use YYYY-MM.", param_hint="--month")
    if not 1 <= month <= 12:
        raise click.BadParameter(f"Invalid month '{value}'. Month must be 01-12.", param_hint="--month")
    return year, month


def _workspace():
    """open_workspace() with configuration problems reported as CLI errors."""
    try:
        return open_workspace()
    except (MinijobError, ConfigNotFoundError, ProfileNotFoundError) as e:
        raise click.ClickException(str(e))


def _config(start_day, end_day):
    errors, warnings = validate_billing_period(start_day, end_day)
    if errors:
        raise click.ClickException("; ".join(errors))
    for warning in warnings:
        click.secho(f"Warning: {warning}", fg="yellow", err=True)
    return BillingPeriodConfig(start_day=start_day, end_day=end_day)


@click.group("periods")
def periods():
    """Compute billing periods.

    \b
    START_DAY and END_DAY are days of the month (1-31). END_DAY below
    START_DAY means the period runs into the following month, e.g. 22 21
    gives 22 July - 21 August, named after August. Days that do not exist
    in a month are clamped to its last day.
    """
    pass


@periods.command("show")
@click.argument("start_day", type=DAY)
@click.argument("end_day", type=DAY)
@click.option("--month", "-m", default=None, help="Reference month YYYY-MM (default: current month).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def periods_show(start_day, end_day, month, as_json):
    """Show the billing period for one reference month."""
    config = _config(start_day, end_day)
    if month:
        year, month_num = _parse_month(month)
        period = compute_period(config.start_day, config.end_day, reference_date(year, month_num))
    else:
        today = today_utc()
        period = period_for_month(config, today.year, today.month)

    if as_json:
        click.echo(json.dumps(period.to_dict(), indent=2))
        return

    click.echo(period.description)
    click.echo(f"  {period.day_count} days, reference month {period.key}")


@periods.command("year")
@click.argument("start_day", type=DAY)
@click.argument("end_day", type=DAY)
@click.argument("year", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def periods_year(start_day, end_day, year, as_json):
    """List the twelve billing periods of YEAR."""
    config = _config(start_day, end_day)
    items = yearly_billing_periods(config, year)

    if as_json:
        click.echo(json.dumps(items, indent=2))
        return

    click.echo(f"Billing periods {year} ({start_day}. - {end_day}.):\n")
    for item in items:
        click.echo(
            f"  {item['id']}  {item['label']:<16} "
            f"{item['start_date']} - {item['end_date']}  ({item['day_count']} days)"
        )


@periods.command("preview")
@click.argument("start_day", type=DAY)
@click.argument("end_day", type=DAY)
def periods_preview(start_day, end_day):
    """Preview a configuration against short and long months."""
    _config(start_day, end_day)
    for item in billing_period_preview(start_day, end_day):
        period = item["period"]
        click.echo(
            f"  {item['reference_month']}: {period['label']:<16} "
            f"{period['start_date']} - {period['end_date']}  ({item['day_count']} days)"
        )


@periods.command("list")
@click.argument("employee_id")
@click.option("--back", default=12, show_default=True, help="Months before the current one.")
@click.option("--forward", default=3, show_default=True, help="Months after the current one.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def periods_list(employee_id, back, forward, as_json):
    """List billing periods around today for EMPLOYEE_ID."""
    _, ledger, _ = _workspace()
    try:
        config = ledger.billing_config(employee_id)
    except MinijobError as e:
        raise click.ClickException(str(e))

    items = generate_billing_periods(config, today_utc(), months_back=back, months_forward=forward)

    if as_json:
        click.echo(json.dumps(items, indent=2))
        return

    for item in items:
        marker = click.style("  <- current", fg="green") if item["is_current"] else ""
        click.echo(f"  {item['value']}  {item['label']}{marker}")
