"""Work entry CLI commands.

Records one entry per employee and day. Earnings come either from a shift
(start, end, break) at the employee's hourly rate or are given directly.
"""

import json

import click

from minijobcalc.sdk import (
    Entry,
    InvalidDateRange,
    MinijobError,
    period_containing,
)
from minijobcalc.sdk.dates import format_date_for_display, parse_date, today_utc
from minijobcalc.sdk.entries import DEFAULT_BREAK_MINUTES, make_entry
from minijobcalc.sdk.money import format_eur

from .periods_commands import _parse_month, _workspace


def _parse_entry_date(value):
    try:
        return parse_date(value, field="date")
    except InvalidDateRange as e:
        raise click.BadParameter(str(e), param_hint="DATE")


@click.group("entries")
def entries():
    """Record and list work entries."""
    pass


@entries.command("add")
@click.argument("employee_id")
@click.argument("entry_date", metavar="DATE")
@click.option("--start", "start_time", default=None, help="Shift start (HH:MM).")
@click.option("--end", "end_time", default=None, help="Shift end (HH:MM), may be after midnight.")
@click.option("--break", "break_minutes", type=int, default=DEFAULT_BREAK_MINUTES, show_default=True,
              help="Unpaid break in minutes.")
@click.option("--earnings", default=None, help="Earnings in EUR, instead of a shift.")
@click.option("--description", "-d", default=None, help="Free-text note.")
def entries_add(employee_id, entry_date, start_time, end_time, break_minutes, earnings, description):
    """Record work for EMPLOYEE_ID on DATE.

    \b
    Examples:
      minijob-calc entries add anna 2025-03-04 --start 17:00 --end 22:00
      minijob-calc entries add anna 04.03.2025 --earnings 65.50
    """
    day = _parse_entry_date(entry_date)
    has_shift = start_time is not None or end_time is not None
    if earnings is not None and has_shift:
        raise click.UsageError("Use either --earnings or --start/--end, not both")
    if earnings is None and not has_shift:
        raise click.UsageError("Provide --start and --end, or --earnings")

    _, ledger, store = _workspace()
    try:
        employee = ledger.employees.get_employee(employee_id)
        if earnings is not None:
            entry = Entry(employee_id=employee.id, entry_date=day, earnings=earnings, description=description)
        else:
            entry = make_entry(
                employee.id, day, start_time, end_time,
                hourly_rate=employee.hourly_rate,
                break_minutes=break_minutes,
                description=description,
            )
        store.add_entry(entry)
    except MinijobError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.ClickException(f"Invalid entry: {e}")

    ledger.invalidate(employee.id, day)
    period = period_containing(employee.billing, day)

    click.echo(f"Recorded {format_eur(entry.earnings)} for {employee.id} on {format_date_for_display(day)}")
    if period is not None:
        click.echo(f"Billing period: {period.description}")


@entries.command("list")
@click.argument("employee_id")
@click.option("--month", "-m", default=None, help="Reference month YYYY-MM (default: current month).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def entries_list(employee_id, month, as_json):
    """List EMPLOYEE_ID's entries in one billing period."""
    if month:
        year, month_num = _parse_month(month)
    else:
        today = today_utc()
        year, month_num = today.year, today.month

    _, ledger, store = _workspace()
    try:
        period = ledger.period_for(employee_id, year, month_num)
    except MinijobError as e:
        raise click.ClickException(str(e))

    items = store.list_entries(employee_id, period.start_date, period.end_date)

    if as_json:
        click.echo(json.dumps({
            "period": period.to_dict(),
            "entries": [e.model_dump(mode="json") for e in items],
        }, indent=2))
        return

    click.echo(f"{period.description}: {len(items)} entr{'y' if len(items) == 1 else 'ies'}\n")
    for entry in items:
        hours = f"{entry.work_minutes / 60:.2f} h" if entry.work_minutes is not None else "-"
        note = f"  {entry.description}" if entry.description else ""
        click.echo(f"  {format_date_for_display(entry.entry_date)}  {hours:>8}  {format_eur(entry.earnings):>12}{note}")


@entries.command("delete")
@click.argument("employee_id")
@click.argument("entry_date", metavar="DATE")
def entries_delete(employee_id, entry_date):
    """Delete EMPLOYEE_ID's entry on DATE."""
    day = _parse_entry_date(entry_date)
    _, ledger, store = _workspace()

    if not store.delete_entry(employee_id, day):
        raise click.ClickException(f"No entry for {employee_id} on {format_date_for_display(day)}")

    ledger.invalidate(employee_id, day)
    click.echo(f"Deleted entry for {employee_id} on {format_date_for_display(day)}")
