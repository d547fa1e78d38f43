"""Rich renderer for billing period summaries.

Transforms PeriodSummary.to_dict() output into formatted Rich tables.
"""

from decimal import Decimal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from minijobcalc.sdk.money import format_eur


def render_period_summary(console: Console, employee_id: str, data: dict) -> None:
    """Render one period summary as a Rich panel.

    Args:
        console: Rich Console instance
        employee_id: Employee the summary belongs to
        data: Output of PeriodSummary.to_dict()
    """
    if "error" in data:
        console.print(Panel(f"[red]{data['error']}[/red]", title="Error", border_style="red"))
        return

    period = data["period"]
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("key", style="dim")
    table.add_column("value", justify="right")

    table.add_row("Period", f"{period['start_date']} - {period['end_date']}")
    table.add_row("Entries", str(data["entry_count"]))
    table.add_row("Hours", data["total_hours"])
    table.add_row("Earned", format_eur(data["total_earnings"]))
    table.add_row("Carry-in", _carry(data["carry_in"]))
    table.add_row("Actual", format_eur(data["actual_earnings"]))
    table.add_row("Cap", format_eur(data["limit"]))
    table.add_row("[bold]Paid[/bold]", f"[bold]{format_eur(data['paid'])}[/bold]")
    table.add_row("Carry-out", _carry(data["carry_out"]))

    border = "yellow" if data["exceeds_limit"] else "green"
    console.print(Panel(table, title=f"{employee_id}: {period['label']}", border_style=border))

    if data["exceeds_limit"]:
        console.print(
            f"[yellow]Cap exceeded: {format_eur(data['carry_out'])} carried into the next period[/yellow]"
        )


def render_history(console: Console, employee_id: str, summaries: list) -> None:
    """Render a carry-forward history as one table, oldest period first.

    Args:
        console: Rich Console instance
        employee_id: Employee the history belongs to
        summaries: List of PeriodSummary.to_dict() outputs
    """
    table = Table(title=f"Carry-forward history: {employee_id}", box=box.SIMPLE_HEAD)
    table.add_column("Period")
    table.add_column("Dates", style="dim")
    table.add_column("Earned", justify="right")
    table.add_column("Carry-in", justify="right")
    table.add_column("Cap", justify="right")
    table.add_column("Paid", justify="right", style="bold")
    table.add_column("Carry-out", justify="right")

    for data in summaries:
        period = data["period"]
        table.add_row(
            period["label"],
            f"{period['start_date']} - {period['end_date']}",
            format_eur(data["total_earnings"]),
            _carry(data["carry_in"]),
            format_eur(data["limit"]),
            format_eur(data["paid"]),
            _carry(data["carry_out"]),
        )

    console.print(table)


def _carry(value: str) -> str:
    """Highlight non-zero carry amounts."""
    if Decimal(value) > 0:
        return f"[cyan]{format_eur(value)}[/cyan]"
    return format_eur(value)
