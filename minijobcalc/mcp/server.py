"""Minijob Calc MCP Server - FastMCP tools for caps, periods and carry-over."""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from minijobcalc.sdk import MinijobError, compute_period, open_workspace, validate_billing_period
from minijobcalc.sdk.dates import today_utc
from minijobcalc.sdk.periods import reference_date

logger = logging.getLogger(__name__)

mcp = FastMCP("minijob-calc")


def _parse_month(month: str | None) -> tuple[int, int]:
    if not month:
        today = today_utc()
        return today.year, today.month
    year_str, month_str = month.split("-")
    year, month_num = int(year_str), int(month_str)
    if not 1 <= month_num <= 12:
        raise ValueError(f"Invalid month '{month}'. Use YYYY-MM.")
    return year, month_num


# --- Tools ---

@mcp.tool()
async def list_cap_periods() -> dict[str, Any]:
    """List all earnings cap periods (oldest first) and the one in effect today."""
    try:
        timeline, _, _ = open_workspace()
        periods = timeline.list_periods()
        current = timeline.current()
        return {
            "periods": [p.to_dict() for p in periods],
            "count": len(periods),
            "current_id": current.id if current else None,
        }
    except MinijobError as e:
        return {**e.to_dict(), "periods": [], "count": 0}
    except Exception as e:
        logger.error(f"Error listing cap periods: {e}")
        return {"error": str(e), "periods": [], "count": 0}


@mcp.tool()
async def get_period_summary(
    employee_id: str = Field(description="Employee ID as configured in profile.yaml"),
    month: str | None = Field(default=None, description="Reference month YYYY-MM (default: current month)"),
    cap: str | None = Field(default=None, description="Apply this cap (EUR) to every period instead of the cap timeline"),
    include_history: bool = Field(default=False, description="Also return every earlier period since the first entry"),
) -> dict[str, Any]:
    """Get earned, paid and carried amounts for one billing period of an employee."""
    try:
        _, ledger, _ = open_workspace()
        year, month_num = _parse_month(month)
        period = ledger.period_for(employee_id, year, month_num)
        summaries = ledger.history(employee_id, period, cap=cap)

        result = {"summary": summaries[-1].to_dict()}
        if include_history:
            result["history"] = [s.to_dict() for s in summaries[:-1]]
        return result

    except MinijobError as e:
        return {**e.to_dict(), "summary": None}
    except Exception as e:
        logger.error(f"Error computing period summary for {employee_id}: {e}")
        return {"error": str(e), "summary": None}


@mcp.tool()
async def compute_billing_period(
    start_day: int = Field(description="First day of the billing period (1-31)"),
    end_day: int = Field(description="Last day of the billing period (1-31); below start_day means it ends next month"),
    month: str | None = Field(default=None, description="Reference month YYYY-MM (default: current month)"),
) -> dict[str, Any]:
    """Compute billing period dates for a start/end day configuration."""
    try:
        errors, warnings = validate_billing_period(start_day, end_day)
        if errors:
            return {"error": "; ".join(errors), "period": None}

        year, month_num = _parse_month(month)
        period = compute_period(start_day, end_day, reference_date(year, month_num))
        return {"period": period.to_dict(), "warnings": warnings}

    except Exception as e:
        logger.error(f"Error computing billing period: {e}")
        return {"error": str(e), "period": None}


def run_server():
    """Run the MCP server in stdio mode."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    run_server()
