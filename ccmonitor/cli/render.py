"""
Rich rendering for the hourly report and the 5-hour limit monitor.
"""

from typing import List, Optional

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ccmonitor.core.aggregation import summarize
from ccmonitor.core.rolling import ROLLING_WINDOW_HOURS, RollingWindowRow, UsageLevel, fit_rows
from ccmonitor.storage.models import HourlyStats

PROGRESS_BAR_WIDTH = 8

_LEVEL_STYLES = {
    UsageLevel.NOMINAL: "green",
    UsageLevel.CAUTION: "yellow",
    UsageLevel.HIGH_USAGE: "red",
    UsageLevel.OVER_LIMIT: "red",
}

_WARNINGS = {
    UsageLevel.HIGH_USAGE: "⚠️ HIGH USAGE",
    UsageLevel.OVER_LIMIT: "🚨 OVER LIMIT",
}


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def progress_bar(percent: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Block bar with `width` cells, clamped to 0..width filled."""
    filled = max(0, min(width, round(percent / 100 * width)))
    return "█" * filled + "░" * (width - filled)


def _banner(title: str) -> Panel:
    return Panel(Text(title, justify="center", style="bold"), box=box.ROUNDED, expand=False, padding=(1, 4))


def render_hourly_table(records: List[HourlyStats], no_header: bool = False):
    """Hourly usage table with a totals row."""
    if not records:
        return Text("No data found for the specified criteria.")

    table = Table(box=box.SQUARE, show_footer=True)
    totals = summarize(records)
    table.add_column("Hour", footer="Total")
    table.add_column("Input", justify="right", footer=f"{totals.input_tokens:,}")
    table.add_column("Output", justify="right", footer=f"{totals.output_tokens:,}")
    table.add_column("Total", justify="right", footer=f"{totals.total_tokens:,}")
    table.add_column("Cost (USD)", justify="right", footer=format_currency(totals.cost))

    for record in records:
        table.add_row(
            record.hour,
            f"{record.input_tokens:,}",
            f"{record.output_tokens:,}",
            f"{record.total_tokens:,}",
            format_currency(record.cost),
        )

    if no_header:
        return table
    return Group(_banner("ccmonitor - Hourly Usage Report"), table)


def render_rolling_table(
    rows: List[RollingWindowRow],
    cost_limit: float,
    max_lines: Optional[int] = None,
    no_header: bool = False,
):
    """5-hour limit monitor table; warning lines count against max_lines."""
    if not rows:
        return Text("No data found for the specified criteria.")

    table = Table(box=box.SQUARE)
    table.add_column("Current Hour")
    table.add_column("Hour Cost", justify="right")
    table.add_column(f"{ROLLING_WINDOW_HOURS}-Hour Cost", justify="right")
    table.add_column("Limit Progress")

    for row, show_warning in fit_rows(rows, max_lines):
        style = _LEVEL_STYLES[row.level]
        table.add_row(
            row.hour,
            format_currency(row.hour_cost),
            format_currency(row.rolling_cost),
            Text(f"{row.percent:5.1f}% {progress_bar(row.percent)}", style=style),
        )
        if show_warning:
            table.add_row("", "", "", Text(_WARNINGS[row.level], style=style))

    if no_header:
        return table

    footer = Text.assemble(
        "📊 Claude Code Limits:\n",
        f"   • Cost Limit: {format_currency(cost_limit)} per {ROLLING_WINDOW_HOURS}-hour window\n",
        f"   • Time Window: Rolling {ROLLING_WINDOW_HOURS}-hour period\n",
        "   • Color: ", ("Green (Safe)", "green"), " | ",
        ("Yellow (Caution)", "yellow"), " | ", ("Red (Danger)", "red"),
    )
    return Group(_banner(f"ccmonitor - Limit Monitor ({ROLLING_WINDOW_HOURS}-Hour)"), table, footer)


def print_json(console: Console, records: List[HourlyStats]) -> None:
    """Print bucket records with their persisted field names."""
    console.print_json(data=[record.to_record() for record in records])
