"""
CLI interface for ccmonitor.

Provides the hourly report, the 5-hour limit monitor and its watch mode.
"""

import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Tuple

import typer
import yaml
from rich.console import Console

from ccmonitor import __version__
from ccmonitor.cli.render import print_json, render_hourly_table, render_rolling_table
from ccmonitor.config.loader import MonitorConfig, load_default_config, load_monitor_config
from ccmonitor.core.cache import CacheState
from ccmonitor.core.report import InvalidQueryError, ReportQuery, build_query, hourly_report
from ccmonitor.core.scheduler import (
    InvalidIntervalError,
    RefreshScheduler,
    RefreshView,
    validate_interval,
)
from ccmonitor.storage.paths import resolve_data_dir, resolve_projects_dir

app = typer.Typer(help="Claude Code usage monitor: hourly costs and 5-hour limit tracking.")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

PATH_OPTION = typer.Option(None, "--path", "-p", help="Data directory (default: ~/.ccmonitor)")
CLAUDE_DIR_OPTION = typer.Option(None, "--claude-dir", help="Claude directory (default: ~/.claude)")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="YAML config file (default: <path>/config.yaml)")
SINCE_OPTION = typer.Option(None, "--since", "-s", help="Only hours from this time (YYYY-MM-DD HH:mm, UTC)")
UNTIL_OPTION = typer.Option(None, "--until", "-u", help="Only hours up to this time (YYYY-MM-DD HH:mm, UTC)")
TAIL_OPTION = typer.Option(None, "--tail", "-t", min=1, help="Show the last N hours only")
FULL_OPTION = typer.Option(False, "--full", "-f", help="Include hours with zero usage")
JSON_OPTION = typer.Option(False, "--json", "-j", help="Output in JSON format")
NO_HEADER_OPTION = typer.Option(False, "--no-header", help="Hide banners and footers")
COST_LIMIT_OPTION = typer.Option(None, "--cost-limit", help="Cost limit per 5-hour window (default: 10)")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
):
    """ccmonitor CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if version:
        console.print(f"ccmonitor {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print("ccmonitor - Use --help to see available commands")


def _load_config(path: Optional[Path], config_path: Optional[Path]) -> MonitorConfig:
    if config_path is not None:
        return load_monitor_config(config_path)
    return load_default_config(resolve_data_dir(path))


def _prepare(
    path: Optional[Path],
    claude_dir: Optional[Path],
    config_path: Optional[Path],
    since: Optional[str],
    until: Optional[str],
    tail: Optional[int],
    full: bool,
    cost_limit: Optional[float],
) -> Tuple[MonitorConfig, CacheState, ReportQuery]:
    """Resolve settings, validate the query and hydrate the cache."""
    config = _load_config(path, config_path)
    query = build_query(
        since=since,
        until=until,
        tail=tail,
        full=full,
        cost_limit=cost_limit if cost_limit is not None else config.cost_limit,
        full_span_hours=config.full_span_hours,
    )
    data_dir = resolve_data_dir(path or config.data_dir)
    projects_dir = resolve_projects_dir(claude_dir or config.claude_dir)
    state = CacheState.open(data_dir, projects_dir)
    return config, state, query


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


@app.command()
def report(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    tail: Optional[int] = TAIL_OPTION,
    full: bool = FULL_OPTION,
    json_output: bool = JSON_OPTION,
    rolling: bool = typer.Option(False, "--rolling", "-r", help="Show the 5-hour limit monitor"),
    no_header: bool = NO_HEADER_OPTION,
    cost_limit: Optional[float] = COST_LIMIT_OPTION,
    path: Optional[Path] = PATH_OPTION,
    claude_dir: Optional[Path] = CLAUDE_DIR_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
):
    """Show hourly usage (collects new log data first)."""
    try:
        _, state, query = _prepare(path, claude_dir, config_path, since, until, tail, full, cost_limit)
    except (InvalidQueryError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        _fail(str(e))
        return

    if rolling and not json_output:
        _show_single_pass(state, query, no_header)
        return

    state.scan(query.scan_filter())
    records = hourly_report(state.records(), query)
    if json_output:
        print_json(console, records)
    else:
        console.print(render_hourly_table(records, no_header))


@app.command()
def rolling(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    tail: Optional[int] = TAIL_OPTION,
    full: bool = FULL_OPTION,
    json_output: bool = JSON_OPTION,
    no_header: bool = NO_HEADER_OPTION,
    cost_limit: Optional[float] = COST_LIMIT_OPTION,
    watch: bool = typer.Option(False, "--watch", "-w", help="Refresh continuously"),
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Watch refresh interval in seconds (default: 60, minimum: 5)"),
    path: Optional[Path] = PATH_OPTION,
    claude_dir: Optional[Path] = CLAUDE_DIR_OPTION,
    config_path: Optional[Path] = CONFIG_OPTION,
):
    """Show 5-hour rolling usage against the cost limit."""
    try:
        config, state, query = _prepare(path, claude_dir, config_path, since, until, tail, full, cost_limit)
        watch_interval = interval if interval is not None else config.watch_interval
        if watch:
            validate_interval(watch_interval)
    except (InvalidQueryError, InvalidIntervalError, ValueError, FileNotFoundError, yaml.YAMLError) as e:
        _fail(str(e))
        return

    if json_output:
        state.scan(query.scan_filter())
        print_json(console, hourly_report(state.records(), query))
        return

    if watch:
        _watch(state, query, watch_interval, no_header)
    else:
        _show_single_pass(state, query, no_header)


def _show_single_pass(state: CacheState, query: ReportQuery, no_header: bool) -> None:
    view = RefreshScheduler(state, query, no_header=no_header).run_once()
    console.print(render_rolling_table(view.rows, query.cost_limit, view.max_lines, no_header))


def _watch(state: CacheState, query: ReportQuery, interval: int, no_header: bool) -> None:
    """Run the refresh loop until SIGINT or SIGTERM."""
    scheduler = RefreshScheduler(
        state,
        query,
        interval=interval,
        no_header=no_header,
        terminal_rows=lambda: console.size.height,
    )

    def _request_stop(signum, frame):
        scheduler.stop()

    previous_handlers = {
        sig: signal.signal(sig, _request_stop)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }

    def _show(view: RefreshView) -> None:
        console.clear()
        console.print(
            f"⏰ Last updated: {view.updated_at.astimezone():%H:%M:%S} "
            f"(refreshing every {interval}s)\n"
        )
        console.print(render_rolling_table(view.rows, query.cost_limit, view.max_lines, no_header))

    console.print(f"🔄 Starting watch mode (refresh every {interval}s)")
    console.print("   Press Ctrl+C to stop")
    try:
        scheduler.run(_show)
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
    console.print("\n👋 Watch mode stopped")


if __name__ == "__main__":
    app()
