"""
Refresh scheduling for single-pass and watch mode.

Each tick scans changed logs into the cache and recomputes the rolling window
view. Ticks never overlap and are never interrupted; cancellation takes effect
between ticks.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .aggregation import hour_key
from .cache import CacheState, ScanResult
from .report import ReportQuery, rolling_report
from .rolling import RollingWindowRow

log = logging.getLogger(__name__)

MIN_WATCH_INTERVAL = 5
DEFAULT_WATCH_INTERVAL = 60
DEFAULT_TERMINAL_ROWS = 24

# Lines around the data rows: status line and blank, banner, table frame, limits footer
RESERVED_ROWS_WITH_HEADER = 1 + 1 + 5 + 1 + 3 + 1 + 1 + 4
RESERVED_ROWS_NO_HEADER = 1 + 1 + 3 + 1 + 1


class InvalidIntervalError(ValueError):
    """Raised when a watch interval is below the minimum."""


def validate_interval(seconds: float) -> float:
    """Check a watch interval against the minimum.

    Raises:
        InvalidIntervalError: If seconds is below MIN_WATCH_INTERVAL
    """
    if seconds is None or seconds < MIN_WATCH_INTERVAL:
        raise InvalidIntervalError(
            f"watch interval must be {MIN_WATCH_INTERVAL} seconds or more"
        )
    return seconds


def available_data_rows(terminal_rows: int, no_header: bool = False) -> int:
    """Rows left for table data once headers and footers are drawn (at least 1)."""
    reserved = RESERVED_ROWS_NO_HEADER if no_header else RESERVED_ROWS_WITH_HEADER
    return max(1, terminal_rows - reserved)


def effective_tail(tail: Optional[int], available: int) -> int:
    """Caller tail capped to the available rows, or all available rows."""
    return min(tail, available) if tail else available


@dataclass(frozen=True)
class RefreshView:
    """Result of one tick."""
    rows: List[RollingWindowRow]
    max_lines: Optional[int]
    scan: ScanResult
    updated_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """Drives scan-and-evaluate passes over a CacheState.

    Example:
        scheduler = RefreshScheduler(state, query, interval=60)
        scheduler.run(show)          # until stop() is called
    """

    def __init__(
        self,
        state: CacheState,
        query: ReportQuery,
        interval: float = DEFAULT_WATCH_INTERVAL,
        no_header: bool = False,
        terminal_rows: Optional[Callable[[], int]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the scheduler.

        Args:
            state: Hydrated cache state to refresh
            query: Validated report parameters
            interval: Seconds between watch ticks
            no_header: Whether the display omits its banner and footer
            terminal_rows: Callable returning the current display height
            clock: Source of the current UTC time
        """
        self.state = state
        self.query = query
        self.interval = interval
        self.no_header = no_header
        self.terminal_rows = terminal_rows
        self.clock = clock
        self._stop = threading.Event()
        self.ticks = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Request cancellation; the current tick, if any, still completes."""
        self._stop.set()

    def _row_budget(self) -> Optional[int]:
        if self.terminal_rows is None:
            return self.query.tail
        rows = self.terminal_rows() or DEFAULT_TERMINAL_ROWS
        return effective_tail(self.query.tail, available_data_rows(rows, self.no_header))

    def tick(self, watching: bool = False) -> RefreshView:
        """Run one scan and compute the rolling window view."""
        now = self.clock()
        max_lines = self._row_budget()
        scan = self.state.scan(self.query.scan_filter(max_lines), now=now)
        rows = rolling_report(
            self.state.records(),
            self.query,
            max_rows=max_lines,
            end_hour=hour_key(now) if watching else None,
        )
        self.ticks += 1
        return RefreshView(rows=rows, max_lines=max_lines, scan=scan, updated_at=now)

    def run_once(self) -> RefreshView:
        """Single evaluation pass."""
        return self.tick()

    def run(
        self,
        on_tick: Callable[[RefreshView], None],
        max_ticks: Optional[int] = None,
    ) -> int:
        """Tick repeatedly, sleeping `interval` seconds between ticks.

        A failing tick is logged and the loop carries on with the next one.

        Args:
            on_tick: Called with each tick's view
            max_ticks: Stop after this many ticks (None to run until stopped)

        Returns:
            Number of ticks run

        Raises:
            InvalidIntervalError: If the interval is below the minimum
        """
        validate_interval(self.interval)
        ran = 0
        while not self.stopped:
            try:
                on_tick(self.tick(watching=True))
            except Exception:
                log.exception("Watch update failed")
            ran += 1
            if max_ticks is not None and ran >= max_ticks:
                break
            self._stop.wait(self.interval)
        return ran
