"""
Report queries over the hourly cache.

Validates caller-supplied parameters and selects the buckets and rolling
window rows a report needs. Invalid parameters are rejected, never guessed.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .aggregation import parse_hour_key
from .cache import ScanFilter
from .rolling import (
    DEFAULT_COST_LIMIT,
    FULL_SPAN_HOURS,
    ROLLING_WINDOW_HOURS,
    RollingWindowRow,
    compute_rolling_window,
    fill_contiguous_hours,
)
from ccmonitor.storage.models import HourlyStats

MAX_COST_LIMIT = 10000.0

_TIME_BOUND_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


class InvalidQueryError(ValueError):
    """Raised when report parameters cannot be honored."""


def parse_time_bound(value: Optional[str]) -> Optional[datetime]:
    """Parse a since/until bound to an aware UTC datetime.

    Accepts "YYYY-MM-DD HH:mm", "YYYY-MM-DD" and ISO-8601. Naive values are
    taken to be UTC, like the hour keys they are compared against.

    Raises:
        InvalidQueryError: If the value cannot be parsed
    """
    if value is None:
        return None
    text = value.strip()
    parsed = None
    for fmt in _TIME_BOUND_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidQueryError(
                f"Invalid time '{value}': expected YYYY-MM-DD HH:mm"
            )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class ReportQuery:
    """Validated report parameters."""
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    tail: Optional[int] = None
    full: bool = False
    cost_limit: float = DEFAULT_COST_LIMIT
    full_span_hours: int = FULL_SPAN_HOURS

    def __post_init__(self):
        """Validate bounds, tail and cost limit."""
        if self.since and self.until and self.until < self.since:
            raise InvalidQueryError("'until' must not be earlier than 'since'")
        if self.tail is not None and self.tail < 1:
            raise InvalidQueryError("tail must be >= 1")
        if isinstance(self.cost_limit, bool) or not math.isfinite(self.cost_limit) or self.cost_limit <= 0:
            raise InvalidQueryError("cost limit must be a positive number")
        if self.full_span_hours <= 0:
            raise InvalidQueryError("full span must be at least one hour")

    def scan_filter(self, tail: Optional[int] = None) -> ScanFilter:
        """Time filter for folding: since, plus tail hours and a full rolling window."""
        tail = self.tail if tail is None else tail
        lookback = tail + ROLLING_WINDOW_HOURS if tail else None
        return ScanFilter(since=self.since, lookback_hours=lookback)


def build_query(
    since: Optional[str] = None,
    until: Optional[str] = None,
    tail: Optional[int] = None,
    full: bool = False,
    cost_limit: float = DEFAULT_COST_LIMIT,
    full_span_hours: int = FULL_SPAN_HOURS,
) -> ReportQuery:
    """Build a ReportQuery from raw CLI values.

    Raises:
        InvalidQueryError: If any parameter is invalid
    """
    if cost_limit is None or cost_limit > MAX_COST_LIMIT:
        raise InvalidQueryError(f"cost limit must be between 0 and {MAX_COST_LIMIT:g}")
    return ReportQuery(
        since=parse_time_bound(since),
        until=parse_time_bound(until),
        tail=tail,
        full=full,
        cost_limit=float(cost_limit),
        full_span_hours=full_span_hours,
    )


def select_records(records: Iterable[HourlyStats], query: ReportQuery) -> List[HourlyStats]:
    """Buckets whose hour falls within [since, until], ascending by hour."""
    selected = []
    for record in records:
        start = parse_hour_key(record.hour)
        if query.since is not None and start < query.since:
            continue
        if query.until is not None and start > query.until:
            continue
        selected.append(record)
    return sorted(selected, key=lambda r: r.hour)


def hourly_report(records: Iterable[HourlyStats], query: ReportQuery) -> List[HourlyStats]:
    """Rows for the hourly report, ascending by hour.

    In full mode the rows form a contiguous span ending at the newest bucket.
    With a tail only the newest `tail` rows are kept.
    """
    rows = select_records(records, query)
    if query.full and rows:
        rows = list(reversed(fill_contiguous_hours(rows, query.full_span_hours)))
    if query.tail is not None:
        rows = rows[-query.tail:]
    return rows


def rolling_report(
    records: Iterable[HourlyStats],
    query: ReportQuery,
    max_rows: Optional[int] = None,
    end_hour: Optional[str] = None,
) -> List[RollingWindowRow]:
    """Rolling window rows for the selected buckets, newest first.

    Args:
        records: All cached buckets
        query: Validated report parameters
        max_rows: Row bound; defaults to the query's tail
        end_hour: Newest hour of the full-mode span (defaults to newest bucket)
    """
    selected = select_records(records, query)
    if max_rows is None:
        max_rows = query.tail
    return compute_rolling_window(
        selected,
        cost_limit=query.cost_limit,
        full=query.full,
        max_rows=max_rows,
        span_hours=query.full_span_hours,
        end_hour=end_hour,
    )
