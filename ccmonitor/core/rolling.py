"""
Rolling 5-hour window evaluation.

For each reference hour, sums cost and tokens over the buckets 0..4 hours
earlier (never later) and expresses the cost as a percentage of a limit.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .aggregation import parse_hour_key, shift_hour_key
from ccmonitor.storage.models import HourlyStats

ROLLING_WINDOW_HOURS = 5
DEFAULT_COST_LIMIT = 10.0
FULL_SPAN_HOURS = 24


class UsageLevel(Enum):
    """Limit utilization bands, lower bound inclusive."""
    NOMINAL = "nominal"        # < 60%
    CAUTION = "caution"        # 60% - 79%
    HIGH_USAGE = "high_usage"  # 80% - 89%
    OVER_LIMIT = "over_limit"  # >= 90%


def classify(percent: float) -> UsageLevel:
    """Map a utilization percentage to its band."""
    if percent >= 90:
        return UsageLevel.OVER_LIMIT
    if percent >= 80:
        return UsageLevel.HIGH_USAGE
    if percent >= 60:
        return UsageLevel.CAUTION
    return UsageLevel.NOMINAL


@dataclass(frozen=True)
class RollingWindowRow:
    """Rolling window result for one reference hour."""
    hour: str
    hour_cost: float
    hour_tokens: int
    rolling_cost: float
    rolling_tokens: int
    percent: float
    level: UsageLevel

    @property
    def has_warning(self) -> bool:
        """True for the high-usage and over-limit bands."""
        return self.level in (UsageLevel.HIGH_USAGE, UsageLevel.OVER_LIMIT)


def utilization(rolling_cost: float, cost_limit: float) -> float:
    """Rolling cost as a percentage of the limit.

    Raises:
        ValueError: If cost_limit is not a positive finite number
    """
    if not math.isfinite(cost_limit) or cost_limit <= 0:
        raise ValueError(f"cost limit must be a positive number, got {cost_limit}")
    return rolling_cost / cost_limit * 100


def fill_contiguous_hours(
    records: Iterable[HourlyStats],
    span_hours: int = FULL_SPAN_HOURS,
    end_hour: Optional[str] = None,
) -> List[HourlyStats]:
    """Return span_hours consecutive buckets, newest first.

    Hours with no bucket are synthesized as zero-valued stats. The span ends
    at end_hour, or at the newest bucket when end_hour is None.
    """
    by_hour = {record.hour: record for record in records}
    if end_hour is None:
        if not by_hour:
            return []
        end_hour = max(by_hour)

    filled = []
    for offset in range(span_hours):
        key = shift_hour_key(end_hour, -offset)
        filled.append(by_hour.get(key) or HourlyStats(hour=key))
    return filled


def rolling_sum(
    by_hour: Dict[str, HourlyStats],
    reference_hour: str,
    window_hours: int = ROLLING_WINDOW_HOURS,
) -> Tuple[float, int]:
    """Sum cost and total tokens of buckets at offsets [0, window_hours) before reference_hour."""
    cost = 0.0
    tokens = 0
    for offset in range(window_hours):
        record = by_hour.get(shift_hour_key(reference_hour, -offset))
        if record is not None:
            cost += record.cost
            tokens += record.total_tokens
    return cost, tokens


def compute_rolling_window(
    records: Iterable[HourlyStats],
    cost_limit: float = DEFAULT_COST_LIMIT,
    full: bool = False,
    max_rows: Optional[int] = None,
    span_hours: int = FULL_SPAN_HOURS,
    end_hour: Optional[str] = None,
) -> List[RollingWindowRow]:
    """Compute rolling window rows, newest hour first.

    Args:
        records: Hourly buckets to evaluate
        cost_limit: Limit the rolling cost is compared against
        full: Synthesize zero-valued hours for a contiguous series
        max_rows: Keep at most this many rows (None for no limit)
        span_hours: Length of the synthesized series in full mode
        end_hour: Newest hour of the synthesized series in full mode

    Returns:
        List of RollingWindowRow ordered by hour descending
    """
    # Parse every key once up front so a bad key fails before any output
    by_hour = {}
    for record in records:
        parse_hour_key(record.hour)
        by_hour[record.hour] = record

    if full:
        references = fill_contiguous_hours(by_hour.values(), span_hours, end_hour)
    else:
        references = [by_hour[k] for k in sorted(by_hour, reverse=True)]
    if max_rows is not None:
        references = references[:max_rows]

    rows = []
    for reference in references:
        rolling_cost, rolling_tokens = rolling_sum(by_hour, reference.hour)
        percent = utilization(rolling_cost, cost_limit)
        rows.append(RollingWindowRow(
            hour=reference.hour,
            hour_cost=reference.cost,
            hour_tokens=reference.total_tokens,
            rolling_cost=rolling_cost,
            rolling_tokens=rolling_tokens,
            percent=percent,
            level=classify(percent),
        ))
    return rows


def fit_rows(
    rows: List[RollingWindowRow],
    max_lines: Optional[int] = None,
) -> List[Tuple[RollingWindowRow, bool]]:
    """Fit rows and their warning lines into a display budget.

    Each row takes one line; a warning line follows a high-usage or
    over-limit row only while the budget has room for it.

    Returns:
        (row, show_warning) pairs in display order
    """
    fitted = []
    used = 0
    for row in rows:
        if max_lines is not None and used >= max_lines:
            break
        used += 1
        show_warning = row.has_warning and (max_lines is None or used < max_lines)
        if show_warning:
            used += 1
        fitted.append((row, show_warning))
    return fitted
