"""
Hourly bucket aggregation.

Folds usage facts into per-hour stats keyed by "YYYY-MM-DD HH:00" (UTC).
Folding is associative per bucket, so facts may be applied in any order.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, MutableMapping

from ccmonitor.storage.models import HOUR_KEY_FORMAT, HourlyStats, UsageFact


def hour_key(timestamp: datetime) -> str:
    """Truncate a timestamp to its UTC hour bucket key.

    Naive datetimes are taken to be UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime(HOUR_KEY_FORMAT)


def parse_hour_key(key: str) -> datetime:
    """Parse a bucket key back to an aware UTC datetime at the top of the hour.

    Raises:
        ValueError: If the key is not in "YYYY-MM-DD HH:00" form
    """
    return datetime.strptime(key, HOUR_KEY_FORMAT).replace(tzinfo=timezone.utc)


def shift_hour_key(key: str, hours: int) -> str:
    """Return the key `hours` later (negative for earlier)."""
    return hour_key(parse_hour_key(key) + timedelta(hours=hours))


def fold(buckets: MutableMapping[str, HourlyStats], fact: UsageFact) -> HourlyStats:
    """Add one fact to its hour bucket, creating the bucket when absent.

    Args:
        buckets: Mapping of hour key to stats, mutated in place
        fact: Usage fact to add

    Returns:
        The updated bucket
    """
    key = hour_key(fact.timestamp)
    stats = buckets.get(key)
    if stats is None:
        stats = HourlyStats(hour=key)
        buckets[key] = stats

    stats.input_tokens += fact.input_tokens
    stats.output_tokens += fact.output_tokens
    stats.total_tokens += fact.total_tokens
    stats.cost += fact.cost
    stats.session_count += 1
    stats.refresh_averages()
    return stats


def fold_all(buckets: MutableMapping[str, HourlyStats], facts: Iterable[UsageFact]) -> int:
    """Fold every fact and return how many were folded."""
    count = 0
    for fact in facts:
        fold(buckets, fact)
        count += 1
    return count


@dataclass(frozen=True)
class UsageTotals:
    """Sums over a set of hour buckets."""
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float
    session_count: int


def summarize(records: Iterable[HourlyStats]) -> UsageTotals:
    """Sum tokens, cost and fact counts over the given buckets."""
    input_tokens = output_tokens = total_tokens = session_count = 0
    cost = 0.0
    for record in records:
        input_tokens += record.input_tokens
        output_tokens += record.output_tokens
        total_tokens += record.total_tokens
        cost += record.cost
        session_count += record.session_count
    return UsageTotals(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
        cost=cost,
        session_count=session_count,
    )


def sorted_buckets(buckets: Dict[str, HourlyStats], descending: bool = False) -> List[HourlyStats]:
    """Return bucket stats ordered by hour key."""
    return [buckets[k] for k in sorted(buckets, reverse=descending)]
