"""
Unit tests for hourly bucket aggregation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ccmonitor.core.aggregation import (
    fold,
    fold_all,
    hour_key,
    parse_hour_key,
    shift_hour_key,
    summarize,
)
from ccmonitor.core.log_reader import parse_log_line


class TestHourKey:
    """Test hour bucket keys."""

    def test_format(self):
        """Verify keys truncate to the top of the hour."""
        assert hour_key(datetime(2025, 6, 15, 14, 30, 45, tzinfo=timezone.utc)) == "2025-06-15 14:00"

    def test_same_hour_same_key(self):
        """Verify sub-hour precision never changes the key."""
        start = datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)
        end = datetime(2025, 1, 1, 9, 59, 59, 999999, tzinfo=timezone.utc)
        assert hour_key(start) == hour_key(end)

    def test_adjacent_hours_differ(self):
        """Verify neighbouring hours get different keys."""
        t = datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        assert hour_key(t) != hour_key(t + timedelta(seconds=1))
        assert hour_key(t + timedelta(seconds=1)) == "2026-01-01 00:00"

    def test_non_utc_input_is_converted(self):
        """Verify keys are always in UTC."""
        tokyo = timezone(timedelta(hours=9))
        assert hour_key(datetime(2025, 6, 15, 19, 15, tzinfo=tokyo)) == "2025-06-15 10:00"

    def test_parse_and_shift(self):
        """Verify keys parse back and shift across day boundaries."""
        assert parse_hour_key("2025-06-15 10:00") == datetime(2025, 6, 15, 10, tzinfo=timezone.utc)
        assert shift_hour_key("2025-06-15 02:00", -3) == "2025-06-14 23:00"
        with pytest.raises(ValueError):
            parse_hour_key("2025-06-15T10")


class TestFold:
    """Test folding facts into buckets."""

    def test_two_facts_same_hour(self, record):
        """Verify sums, count and cost for two facts in one hour."""
        first = parse_log_line(record("m1", "2025-06-15T10:15:00Z", input_tokens=1000, output_tokens=500, model="sonnet"))
        second = parse_log_line(record("m2", "2025-06-15T10:45:00Z", input_tokens=800, output_tokens=600, model="sonnet"))
        buckets = {}
        fold(buckets, first)
        fold(buckets, second)

        stats = buckets["2025-06-15 10:00"]
        assert stats.input_tokens == 1800
        assert stats.output_tokens == 1100
        assert stats.total_tokens == 2900
        assert stats.session_count == 2
        assert stats.cost == pytest.approx(first.cost + second.cost)
        assert stats.avg_input_per_session == 900
        assert stats.avg_output_per_session == 550

    def test_input_excludes_cache_but_total_includes_it(self, record):
        """Verify cache tokens count toward total only."""
        fact = parse_log_line(record("m1", "2025-06-15T10:15:00Z", input_tokens=10, output_tokens=5, cache_creation=100, cache_read=1000))
        buckets = {}
        fold(buckets, fact)
        stats = buckets["2025-06-15 10:00"]
        assert stats.input_tokens == 10
        assert stats.total_tokens == 1115

    def test_separate_hours(self, record):
        """Verify facts in different hours land in different buckets."""
        facts = [
            parse_log_line(record("m1", "2025-06-15T10:59:59Z", input_tokens=1)),
            parse_log_line(record("m2", "2025-06-15T11:00:00Z", input_tokens=1)),
        ]
        buckets = {}
        assert fold_all(buckets, facts) == 2
        assert sorted(buckets) == ["2025-06-15 10:00", "2025-06-15 11:00"]

    def test_fold_order_does_not_matter(self, record):
        """Verify folding is order independent per bucket."""
        facts = [
            parse_log_line(record(f"m{i}", f"2025-06-15T10:{i:02d}:00Z", input_tokens=i + 1, output_tokens=2 * i))
            for i in range(10)
        ]
        forward, backward = {}, {}
        fold_all(forward, facts)
        fold_all(backward, reversed(facts))
        assert forward["2025-06-15 10:00"].input_tokens == backward["2025-06-15 10:00"].input_tokens
        assert forward["2025-06-15 10:00"].cost == pytest.approx(backward["2025-06-15 10:00"].cost)


class TestSummarize:
    """Test totals over buckets."""

    def test_totals(self, record):
        """Verify totals across hours."""
        buckets = {}
        fold_all(buckets, [
            parse_log_line(record("m1", "2025-06-15T10:00:00Z", input_tokens=100, output_tokens=10)),
            parse_log_line(record("m2", "2025-06-15T12:00:00Z", input_tokens=200, output_tokens=20)),
        ])
        totals = summarize(buckets.values())
        assert totals.input_tokens == 300
        assert totals.output_tokens == 30
        assert totals.session_count == 2

    def test_empty(self):
        """Verify totals of nothing are zero."""
        totals = summarize([])
        assert totals.cost == 0.0
        assert totals.total_tokens == 0
