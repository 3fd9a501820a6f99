"""
Core modules for ccmonitor.

This package contains log ingestion, deduplication, hourly aggregation,
rolling window evaluation and the refresh scheduler.
"""
