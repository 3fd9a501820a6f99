"""
ccmonitor - hourly cost and 5-hour limit monitoring for Claude Code usage logs.
"""

__version__ = "0.3.0"
