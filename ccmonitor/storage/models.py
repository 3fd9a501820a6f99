"""
Data models for storage layer.

Defines the priced usage facts and the hourly aggregates persisted to disk.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

# Hour bucket key, always UTC
HOUR_KEY_FORMAT = "%Y-%m-%d %H:00"


@dataclass(frozen=True)
class UsageFact:
    """Immutable, priced projection of one assistant log record.

    Created once per unique message identifier and never modified.
    """
    message_id: str
    timestamp: datetime
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    model: str
    cost: float

    @property
    def total_tokens(self) -> int:
        """All four token counts combined."""
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )


# Field order of one persisted line
RECORD_FIELDS = (
    "hour",
    "inputTokens",
    "outputTokens",
    "totalTokens",
    "cost",
    "sessionCount",
    "avgInputPerSession",
    "avgOutputPerSession",
)


@dataclass
class HourlyStats:
    """Aggregate usage for one hour bucket.

    Only grows by folding in new facts; `session_count` counts contributing facts.
    """
    hour: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0
    session_count: int = 0
    avg_input_per_session: float = 0.0
    avg_output_per_session: float = 0.0

    def to_record(self) -> Dict[str, Any]:
        """Serialize using the persisted field names."""
        return {
            "hour": self.hour,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "cost": self.cost,
            "sessionCount": self.session_count,
            "avgInputPerSession": self.avg_input_per_session,
            "avgOutputPerSession": self.avg_output_per_session,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "HourlyStats":
        """Build stats from a persisted record.

        Averages are recomputed from the sums rather than trusted.

        Raises:
            ValueError: If a required field is missing or has the wrong type
        """
        if not isinstance(record, dict):
            raise ValueError("record must be a JSON object")
        hour = record.get("hour")
        if not isinstance(hour, str) or not hour:
            raise ValueError("record missing 'hour'")
        try:
            datetime.strptime(hour, HOUR_KEY_FORMAT)
        except ValueError:
            raise ValueError(f"Invalid hour key: {hour!r}")
        try:
            input_tokens = int(record["inputTokens"])
            output_tokens = int(record["outputTokens"])
            total_tokens = int(record["totalTokens"])
            cost = float(record["cost"])
            session_count = int(record["sessionCount"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid hourly record for {hour}: {e}")
        if session_count < 0:
            raise ValueError(f"Negative sessionCount for {hour}")

        stats = cls(
            hour=hour,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            cost=cost,
            session_count=session_count,
        )
        stats.refresh_averages()
        return stats

    def refresh_averages(self) -> None:
        if self.session_count > 0:
            self.avg_input_per_session = self.input_tokens / self.session_count
            self.avg_output_per_session = self.output_tokens / self.session_count
        else:
            self.avg_input_per_session = 0.0
            self.avg_output_per_session = 0.0
