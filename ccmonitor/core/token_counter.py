"""
Token counting and usage tracking.

Holds the four token counts Claude Code reports per assistant message.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token usage data for cost calculation.

    Contains exact token counts as reported in the log, no estimation.
    """
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    def __post_init__(self):
        """Validate token counts are non-negative."""
        for name in ("input_tokens", "output_tokens", "cache_creation_tokens", "cache_read_tokens"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")

    @property
    def total_tokens(self) -> int:
        """Total tokens used across all four counts."""
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_tokens
            + self.cache_read_tokens
        )

    @property
    def is_empty(self) -> bool:
        """True when every count is zero."""
        return self.total_tokens == 0
