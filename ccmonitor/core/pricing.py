"""
Pricing calculations and rate management.

Converts token counts into USD cost using fixed per-model rates.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict

from .token_counter import TokenUsage


class ModelVariant(Enum):
    """Models with registered rates, plus an explicit fallback case."""
    SONNET_4 = "claude-sonnet-4-20250514"
    OPUS_4 = "claude-opus-4-20250514"
    HAIKU_35 = "claude-haiku-3.5-20241022"
    UNKNOWN = "unknown"


# Model assumed when a log record names none, and whose rates price unknown models
BASELINE_MODEL = ModelVariant.SONNET_4


@dataclass(frozen=True)
class ModelPricing:
    """Per-1K-token pricing for a specific model."""
    input_cost_per_1k: Decimal
    output_cost_per_1k: Decimal
    cache_creation_cost_per_1k: Decimal
    cache_read_cost_per_1k: Decimal


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[ModelVariant, ModelPricing]

    def get_pricing(self, variant: ModelVariant) -> ModelPricing:
        """Get pricing for a model variant.

        Args:
            variant: Resolved model variant

        Returns:
            ModelPricing for the variant; UNKNOWN is priced as the baseline model
        """
        if variant is ModelVariant.UNKNOWN:
            return self.prices[BASELINE_MODEL]
        return self.prices[variant]


# Fixed pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    ModelVariant.SONNET_4: ModelPricing(
        input_cost_per_1k=Decimal("0.003"),
        output_cost_per_1k=Decimal("0.015"),
        cache_creation_cost_per_1k=Decimal("0.00375"),
        cache_read_cost_per_1k=Decimal("0.0003"),
    ),
    ModelVariant.OPUS_4: ModelPricing(
        input_cost_per_1k=Decimal("0.015"),
        output_cost_per_1k=Decimal("0.075"),
        cache_creation_cost_per_1k=Decimal("0.01875"),
        cache_read_cost_per_1k=Decimal("0.0015"),
    ),
    ModelVariant.HAIKU_35: ModelPricing(
        input_cost_per_1k=Decimal("0.0008"),
        output_cost_per_1k=Decimal("0.004"),
        cache_creation_cost_per_1k=Decimal("0.001"),
        cache_read_cost_per_1k=Decimal("0.00008"),
    ),
})


def resolve_model(model: str) -> ModelVariant:
    """Map a model name from the log to a known variant.

    Args:
        model: Model identifier as written by Claude Code

    Returns:
        The matching variant, or ModelVariant.UNKNOWN
    """
    for variant in ModelVariant:
        if variant is not ModelVariant.UNKNOWN and variant.value == model:
            return variant
    return ModelVariant.UNKNOWN


def calculate_cost(model: str, usage: TokenUsage) -> float:
    """Calculate cost for model usage.

    Cost is the sum over the four token kinds of (tokens / 1000) * rate.
    No rounding is applied; per-message costs are far below a cent.

    Args:
        model: Model identifier
        usage: Token usage data

    Returns:
        Total cost in USD
    """
    pricing = PRICING_TABLE.get_pricing(resolve_model(model))
    thousand = Decimal("1000")

    total_cost = (
        (Decimal(usage.input_tokens) / thousand) * pricing.input_cost_per_1k
        + (Decimal(usage.output_tokens) / thousand) * pricing.output_cost_per_1k
        + (Decimal(usage.cache_creation_tokens) / thousand) * pricing.cache_creation_cost_per_1k
        + (Decimal(usage.cache_read_tokens) / thousand) * pricing.cache_read_cost_per_1k
    )
    return float(total_cost)
