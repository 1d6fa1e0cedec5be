"""Capability protocol implemented by every forecaster provider."""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from alph_bot.core.models import MarketDescriptor, ProbabilityEstimate


@runtime_checkable
class AiClient(Protocol):
    """A thin, stateless wrapper around one model provider or transport.

    Attributes:
        name: Provider name shown in logs (e.g. ``"anthropic"``).

    """

    name: str

    async def estimate_probability(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> ProbabilityEstimate:
        """Estimate the probability that the market's YES outcome occurs."""
        ...
