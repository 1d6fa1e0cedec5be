"""Logging and clamping front for any ``AiClient``.

The trading loop only talks to ``AiAdapter`` so every estimate is logged and
clamped to [0, 1] regardless of provider.
"""

import logging
from collections.abc import Sequence
from typing import Any

from alph_bot.clients.ai.base import AiClient
from alph_bot.clients.ai.factory import (
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    AiProvider,
    create_client,
)
from alph_bot.core.models import MarketDescriptor, ProbabilityEstimate

logger = logging.getLogger(__name__)


class AiAdapter:
    """Forecaster used by the trading loop.

    Args:
        client: Provider implementation to delegate to.

    """

    def __init__(self, client: AiClient) -> None:
        """Initialize the adapter.

        Args:
            client: Provider implementation to delegate to.

        """
        self._client = client

    @property
    def provider_name(self) -> str:
        """Return the underlying provider's name."""
        return self._client.name

    @classmethod
    async def create(
        cls,
        provider: AiProvider,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        api_key: str | None = None,
    ) -> "AiAdapter":
        """Build the provider's client and wrap it."""
        client = await create_client(provider, model=model, temperature=temperature, api_key=api_key)
        return cls(client)

    async def estimate_probability(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> ProbabilityEstimate:
        """Return the provider's estimate with the probability clamped to [0, 1]."""
        logger.info(
            "[%s] Estimating probability for %s: %s", self.provider_name, market.ticker, market.title
        )
        raw = await self._client.estimate_probability(sport, game_id, events, market)
        estimate = ProbabilityEstimate.clamped(raw.yes_probability, raw.confidence, raw.reasoning)
        logger.info(
            "[%s] Estimate for %s: P(yes)=%.3f confidence=%s",
            self.provider_name,
            market.ticker,
            estimate.yes_probability,
            estimate.confidence.value,
        )
        return estimate

    async def close(self) -> None:
        """Release provider resources, if the provider holds any."""
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()
