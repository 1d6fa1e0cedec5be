"""Structural protocols for the trading engine's collaborators.

Define the ``ExchangeClient``, ``FeedClient`` and ``Forecaster`` interfaces
that decouple the value-bet loop and risk manager from concrete providers.
Any class whose shape matches these protocols can be used without explicit
inheritance (structural subtyping), which is how tests inject mocks.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from alph_bot.core.models import (
    LiveEventBatch,
    MarketDescriptor,
    MarketSnapshot,
    OrderResult,
    ProbabilityEstimate,
    Side,
    Sport,
)


@runtime_checkable
class ExchangeClient(Protocol):
    """Async prediction-market exchange.

    Implementors search for game markets, return fresh market snapshots,
    place orders and report the account balance in cents.
    """

    async def search_markets(
        self,
        home: str,
        away: str,
        scheduled_ts: int,
        sport: Sport,
    ) -> list[MarketSnapshot]:
        """Return active markets whose text mentions either team."""
        ...

    async def get_market(self, ticker: str) -> MarketSnapshot:
        """Return a fresh snapshot of one market."""
        ...

    async def create_order(
        self,
        ticker: str,
        side: Side,
        count: int,
        *,
        action: str = "buy",
        order_type: str = "market",
    ) -> OrderResult:
        """Submit an order and return the exchange acknowledgement."""
        ...

    async def get_balance(self) -> int:
        """Return the available balance in cents."""
        ...


@runtime_checkable
class FeedClient(Protocol):
    """Async live sports feed.

    Implementors own the game lifecycle bookkeeping: ``get_schedule``
    upserts games and ``get_live_events`` advances ``scheduled`` games to
    ``live`` and persists the incremental cursor.
    """

    async def get_schedule(self, sport: Sport) -> list[Any]:
        """Fetch the schedule for ``sport`` and upsert its games."""
        ...

    async def get_live_events(
        self,
        game_id: str,
        sport: Sport,
        since_event_id: str | None = None,
        limit: int = 100,
    ) -> LiveEventBatch:
        """Return events for ``game_id`` newer than the cursor."""
        ...


@runtime_checkable
class Forecaster(Protocol):
    """Probability provider for a market given the game's event history."""

    async def estimate_probability(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> ProbabilityEstimate:
        """Return a clamped probability estimate for the market's YES outcome."""
        ...
