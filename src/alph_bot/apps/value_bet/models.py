"""Data models for the value-bet risk gate.

Define the request the trading loop submits to the risk manager, the
account statistics the gate is evaluated against and the resulting
decision. All money is integer cents.
"""

from dataclasses import dataclass
from typing import Any

from alph_bot.core.models import Confidence, Side, TradeCandidate


@dataclass(frozen=True)
class TradeRequest:
    """A trade candidate enriched with the context the risk gate needs.

    Args:
        market_id: Exchange market ticker.
        game_id: External game identifier.
        side: Contract side to buy.
        estimated_probability: Probability that ``side`` wins.
        market_price_cents: Ask price for ``side`` in cents.
        confidence: Forecaster confidence tier.

    Raises:
        ValueError: If the price is not a positive number of cents.

    """

    market_id: str
    game_id: str
    side: Side
    estimated_probability: float
    market_price_cents: int
    confidence: Confidence

    def __post_init__(self) -> None:
        """Validate the price."""
        if self.market_price_cents <= 0:
            msg = f"market_price_cents must be positive, got {self.market_price_cents}"
            raise ValueError(msg)

    @classmethod
    def from_candidate(
        cls,
        candidate: TradeCandidate,
        *,
        market_id: str,
        game_id: str,
        confidence: Confidence,
    ) -> "TradeRequest":
        """Build a request from an edge evaluator candidate."""
        return cls(
            market_id=market_id,
            game_id=game_id,
            side=candidate.side,
            estimated_probability=candidate.probability,
            market_price_cents=candidate.price_cents,
            confidence=confidence,
        )


@dataclass(frozen=True)
class TradingStats:
    """Account statistics derived fresh for every risk check.

    Args:
        balance_cents: Available exchange balance.
        open_position_count: Number of orders with status ``open``.
        total_exposure_cents: Summed size of open orders.
        daily_trade_count: Orders opened since local midnight.
        daily_pnl_cents: Summed realised P&L of orders opened since local midnight.

    """

    balance_cents: int
    open_position_count: int
    total_exposure_cents: int
    daily_trade_count: int
    daily_pnl_cents: int

    def to_dict(self) -> dict[str, int]:
        """Serialise for the order audit trail."""
        return {
            "balance_cents": self.balance_cents,
            "open_position_count": self.open_position_count,
            "total_exposure_cents": self.total_exposure_cents,
            "daily_trade_count": self.daily_trade_count,
            "daily_pnl_cents": self.daily_pnl_cents,
        }


@dataclass(frozen=True)
class TradeDecision:
    """Outcome of the risk gate for one trade request.

    Args:
        approved: Whether the trade may be executed.
        position_size_cents: Sized position; 0 when rejected.
        contract_count: Contracts to buy; 0 when rejected.
        stats: Statistics the decision was based on.
        rejection_reason: Why the trade was rejected, if it was.

    """

    approved: bool
    position_size_cents: int
    contract_count: int
    stats: TradingStats
    rejection_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the order audit trail."""
        return {
            "approved": self.approved,
            "position_size_cents": self.position_size_cents,
            "contract_count": self.contract_count,
            "rejection_reason": self.rejection_reason,
            "stats": self.stats.to_dict(),
        }
