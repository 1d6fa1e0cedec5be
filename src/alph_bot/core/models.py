"""Core data models shared across the alph-bot application.

Define the enums and immutable value objects that flow between the
exchange, sports feed and forecaster clients and the value-bet engine:
market snapshots, probability estimates, trade candidates and order
results. Prices are integer cents; probabilities are floats in [0, 1].
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CENTS_PER_DOLLAR = 100


class Side(Enum):
    """Contract side of a binary market: YES or NO."""

    YES = "yes"
    NO = "no"


class Confidence(Enum):
    """Forecaster confidence tier, ordered low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Return the ordinal rank used by the confidence gate."""
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class GameStatus(Enum):
    """Lifecycle status of a tracked game, ordered scheduled < live < completed."""

    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Return the ordinal rank used to keep transitions monotonic."""
        return _STATUS_RANK[self]


_STATUS_RANK = {GameStatus.SCHEDULED: 0, GameStatus.LIVE: 1, GameStatus.COMPLETED: 2}


class Sport(Enum):
    """Sports and leagues supported by the live event feed."""

    NBA = "NBA"
    NFL = "NFL"
    NCAAFB = "NCAAFB"
    MLB = "MLB"
    SOCCER = "Soccer"


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time snapshot of a binary prediction market.

    All prices are best quotes in cents (1-99), with 0 for an empty side of
    the book. The engine re-fetches a snapshot before every evaluation and
    never trades on a cached one.

    Args:
        ticker: Exchange market ticker.
        event_ticker: Ticker of the event grouping this market.
        title: Human-readable market question.
        yes_sub_title: Description of the YES outcome.
        no_sub_title: Description of the NO outcome.
        status: Exchange market status (``"active"`` when tradable).
        yes_bid: Best YES bid in cents.
        yes_ask: Best YES ask in cents.
        no_bid: Best NO bid in cents.
        no_ask: Best NO ask in cents.
        last_price: Last traded YES price in cents.
        volume: Contracts traded.
        open_interest: Contracts outstanding.
        close_time: ISO-8601 close time.

    """

    ticker: str
    event_ticker: str
    title: str
    yes_sub_title: str
    no_sub_title: str
    status: str
    yes_bid: int
    yes_ask: int
    no_bid: int
    no_ask: int
    last_price: int = 0
    volume: int = 0
    open_interest: int = 0
    close_time: str = ""

    @property
    def is_active(self) -> bool:
        """Return whether the market is currently open for trading."""
        return self.status == "active"


@dataclass(frozen=True)
class MarketDescriptor:
    """The subset of a market the forecaster needs to frame its question."""

    ticker: str
    title: str
    yes_sub_title: str
    no_sub_title: str

    @classmethod
    def from_snapshot(cls, snapshot: MarketSnapshot) -> "MarketDescriptor":
        """Build a descriptor from a market snapshot."""
        return cls(
            ticker=snapshot.ticker,
            title=snapshot.title,
            yes_sub_title=snapshot.yes_sub_title,
            no_sub_title=snapshot.no_sub_title,
        )


@dataclass(frozen=True)
class ProbabilityEstimate:
    """Forecaster estimate that the YES outcome of a market occurs.

    Args:
        yes_probability: Probability of YES, between 0 and 1.
        confidence: Forecaster's confidence tier.
        reasoning: Free-text rationale.

    Raises:
        ValueError: If ``yes_probability`` is outside [0, 1].

    """

    yes_probability: float
    confidence: Confidence
    reasoning: str

    def __post_init__(self) -> None:
        """Validate the probability is within [0, 1]."""
        if not (0.0 <= self.yes_probability <= 1.0):
            msg = f"yes_probability must be between 0 and 1, got {self.yes_probability}"
            raise ValueError(msg)

    @classmethod
    def clamped(
        cls, yes_probability: float, confidence: Confidence, reasoning: str
    ) -> "ProbabilityEstimate":
        """Build an estimate with the probability clamped into [0, 1]."""
        return cls(
            yes_probability=max(0.0, min(1.0, yes_probability)),
            confidence=confidence,
            reasoning=reasoning,
        )

    def probability_for(self, side: Side) -> float:
        """Return the probability attributed to ``side``."""
        if side == Side.YES:
            return self.yes_probability
        return 1.0 - self.yes_probability

    def to_dict(self) -> dict[str, Any]:
        """Serialise for the order audit trail."""
        return {
            "yes_probability": self.yes_probability,
            "confidence": self.confidence.value,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class TradeCandidate:
    """A side worth buying, as chosen by the edge evaluator.

    Args:
        side: Contract side to buy.
        probability: Estimated probability that ``side`` wins.
        price_cents: Ask price for ``side`` in cents.

    """

    side: Side
    probability: float
    price_cents: int


@dataclass(frozen=True)
class OrderResult:
    """Exchange acknowledgement of a submitted order."""

    order_id: str
    status: str
    fill_count: int = 0
    initial_count: int = 0


def _empty_events() -> list[dict[str, Any]]:
    """Create an empty event list."""
    return []


@dataclass(frozen=True)
class LiveEventBatch:
    """New live events returned by one feed poll.

    Args:
        connection_id: Feed connection the events were read from.
        events: Events for the requested game, oldest first.

    """

    connection_id: str
    events: list[dict[str, Any]] = field(default_factory=_empty_events)

    @property
    def last_event_id(self) -> str | None:
        """Return the id of the newest event, if it carries one."""
        if not self.events:
            return None
        last = self.events[-1]
        event_id = last.get("event_id") or last.get("id")
        return str(event_id) if event_id else None
