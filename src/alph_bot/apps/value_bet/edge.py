"""Edge evaluator for binary markets.

Compare a probability estimate against both sides' ask prices and pick the
side with positive expected value. Pure functions with no I/O.
"""

from alph_bot.core.models import (
    CENTS_PER_DOLLAR,
    MarketSnapshot,
    ProbabilityEstimate,
    Side,
    TradeCandidate,
)


def _side_edge(probability: float, ask: int) -> float | None:
    """Return ``probability - ask / 100``, or None when the side has no offer.

    An ask of 0 means the book is empty on that side and 100 or more can
    never pay out, so neither is a price that can be bought.
    """
    if not 0 < ask < CENTS_PER_DOLLAR:
        return None
    return probability - ask / CENTS_PER_DOLLAR


def evaluate_edge(yes_probability: float, yes_ask: int, no_ask: int) -> TradeCandidate | None:
    """Return the side worth buying, or None when neither side has edge.

    The YES edge is ``p - yes_ask / 100`` and the NO edge is
    ``(1 - p) - no_ask / 100``. YES is chosen only when its edge is
    positive and strictly greater than the NO edge, so ties go to NO if
    NO's edge is positive and to no trade otherwise. A side without an
    offer (ask outside 1-99) has no edge and cannot be chosen.

    Args:
        yes_probability: Probability of YES, already clamped to [0, 1].
        yes_ask: Best YES ask in cents, 0 when nobody is offering.
        no_ask: Best NO ask in cents, 0 when nobody is offering.

    Returns:
        The chosen side, its probability and its ask price, or None.

    """
    no_probability = 1 - yes_probability
    yes_edge = _side_edge(yes_probability, yes_ask)
    no_edge = _side_edge(no_probability, no_ask)

    if yes_edge is not None and yes_edge > 0 and (no_edge is None or yes_edge > no_edge):
        return TradeCandidate(side=Side.YES, probability=yes_probability, price_cents=yes_ask)
    if no_edge is not None and no_edge > 0:
        return TradeCandidate(side=Side.NO, probability=no_probability, price_cents=no_ask)
    return None


def evaluate_market(estimate: ProbabilityEstimate, market: MarketSnapshot) -> TradeCandidate | None:
    """Apply ``evaluate_edge`` to an estimate and a market snapshot."""
    return evaluate_edge(estimate.yes_probability, market.yes_ask, market.no_ask)
