"""Parsing helpers and series mappings for Kalshi market data."""

from typing import Any

from alph_bot.core.models import MarketSnapshot, OrderResult, Sport

SOCCER_SERIES_TICKERS: tuple[str, ...] = (
    "KXEPLGAME",
    "KXUCLGAME",
    "KXLALIGAGAME",
    "KXSERIEAGAME",
    "KXBUNDESLIGAGAME",
    "KXLIGUE1GAME",
    "KXMLSGAME",
)

# None queries events without a series filter.
_SERIES_BY_SPORT: dict[Sport, tuple[str | None, ...]] = {
    Sport.NBA: ("KXNBAGAME",),
    Sport.NFL: ("KXNFLGAME",),
    Sport.NCAAFB: (None,),
    Sport.MLB: ("KXMLBGAME",),
    Sport.SOCCER: SOCCER_SERIES_TICKERS,
}


def series_tickers_for(sport: Sport) -> tuple[str | None, ...]:
    """Return the Kalshi series tickers that list game markets for ``sport``."""
    return _SERIES_BY_SPORT.get(sport, ())


def _int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    return int(value) if value is not None else 0


def market_from_json(data: dict[str, Any]) -> MarketSnapshot:
    """Build a ``MarketSnapshot`` from a Kalshi market payload.

    Args:
        data: A ``market`` object from the markets or events endpoints.

    Returns:
        The parsed snapshot; missing prices default to 0, which marks a side
        with no offers.

    """
    return MarketSnapshot(
        ticker=str(data["ticker"]),
        event_ticker=str(data.get("event_ticker", "")),
        title=str(data.get("title", "")),
        yes_sub_title=str(data.get("yes_sub_title", "")),
        no_sub_title=str(data.get("no_sub_title", "")),
        status=str(data.get("status", "")),
        yes_bid=_int(data, "yes_bid"),
        yes_ask=_int(data, "yes_ask"),
        no_bid=_int(data, "no_bid"),
        no_ask=_int(data, "no_ask"),
        last_price=_int(data, "last_price"),
        volume=_int(data, "volume"),
        open_interest=_int(data, "open_interest"),
        close_time=str(data.get("close_time") or ""),
    )


def order_from_json(data: dict[str, Any]) -> OrderResult:
    """Build an ``OrderResult`` from a Kalshi order payload."""
    return OrderResult(
        order_id=str(data["order_id"]),
        status=str(data.get("status", "")),
        fill_count=_int(data, "fill_count"),
        initial_count=_int(data, "initial_count"),
    )
