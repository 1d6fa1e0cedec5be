"""Polling trading loop that drives one game from schedule to completion.

Resolve the game, discover its markets, then repeatedly poll the live feed.
Each tick with new events re-evaluates every market against the full event
history: fresh snapshot, forecast, edge, risk gate, and (paper or live)
execution with an audited ``Order`` row. A failure in one market is logged
and the tick moves on; a failure escaping the tick is logged and retried
after twice the poll interval. The loop stops only when the game is
observed completed or the cancellation event is set.
"""

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from alph_bot.apps.value_bet.config import ValueBetConfig
from alph_bot.apps.value_bet.edge import evaluate_market
from alph_bot.apps.value_bet.models import TradeDecision, TradeRequest
from alph_bot.apps.value_bet.risk_manager import RiskManager
from alph_bot.core.models import (
    CENTS_PER_DOLLAR,
    GameStatus,
    MarketDescriptor,
    MarketSnapshot,
    ProbabilityEstimate,
    Sport,
    TradeCandidate,
)
from alph_bot.core.protocols import ExchangeClient, FeedClient, Forecaster
from alph_bot.core.timestamps import format_epoch_seconds, now_ms, now_seconds
from alph_bot.storage.models import Game, Order
from alph_bot.storage.repository import TradingRepository

logger = logging.getLogger(__name__)

RESOLUTION_SPORTS: tuple[Sport, ...] = (
    Sport.NBA,
    Sport.NFL,
    Sport.NCAAFB,
    Sport.MLB,
    Sport.SOCCER,
)

_EVENT_LIMIT = 100
_BACKOFF_MULTIPLIER = 2
_MARKET_TYPE = "kalshi"
_STRATEGY = "value-bet"


class LoopExit(Enum):
    """Why a trading loop run ended."""

    GAME_NOT_FOUND = "game_not_found"
    ALREADY_COMPLETED = "already_completed"
    NO_MARKETS = "no_markets"
    DISCOVERY_FAILED = "discovery_failed"
    GAME_COMPLETED = "game_completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TradingLoopResult:
    """Summary of one trading loop run.

    Args:
        game_id: External game identifier.
        exit_reason: Why the run ended.
        ticks: Poll ticks started.
        events_seen: Live events accumulated.
        orders_placed: Paper or live orders recorded.
        errors: Per-market and tick-level failures.

    """

    game_id: str
    exit_reason: LoopExit
    ticks: int = 0
    events_seen: int = 0
    orders_placed: int = 0
    errors: int = 0


@dataclass(frozen=True)
class TradingDeps:
    """Collaborators of the trading loop.

    Args:
        feed: Live sports feed.
        exchange: Prediction-market exchange.
        forecaster: Probability provider.
        risk_manager: Trade gate and sizer.
        repository: Game and order persistence.

    """

    feed: FeedClient
    exchange: ExchangeClient
    forecaster: Forecaster
    risk_manager: RiskManager
    repository: TradingRepository


class TradingLoop:
    """Drive one game through polling, evaluation and execution.

    Args:
        config: Risk limits, poll interval and execution mode.
        deps: Collaborators.

    """

    def __init__(self, config: ValueBetConfig, deps: TradingDeps) -> None:
        """Initialize the trading loop.

        Args:
            config: Risk limits, poll interval and execution mode.
            deps: Collaborators.

        """
        self._config = config
        self._feed = deps.feed
        self._exchange = deps.exchange
        self._forecaster = deps.forecaster
        self._risk_manager = deps.risk_manager
        self._repository = deps.repository
        self._ticks = 0
        self._events_seen = 0
        self._orders_placed = 0
        self._errors = 0

    async def run(self, game_id: str, cancel: asyncio.Event | None = None) -> TradingLoopResult:
        """Run the loop for ``game_id`` until completion or cancellation.

        Args:
            game_id: External game identifier.
            cancel: Event that stops the loop between ticks and interrupts sleeps.

        Returns:
            Summary of the run.

        """
        cancel = cancel if cancel is not None else asyncio.Event()
        logger.info("Starting trading loop for game %s", game_id)

        game = await self._resolve_game(game_id)
        if game is None:
            logger.error(
                "Game %s not found. Run 'available-games' first to populate the database.",
                game_id,
            )
            return self._result(game_id, LoopExit.GAME_NOT_FOUND)

        if game.status == GameStatus.COMPLETED.value:
            logger.info("Game %s has already completed", game_id)
            return self._result(game_id, LoopExit.ALREADY_COMPLETED)

        if game.status == GameStatus.SCHEDULED.value:
            start = (
                format_epoch_seconds(game.scheduled_start_time)
                if game.scheduled_start_time is not None
                else "TBD"
            )
            logger.info("Game %s is scheduled for %s, will poll until live", game_id, start)

        sport = Sport(game.sport)
        try:
            markets = await self._discover_markets(game, sport)
        except Exception:
            logger.exception("Market discovery failed for game %s", game_id)
            return self._result(game_id, LoopExit.DISCOVERY_FAILED)

        if not markets:
            logger.info("No markets found for %s @ %s", game.away_team, game.home_team)
            return self._result(game_id, LoopExit.NO_MARKETS)

        events: list[dict[str, Any]] = []
        last_event_id: str | None = None
        interval = self._config.poll_interval_seconds

        while not cancel.is_set():
            self._ticks += 1
            try:
                batch = await self._feed.get_live_events(
                    game_id, sport, since_event_id=last_event_id, limit=_EVENT_LIMIT
                )

                if not batch.events:
                    fresh = await self._repository.get_game(game_id)
                    if fresh is not None and fresh.status == GameStatus.COMPLETED.value:
                        logger.info("Game %s completed, exiting loop", game_id)
                        return self._result(game_id, LoopExit.GAME_COMPLETED)
                    await self._sleep(interval, cancel)
                    continue

                events.extend(batch.events)
                last_event_id = batch.last_event_id or last_event_id
                self._events_seen = len(events)
                logger.debug("Accumulated %d total events", len(events))

                for market in markets:
                    try:
                        if await self._process_market(market, game_id, sport, events):
                            self._orders_placed += 1
                    except Exception:
                        self._errors += 1
                        logger.exception("Error processing market %s", market.ticker)

                await self._log_stats()
                await self._sleep(interval, cancel)
            except Exception:
                self._errors += 1
                backoff = interval * _BACKOFF_MULTIPLIER
                logger.exception("Error in trading loop, retrying in %.0fs", backoff)
                await self._sleep(backoff, cancel)

        logger.info("Trading loop for game %s cancelled", game_id)
        return self._result(game_id, LoopExit.CANCELLED)

    async def _resolve_game(self, game_id: str) -> Game | None:
        """Read the game, fetching schedules sport by sport if it is unknown."""
        game = await self._repository.get_game(game_id)
        if game is not None:
            return game

        logger.info("Game %s not in database, fetching schedules", game_id)
        for sport in RESOLUTION_SPORTS:
            try:
                await self._feed.get_schedule(sport)
            except Exception as exc:
                logger.warning("Could not fetch %s schedule: %s", sport.value, exc)
                continue
            game = await self._repository.get_game(game_id)
            if game is not None:
                return game
        return None

    async def _discover_markets(self, game: Game, sport: Sport) -> list[MarketSnapshot]:
        """Search the exchange for markets on this game around its start."""
        home = game.home_team or "Home"
        away = game.away_team or "Away"
        scheduled_ts = (
            game.scheduled_start_time if game.scheduled_start_time is not None else now_seconds()
        )
        logger.info("Looking for markets: %s @ %s", away, home)
        return await self._exchange.search_markets(home, away, scheduled_ts, sport)

    async def _process_market(
        self,
        market: MarketSnapshot,
        game_id: str,
        sport: Sport,
        events: list[dict[str, Any]],
    ) -> bool:
        """Evaluate one market and execute an approved trade.

        Args:
            market: Market discovered for the game; re-fetched before use.
            game_id: External game identifier.
            sport: Sport of the game.
            events: Full event history, shared across markets and ticks.

        Returns:
            True if an order was recorded.

        """
        fresh = await self._exchange.get_market(market.ticker)
        if not fresh.is_active:
            logger.debug("Skipping inactive market %s (%s)", fresh.ticker, fresh.status)
            return False

        estimate = await self._forecaster.estimate_probability(
            sport.value, game_id, events, MarketDescriptor.from_snapshot(fresh)
        )

        candidate = evaluate_market(estimate, fresh)
        if candidate is None:
            logger.debug(
                "No edge on %s: yes_ask=%dc no_ask=%dc P(yes)=%.3f",
                fresh.ticker,
                fresh.yes_ask,
                fresh.no_ask,
                estimate.yes_probability,
            )
            return False

        decision = await self._risk_manager.check_trade(
            TradeRequest.from_candidate(
                candidate,
                market_id=fresh.ticker,
                game_id=game_id,
                confidence=estimate.confidence,
            )
        )
        if not decision.approved:
            logger.info(
                "SKIP %s %s: %s",
                fresh.ticker,
                candidate.side.value.upper(),
                decision.rejection_reason,
            )
            return False

        await self._execute(fresh, game_id, candidate, estimate, decision)
        return True

    async def _execute(
        self,
        market: MarketSnapshot,
        game_id: str,
        candidate: TradeCandidate,
        estimate: ProbabilityEstimate,
        decision: TradeDecision,
    ) -> None:
        """Record a paper order or submit a live one, then persist it."""
        side = candidate.side
        external_order_id: str | None = None
        submitted_at: int | None = None

        if self._config.paper:
            logger.info(
                "PAPER %s %dx %s @ %dc | P(%s)=%.3f | conf=%s",
                side.value.upper(),
                decision.contract_count,
                market.ticker,
                candidate.price_cents,
                side.value,
                candidate.probability,
                estimate.confidence.value,
            )
            status = "paper"
        else:
            logger.info(
                "LIVE %s %dx %s @ %dc",
                side.value.upper(),
                decision.contract_count,
                market.ticker,
                candidate.price_cents,
            )
            result = await self._exchange.create_order(
                market.ticker,
                side,
                decision.contract_count,
                action="buy",
                order_type="market",
            )
            status = "open"
            external_order_id = result.order_id
            submitted_at = now_ms()

        order = Order(
            market_type=_MARKET_TYPE,
            market_id=market.ticker,
            market_title=market.title,
            side=side.value,
            size=decision.position_size_cents,
            entry_price=candidate.price_cents,
            status=status,
            opened_at=now_ms(),
            strategy=_STRATEGY,
            game_id=game_id,
            metadata_json=json.dumps(
                {"estimate": estimate.to_dict(), "risk_check": decision.to_dict()}
            ),
            external_order_id=external_order_id,
            submitted_at=submitted_at,
        )
        try:
            await self._repository.add_order(order)
        except Exception:
            if external_order_id is not None:
                # The exchange holds this order; reconcile it by hand.
                logger.error(
                    "Order %s for %s %dx %s was placed but could not be recorded",
                    external_order_id,
                    side.value.upper(),
                    decision.contract_count,
                    market.ticker,
                )
            raise

    async def _log_stats(self) -> None:
        """Log the account summary for this tick."""
        stats = await self._risk_manager.get_stats()
        summary = " | ".join(
            (
                f"Balance: ${stats.balance_cents / CENTS_PER_DOLLAR:.2f}",
                f"Open: {stats.open_position_count}",
                f"Exposure: ${stats.total_exposure_cents / CENTS_PER_DOLLAR:.2f}",
                f"Today: {stats.daily_trade_count} trades",
                f"PnL: ${stats.daily_pnl_cents / CENTS_PER_DOLLAR:.2f}",
            )
        )
        logger.info("[STATS] %s", summary)

    async def _sleep(self, seconds: float, cancel: asyncio.Event) -> None:
        """Wait ``seconds`` or until ``cancel`` is set, whichever comes first."""
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(cancel.wait(), timeout=seconds)

    def _result(self, game_id: str, exit_reason: LoopExit) -> TradingLoopResult:
        return TradingLoopResult(
            game_id=game_id,
            exit_reason=exit_reason,
            ticks=self._ticks,
            events_seen=self._events_seen,
            orders_placed=self._orders_placed,
            errors=self._errors,
        )
