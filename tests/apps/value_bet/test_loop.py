"""Tests for the value-bet trading loop."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import replace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from alph_bot.apps.value_bet.config import ValueBetConfig
from alph_bot.apps.value_bet.loop import LoopExit, TradingDeps, TradingLoop
from alph_bot.apps.value_bet.risk_manager import RiskManager
from alph_bot.clients.kalshi.exceptions import KalshiAPIError
from alph_bot.core.models import (
    Confidence,
    GameStatus,
    LiveEventBatch,
    MarketSnapshot,
    OrderResult,
    ProbabilityEstimate,
    Side,
    Sport,
)
from alph_bot.storage.repository import TradingRepository

_GAME_ID = "nba-bos-nyk"
_TICKER = "KXNBAGAME-25OCT19BOSNYK-BOS"
_OTHER_TICKER = "KXNBAGAME-25OCT19BOSNYK-NYK"
_POLL = 10.0
_BALANCE = 50_000

_Script = list[LiveEventBatch | Exception]


def _market(ticker: str = _TICKER, status: str = "active") -> MarketSnapshot:
    return MarketSnapshot(
        ticker=ticker,
        event_ticker="KXNBAGAME-25OCT19BOSNYK",
        title="Boston at New York Winner?",
        yes_sub_title="Boston",
        no_sub_title="New York",
        status=status,
        yes_bid=48,
        yes_ask=50,
        no_bid=50,
        no_ask=52,
    )


def _batch(*event_ids: str) -> LiveEventBatch:
    return LiveEventBatch(
        connection_id="conn-1",
        events=[{"event_id": e, "game_id": _GAME_ID, "type": "score"} for e in event_ids],
    )


def _scripted_feed(repo: TradingRepository, script: _Script) -> AsyncMock:
    """Create a feed that plays ``script`` and then reports the game completed."""
    remaining = list(script)

    async def get_live_events(
        game_id: str,
        sport: Sport,  # noqa: ARG001
        since_event_id: str | None = None,  # noqa: ARG001
        limit: int = 100,  # noqa: ARG001
    ) -> LiveEventBatch:
        if remaining:
            step = remaining.pop(0)
            if isinstance(step, Exception):
                raise step
            return step
        await repo.update_game_status(game_id, GameStatus.COMPLETED)
        return LiveEventBatch(connection_id="conn-1")

    feed = AsyncMock()
    feed.get_live_events = AsyncMock(side_effect=get_live_events)
    feed.get_schedule = AsyncMock(return_value=[])
    return feed


def _exchange(markets: list[MarketSnapshot] | None = None) -> AsyncMock:
    exchange = AsyncMock()
    exchange.search_markets.return_value = markets if markets is not None else [_market()]
    exchange.get_market.side_effect = lambda ticker: _market(ticker)  # pyright: ignore[reportUnknownLambdaType]
    exchange.get_balance.return_value = _BALANCE
    exchange.create_order.return_value = OrderResult(order_id="ord-1", status="executed")
    return exchange


def _forecaster(probability: float = 0.70, confidence: Confidence = Confidence.HIGH) -> AsyncMock:
    forecaster = AsyncMock()
    forecaster.estimate_probability.return_value = ProbabilityEstimate(
        probability, confidence, "Boston up 12 at the half."
    )
    return forecaster


@pytest_asyncio.fixture
async def repo() -> AsyncIterator[TradingRepository]:
    """Create an in-memory repository holding one scheduled game."""
    repository = TradingRepository("sqlite+aiosqlite:///:memory:")
    await repository.init_db()
    await repository.upsert_game(
        _GAME_ID,
        "NBA",
        home_team="New York Knicks",
        away_team="Boston Celtics",
        scheduled_start_time=1_760_900_000,
    )
    yield repository
    await repository.close()


def _make_loop(
    repo: TradingRepository,
    feed: AsyncMock,
    exchange: AsyncMock | None = None,
    forecaster: AsyncMock | None = None,
    config: ValueBetConfig | None = None,
) -> tuple[TradingLoop, AsyncMock]:
    """Build a loop whose sleeps return immediately."""
    cfg = config or ValueBetConfig(paper=True, poll_interval_seconds=_POLL)
    exchange = exchange or _exchange()
    deps = TradingDeps(
        feed=feed,
        exchange=exchange,
        forecaster=forecaster or _forecaster(),
        risk_manager=RiskManager(cfg, exchange, repo),
        repository=repo,
    )
    loop = TradingLoop(cfg, deps)
    sleep = AsyncMock()
    loop._sleep = sleep  # pyright: ignore[reportPrivateUsage]
    return loop, sleep


class TestStartup:
    """Tests for game resolution and market discovery."""

    @pytest.mark.asyncio
    async def test_already_completed(self, repo: TradingRepository) -> None:
        """Test a completed game exits before polling."""
        await repo.update_game_status(_GAME_ID, GameStatus.COMPLETED)
        feed = _scripted_feed(repo, [])
        loop, _ = _make_loop(repo, feed)

        result = await loop.run(_GAME_ID)

        assert result.exit_reason == LoopExit.ALREADY_COMPLETED
        feed.get_live_events.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_game_not_found(self, repo: TradingRepository) -> None:
        """Test an unknown game is looked up in every sport's schedule."""
        feed = _scripted_feed(repo, [])
        loop, _ = _make_loop(repo, feed)

        result = await loop.run("unknown-game")

        assert result.exit_reason == LoopExit.GAME_NOT_FOUND
        assert feed.get_schedule.await_count == len(Sport)

    @pytest.mark.asyncio
    async def test_game_found_in_later_schedule(self, repo: TradingRepository) -> None:
        """Test schedule failures are skipped until the game appears."""

        async def get_schedule(sport: Sport) -> list[Any]:
            if sport == Sport.NBA:
                raise RuntimeError("feed down")
            await repo.upsert_game(
                "nfl-kc-buf",
                "NFL",
                home_team="Buffalo Bills",
                away_team="Kansas City Chiefs",
                scheduled_start_time=1_760_900_000,
            )
            return []

        feed = _scripted_feed(repo, [])
        feed.get_schedule = AsyncMock(side_effect=get_schedule)
        exchange = _exchange(markets=[])
        loop, _ = _make_loop(repo, feed, exchange=exchange)

        result = await loop.run("nfl-kc-buf")

        assert result.exit_reason == LoopExit.NO_MARKETS
        assert feed.get_schedule.await_count == 2
        exchange.search_markets.assert_awaited_once_with(
            "Buffalo Bills", "Kansas City Chiefs", 1_760_900_000, Sport.NFL
        )

    @pytest.mark.asyncio
    async def test_no_markets(self, repo: TradingRepository) -> None:
        """Test a game without markets exits before polling."""
        feed = _scripted_feed(repo, [])
        loop, _ = _make_loop(repo, feed, exchange=_exchange(markets=[]))

        result = await loop.run(_GAME_ID)

        assert result.exit_reason == LoopExit.NO_MARKETS
        feed.get_live_events.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_discovery_failed(self, repo: TradingRepository) -> None:
        """Test a market search failure ends the run."""
        exchange = _exchange()
        exchange.search_markets.side_effect = KalshiAPIError("boom", 500)
        loop, _ = _make_loop(repo, _scripted_feed(repo, []), exchange=exchange)

        result = await loop.run(_GAME_ID)

        assert result.exit_reason == LoopExit.DISCOVERY_FAILED


class TestTradingCycle:
    """Tests for polling, evaluation and execution."""

    @pytest.mark.asyncio
    async def test_paper_trade(self, repo: TradingRepository) -> None:
        """Test a paper cycle records an audited order without submitting it."""
        exchange = _exchange()
        loop, sleep = _make_loop(repo, _scripted_feed(repo, [_batch("e1")]), exchange=exchange)

        result = await loop.run(_GAME_ID)

        assert result.exit_reason == LoopExit.GAME_COMPLETED
        assert result.ticks == 2
        assert result.events_seen == 1
        assert result.orders_placed == 1
        assert result.errors == 0
        exchange.create_order.assert_not_awaited()
        sleep.assert_awaited_once()

        (order,) = await repo.get_orders(game_id=_GAME_ID)
        assert order.status == "paper"
        assert order.side == "yes"
        assert order.market_id == _TICKER
        assert order.entry_price == 50
        assert order.size == 4999
        assert order.strategy == "value-bet"
        assert order.market_type == "kalshi"
        assert order.metadata_json is not None
        audit = json.loads(order.metadata_json)
        assert audit["estimate"]["yes_probability"] == 0.70
        assert audit["risk_check"]["contract_count"] == 99
        assert audit["risk_check"]["approved"] is True

    @pytest.mark.asyncio
    async def test_live_trade(self, repo: TradingRepository) -> None:
        """Test a live cycle submits a market buy and records an open order."""
        exchange = _exchange()
        config = ValueBetConfig(paper=False, poll_interval_seconds=_POLL)
        loop, _ = _make_loop(
            repo, _scripted_feed(repo, [_batch("e1")]), exchange=exchange, config=config
        )

        result = await loop.run(_GAME_ID)

        assert result.orders_placed == 1
        exchange.create_order.assert_awaited_once_with(
            _TICKER, Side.YES, 99, action="buy", order_type="market"
        )
        (order,) = await repo.get_orders()
        assert order.status == "open"
        assert order.external_order_id == "ord-1"
        assert order.submitted_at is not None

    @pytest.mark.asyncio
    async def test_no_edge_places_nothing(self, repo: TradingRepository) -> None:
        """Test a fairly priced market is skipped."""
        loop, _ = _make_loop(
            repo, _scripted_feed(repo, [_batch("e1")]), forecaster=_forecaster(0.5)
        )

        result = await loop.run(_GAME_ID)

        assert result.orders_placed == 0
        assert await repo.get_orders() == []

    @pytest.mark.asyncio
    async def test_risk_rejection_places_nothing(self, repo: TradingRepository) -> None:
        """Test a rejected trade is skipped."""
        loop, _ = _make_loop(
            repo,
            _scripted_feed(repo, [_batch("e1")]),
            forecaster=_forecaster(confidence=Confidence.LOW),
        )

        result = await loop.run(_GAME_ID)

        assert result.orders_placed == 0
        assert result.errors == 0

    @pytest.mark.asyncio
    async def test_inactive_market_is_skipped(self, repo: TradingRepository) -> None:
        """Test the fresh snapshot's status gates the forecast."""
        exchange = _exchange()
        exchange.get_market.side_effect = lambda ticker: _market(ticker, status="closed")  # pyright: ignore[reportUnknownLambdaType]
        forecaster = _forecaster()
        loop, _ = _make_loop(
            repo, _scripted_feed(repo, [_batch("e1")]), exchange=exchange, forecaster=forecaster
        )

        result = await loop.run(_GAME_ID)

        assert result.orders_placed == 0
        forecaster.estimate_probability.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_market_failure_is_isolated(self, repo: TradingRepository) -> None:
        """Test one market's failure does not stop the others."""

        def get_market(ticker: str) -> MarketSnapshot:
            if ticker == _TICKER:
                raise KalshiAPIError("not found", 404)
            return _market(ticker)

        exchange = _exchange(markets=[_market(_TICKER), _market(_OTHER_TICKER)])
        exchange.get_market.side_effect = get_market
        loop, _ = _make_loop(repo, _scripted_feed(repo, [_batch("e1")]), exchange=exchange)

        result = await loop.run(_GAME_ID)

        assert result.errors == 1
        assert result.orders_placed == 1
        (order,) = await repo.get_orders()
        assert order.market_id == _OTHER_TICKER

    @pytest.mark.asyncio
    async def test_one_sided_book_trades_the_offered_side(
        self, repo: TradingRepository
    ) -> None:
        """Test an empty YES book still lets the NO edge trade."""
        one_sided = replace(_market(), yes_bid=0, yes_ask=0, no_bid=18, no_ask=20)
        exchange = _exchange(markets=[one_sided])
        exchange.get_market.side_effect = None
        exchange.get_market.return_value = one_sided
        loop, _ = _make_loop(
            repo,
            _scripted_feed(repo, [_batch("e1")]),
            exchange=exchange,
            forecaster=_forecaster(0.60),
        )

        result = await loop.run(_GAME_ID)

        assert result.errors == 0
        assert result.orders_placed == 1
        (order,) = await repo.get_orders()
        assert order.side == "no"
        assert order.entry_price == 20

    @pytest.mark.asyncio
    async def test_unrecorded_live_order_is_logged(
        self, repo: TradingRepository, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a live fill that fails to persist is reported with its order id."""
        exchange = _exchange()
        config = ValueBetConfig(paper=False, poll_interval_seconds=_POLL)
        loop, _ = _make_loop(
            repo, _scripted_feed(repo, [_batch("e1")]), exchange=exchange, config=config
        )

        with (
            patch.object(repo, "add_order", new=AsyncMock(side_effect=RuntimeError("disk full"))),
            caplog.at_level(logging.ERROR, logger="alph_bot.apps.value_bet.loop"),
        ):
            result = await loop.run(_GAME_ID)

        exchange.create_order.assert_awaited_once()
        assert result.errors == 1
        assert result.orders_placed == 0
        assert any(
            "ord-1" in record.getMessage() and "could not be recorded" in record.getMessage()
            for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_unrecorded_paper_order_is_not_reported_as_placed(
        self, repo: TradingRepository, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a paper order persistence failure is an ordinary market error."""
        loop, _ = _make_loop(repo, _scripted_feed(repo, [_batch("e1")]))

        with (
            patch.object(repo, "add_order", new=AsyncMock(side_effect=RuntimeError("disk full"))),
            caplog.at_level(logging.ERROR, logger="alph_bot.apps.value_bet.loop"),
        ):
            result = await loop.run(_GAME_ID)

        assert result.errors == 1
        assert not any("could not be recorded" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_tick_failure_backs_off(self, repo: TradingRepository) -> None:
        """Test a failing poll is retried after twice the interval."""
        feed = _scripted_feed(repo, [RuntimeError("feed down")])
        loop, sleep = _make_loop(repo, feed)

        result = await loop.run(_GAME_ID)

        assert result.exit_reason == LoopExit.GAME_COMPLETED
        assert result.errors == 1
        assert result.ticks == 2
        sleep.assert_awaited_once()
        assert sleep.await_args is not None
        assert sleep.await_args.args[0] == _POLL * 2

    @pytest.mark.asyncio
    async def test_events_accumulate_and_cursor_advances(self, repo: TradingRepository) -> None:
        """Test each tick forecasts on the full history and polls from the last id."""
        seen: list[int] = []

        async def estimate(
            sport: str,  # noqa: ARG001
            game_id: str,  # noqa: ARG001
            events: list[dict[str, Any]],
            market: Any,  # noqa: ARG001
        ) -> ProbabilityEstimate:
            seen.append(len(events))
            return ProbabilityEstimate(0.5, Confidence.HIGH, "")

        forecaster = AsyncMock()
        forecaster.estimate_probability = AsyncMock(side_effect=estimate)
        feed = _scripted_feed(repo, [_batch("e1"), _batch("e2", "e3")])
        loop, _ = _make_loop(repo, feed, forecaster=forecaster)

        result = await loop.run(_GAME_ID)

        assert seen == [1, 3]
        assert result.events_seen == 3
        since = [call.kwargs["since_event_id"] for call in feed.get_live_events.await_args_list]
        assert since == [None, "e1", "e3"]
        assert forecaster.estimate_probability.await_args is not None
        assert forecaster.estimate_probability.await_args.args[0] == "NBA"


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_stops_between_ticks(self, repo: TradingRepository) -> None:
        """Test setting the event ends the loop after the current tick."""
        cancel = asyncio.Event()
        polls: list[int] = []

        async def get_live_events(*_args: Any, **_kwargs: Any) -> LiveEventBatch:
            polls.append(1)
            if len(polls) == 3:
                cancel.set()
            return LiveEventBatch(connection_id="conn-1")

        feed = _scripted_feed(repo, [])
        feed.get_live_events = AsyncMock(side_effect=get_live_events)
        loop, _ = _make_loop(repo, feed)

        result = await loop.run(_GAME_ID, cancel)

        assert result.exit_reason == LoopExit.CANCELLED
        assert result.ticks == 3

    @pytest.mark.asyncio
    async def test_sleep_wakes_on_cancel(self, repo: TradingRepository) -> None:
        """Test a pending sleep returns as soon as the event is set."""
        loop = TradingLoop(
            ValueBetConfig(),
            TradingDeps(
                feed=AsyncMock(),
                exchange=AsyncMock(),
                forecaster=AsyncMock(),
                risk_manager=AsyncMock(),
                repository=repo,
            ),
        )
        cancel = asyncio.Event()
        sleeper = asyncio.create_task(loop._sleep(3600, cancel))  # pyright: ignore[reportPrivateUsage]
        await asyncio.sleep(0)
        cancel.set()
        await asyncio.wait_for(sleeper, timeout=1)
        assert sleeper.done()

    @pytest.mark.asyncio
    async def test_sleep_times_out(self, repo: TradingRepository) -> None:
        """Test a sleep without cancellation simply elapses."""
        loop = TradingLoop(
            ValueBetConfig(),
            TradingDeps(
                feed=AsyncMock(),
                exchange=AsyncMock(),
                forecaster=AsyncMock(),
                risk_manager=AsyncMock(),
                repository=repo,
            ),
        )
        await loop._sleep(0.01, asyncio.Event())  # pyright: ignore[reportPrivateUsage]
