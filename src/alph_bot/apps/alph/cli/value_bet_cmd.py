"""CLI command for running the value-bet trading loop.

Wire the Kalshi exchange, Shipp feed, forecaster and risk manager together
and run one trading loop per ``--game``. SIGINT and SIGTERM stop every loop
at its next sleep. Paper mode records orders without submitting them.
"""

import asyncio
import logging
import signal
from typing import Annotated

import typer

from alph_bot.apps.alph.cli._helpers import configure_logging, open_repository, resolve_db_url
from alph_bot.apps.value_bet.config import ValueBetConfig
from alph_bot.apps.value_bet.loop import TradingDeps, TradingLoop, TradingLoopResult
from alph_bot.apps.value_bet.risk_manager import RiskManager
from alph_bot.clients.ai import AiAdapter, AiError, AiProvider
from alph_bot.clients.kalshi import KalshiClient
from alph_bot.clients.shipp import ShippClient
from alph_bot.core.config import ConfigError, ConfigLoader, get_config
from alph_bot.core.models import Confidence

logger = logging.getLogger(__name__)


async def run_value_bet(  # noqa: PLR0913
    game_ids: list[str],
    config: ValueBetConfig,
    *,
    db_url: str,
    ai_provider: AiProvider,
    ai_model: str,
    ai_temperature: float,
    ai_api_key: str | None,
    loader: ConfigLoader,
    kalshi_api_key_id: str | None = None,
    kalshi_private_key_path: str | None = None,
    shipp_api_key: str | None = None,
) -> list[TradingLoopResult]:
    """Build the collaborators and run one trading loop per game concurrently.

    Args:
        game_ids: External game identifiers to trade.
        config: Risk limits and execution mode.
        db_url: SQLAlchemy async connection string.
        ai_provider: Forecaster provider.
        ai_model: Model identifier.
        ai_temperature: Sampling temperature.
        ai_api_key: Provider API key, if the provider needs one.
        loader: Configuration source for client credentials.
        kalshi_api_key_id: Overrides the configured Kalshi API key id.
        kalshi_private_key_path: Overrides the configured Kalshi private key path.
        shipp_api_key: Overrides the configured Shipp API key.

    Returns:
        One result per game, in the order given.

    """
    repository = await open_repository(db_url)
    exchange = None
    feed = None
    forecaster = None
    event_loop = asyncio.get_running_loop()
    cancel = asyncio.Event()

    def _handle_shutdown() -> None:
        logger.info("Shutdown signal received")
        cancel.set()

    try:
        exchange = KalshiClient.from_config(
            demo=config.demo,
            loader=loader,
            api_key_id=kalshi_api_key_id,
            private_key_path=kalshi_private_key_path,
        )
        feed = ShippClient.from_config(repository, loader, api_key=shipp_api_key)
        forecaster = await AiAdapter.create(
            ai_provider, model=ai_model, temperature=ai_temperature, api_key=ai_api_key
        )
        deps = TradingDeps(
            feed=feed,
            exchange=exchange,
            forecaster=forecaster,
            risk_manager=RiskManager(config, exchange, repository),
            repository=repository,
        )

        event_loop.add_signal_handler(signal.SIGINT, _handle_shutdown)
        event_loop.add_signal_handler(signal.SIGTERM, _handle_shutdown)
        return list(
            await asyncio.gather(
                *(TradingLoop(config, deps).run(game_id, cancel) for game_id in game_ids)
            )
        )
    finally:
        event_loop.remove_signal_handler(signal.SIGINT)
        event_loop.remove_signal_handler(signal.SIGTERM)
        if forecaster is not None:
            await forecaster.close()
        if feed is not None:
            await feed.close()
        if exchange is not None:
            await exchange.close()
        await repository.close()


def value_bet(  # noqa: PLR0913
    game: Annotated[
        list[str], typer.Option("--game", "-g", help="Game ID to trade (repeatable)")
    ],
    min_edge_pct: Annotated[
        float | None, typer.Option(help="Minimum edge in percentage points [default: 5]")
    ] = None,
    min_confidence: Annotated[
        str | None, typer.Option(help="Minimum confidence: low, medium, high [default: medium]")
    ] = None,
    kelly_fraction: Annotated[
        float | None, typer.Option(help="Fractional Kelly multiplier [default: 0.25]")
    ] = None,
    max_total_exposure_usd: Annotated[
        float | None, typer.Option(help="Max notional across open orders [default: 10000]")
    ] = None,
    max_position_size_usd: Annotated[
        float | None, typer.Option(help="Max size of a single position [default: 1000]")
    ] = None,
    max_single_market_percent: Annotated[
        float | None, typer.Option(help="Max share of exposure in one market [default: 20]")
    ] = None,
    max_daily_loss_usd: Annotated[
        float | None, typer.Option(help="Stop after this realised loss today [default: 500]")
    ] = None,
    max_daily_trades: Annotated[
        int | None, typer.Option(help="Stop after this many trades today [default: 50]")
    ] = None,
    min_account_balance_usd: Annotated[
        float | None, typer.Option(help="Stop below this balance [default: 100]")
    ] = None,
    poll_interval: Annotated[
        float | None, typer.Option(help="Seconds between polls [default: 10]")
    ] = None,
    paper: Annotated[  # noqa: FBT002
        bool, typer.Option("--paper", help="Record orders without submitting them")
    ] = False,
    demo: Annotated[  # noqa: FBT002
        bool, typer.Option("--demo", help="Use the Kalshi demo environment")
    ] = False,
    db_url: Annotated[str | None, typer.Option(help="SQLAlchemy async DB URL")] = None,
    kalshi_api_key_id: Annotated[
        str | None,
        typer.Option(help="Kalshi API key id", envvar="ALPH_BOT_KALSHI_API_KEY_ID"),
    ] = None,
    kalshi_private_key_path: Annotated[
        str | None,
        typer.Option(
            help="Path to the Kalshi RSA private key",
            envvar="ALPH_BOT_KALSHI_PRIVATE_KEY_PATH",
        ),
    ] = None,
    shipp_api_key: Annotated[
        str | None,
        typer.Option(help="Shipp API key", envvar="ALPH_BOT_SHIPP_API_KEY"),
    ] = None,
    ai_provider: Annotated[
        str | None, typer.Option(help="Forecaster provider: anthropic or claude-cli")
    ] = None,
    ai_model: Annotated[str | None, typer.Option(help="Forecaster model")] = None,
    ai_model_temperature: Annotated[
        float | None, typer.Option(help="Forecaster sampling temperature (0-2)")
    ] = None,
    ai_provider_api_key: Annotated[
        str | None,
        typer.Option(help="Forecaster API key", envvar="ALPH_BOT_AI_PROVIDER_API_KEY"),
    ] = None,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Trade a live game's markets on forecaster edge, within risk limits."""
    configure_logging(verbose)
    loader = get_config()

    try:
        config = ValueBetConfig.from_loader(
            loader,
            min_edge_pct=min_edge_pct,
            min_confidence=Confidence(min_confidence) if min_confidence else None,
            kelly_fraction=kelly_fraction,
            max_total_exposure_usd=max_total_exposure_usd,
            max_position_size_usd=max_position_size_usd,
            max_single_market_percent=max_single_market_percent,
            max_daily_loss_usd=max_daily_loss_usd,
            max_daily_trades=max_daily_trades,
            min_account_balance_usd=min_account_balance_usd,
            poll_interval_seconds=poll_interval,
            paper=paper or None,
            demo=demo or None,
        )
        ai = loader.ai_settings(
            provider=ai_provider,
            model=ai_model,
            temperature=ai_model_temperature,
            api_key=ai_provider_api_key,
        )
        provider = AiProvider(ai.provider)
    except (ValueError, ConfigError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    mode = "PAPER" if config.paper else "LIVE"
    env = "demo" if config.demo else "production"
    typer.echo(f"Starting value-bet ({mode}, Kalshi {env}) for {len(game)} game(s)")

    try:
        results = asyncio.run(
            run_value_bet(
                list(game),
                config,
                db_url=resolve_db_url(db_url, loader),
                ai_provider=provider,
                ai_model=ai.model,
                ai_temperature=ai.temperature,
                ai_api_key=ai.api_key,
                loader=loader,
                kalshi_api_key_id=kalshi_api_key_id,
                kalshi_private_key_path=kalshi_private_key_path,
                shipp_api_key=shipp_api_key,
            )
        )
    except (ValueError, FileNotFoundError, ConfigError, AiError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    for result in results:
        typer.echo(
            f"{result.game_id}: {result.exit_reason.value} "
            f"(ticks={result.ticks}, events={result.events_seen}, "
            f"orders={result.orders_placed}, errors={result.errors})"
        )
