"""CLI command for listing a sport's upcoming and live games.

Fetch the schedule from the Shipp feed, which also stores every game in the
database so ``value-bet`` can find it by id.
"""

import asyncio
from typing import Annotated

import typer

from alph_bot.apps.alph.cli._helpers import (
    configure_logging,
    open_repository,
    parse_sport,
    resolve_db_url,
)
from alph_bot.clients.shipp import ScheduleGame, ShippClient, ShippError
from alph_bot.core.config import ConfigLoader, get_config
from alph_bot.core.models import Sport


async def fetch_schedule(
    sport: Sport, db_url: str, loader: ConfigLoader, shipp_api_key: str | None = None
) -> list[ScheduleGame]:
    """Fetch and persist the schedule for ``sport``."""
    repository = await open_repository(db_url)
    try:
        async with ShippClient.from_config(repository, loader, api_key=shipp_api_key) as feed:
            return await feed.get_schedule(sport)
    finally:
        await repository.close()


def available_games(
    sport: Annotated[str, typer.Option(help="NBA, NFL, NCAAFB, MLB or Soccer")] = "NBA",
    db_url: Annotated[str | None, typer.Option(help="SQLAlchemy async DB URL")] = None,
    shipp_api_key: Annotated[
        str | None,
        typer.Option(help="Shipp API key", envvar="ALPH_BOT_SHIPP_API_KEY"),
    ] = None,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """List games on a sport's schedule and store them for trading."""
    configure_logging(verbose)
    selected = parse_sport(sport)
    loader = get_config()

    try:
        games = asyncio.run(
            fetch_schedule(selected, resolve_db_url(db_url, loader), loader, shipp_api_key)
        )
    except ShippError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not games:
        typer.echo(f"No {selected.value} games found.")
        return

    typer.echo(f"{'Game ID':<40} {'Matchup':<50} {'Scheduled':<26} Status")
    typer.echo("-" * 126)
    for game in games:
        matchup = f"{game.away or '?'} @ {game.home or '?'}"
        typer.echo(
            f"{game.game_id:<40} {matchup:<50} {game.scheduled or 'TBD':<26} {game.status.value}"
        )
