"""Shared helpers for alph CLI commands.

Centralise logging setup, option parsing and database bootstrapping that
several command modules reuse.
"""

import logging

import typer

from alph_bot.core.config import ConfigLoader
from alph_bot.core.models import Sport
from alph_bot.storage.repository import TradingRepository


def configure_logging(verbose: bool) -> None:  # noqa: FBT001
    """Configure root logging at INFO, or DEBUG when ``verbose`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_sport(value: str) -> Sport:
    """Parse a sport name case-insensitively.

    Raises:
        typer.BadParameter: If the sport is not supported.

    """
    for sport in Sport:
        if sport.value.lower() == value.strip().lower():
            return sport
    names = ", ".join(s.value for s in Sport)
    msg = f"Unknown sport '{value}'. Choose from: {names}"
    raise typer.BadParameter(msg)


def resolve_db_url(db_url: str | None, loader: ConfigLoader) -> str:
    """Return the explicit DB URL, else the configured one, else the default."""
    return loader.database_settings(url=db_url).url


async def open_repository(db_url: str) -> TradingRepository:
    """Create a repository and make sure its tables exist."""
    repository = TradingRepository(db_url)
    await repository.init_db()
    return repository
