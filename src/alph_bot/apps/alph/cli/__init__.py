"""CLI subpackage for the alph sports trading agent.

Create the Typer application and register all command modules.
"""

import typer

from alph_bot.apps.alph.cli.available_games_cmd import available_games
from alph_bot.apps.alph.cli.value_bet_cmd import value_bet

app = typer.Typer(help="Sports prediction-market trading agent")

app.command(name="value-bet")(value_bet)
app.command(name="available-games")(available_games)

__all__ = ["app"]
