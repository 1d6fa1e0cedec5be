"""Prompt text shared by the forecaster providers."""

import json
from collections.abc import Sequence
from typing import Any

from alph_bot.core.models import MarketDescriptor

SYSTEM_PROMPT = """\
You are a sports analyst estimating probabilities for prediction market outcomes. \
You will be given live game events and a market question. Analyze the game state \
and provide your best probability estimate.

Be calibrated: use base rates, current score, time remaining, and momentum. \
Do not be overconfident. If you lack information to make a strong estimate, \
set confidence to "low".

Always use the estimate_probability tool to provide your response."""


def build_user_message(
    sport: str,
    game_id: str,
    events: Sequence[dict[str, Any]],
    market: MarketDescriptor,
) -> str:
    """Render the game history and market question for the forecaster.

    Events are numbered from 1 in the order they were received.
    """
    events_text = "\n".join(
        f"{i}. {json.dumps(event, separators=(',', ':'))}" for i, event in enumerate(events, start=1)
    )
    return (
        f"Sport: {sport}\n"
        f"Game ID: {game_id}\n"
        f"Total events so far: {len(events)}\n"
        "\n"
        "Game events:\n"
        f"{events_text}\n"
        "\n"
        f"Market: {market.title}\n"
        f"YES: {market.yes_sub_title}\n"
        f"NO: {market.no_sub_title}\n"
        f"Ticker: {market.ticker}\n"
        "\n"
        "Based on these game events, what is the probability that YES occurs?"
    )
