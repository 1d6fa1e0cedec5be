"""Shipp live sports feed client."""

from alph_bot.clients.shipp.client import ShippClient, live_filter_instructions
from alph_bot.clients.shipp.exceptions import ShippAPIError, ShippConfigurationError, ShippError
from alph_bot.clients.shipp.models import ScheduleGame

__all__ = [
    "ScheduleGame",
    "ShippAPIError",
    "ShippClient",
    "ShippConfigurationError",
    "ShippError",
    "live_filter_instructions",
]
