"""Kalshi trade API client for sports prediction markets."""

from alph_bot.clients.kalshi.client import KalshiClient
from alph_bot.clients.kalshi.exceptions import (
    KalshiAPIError,
    KalshiAuthenticationError,
    KalshiError,
    KalshiNotFoundError,
    KalshiRateLimitError,
    KalshiValidationError,
)

__all__ = [
    "KalshiAPIError",
    "KalshiAuthenticationError",
    "KalshiClient",
    "KalshiError",
    "KalshiNotFoundError",
    "KalshiRateLimitError",
    "KalshiValidationError",
]
