"""Probability forecaster providers for prediction-market questions."""

from alph_bot.clients.ai.adapter import AiAdapter
from alph_bot.clients.ai.anthropic import AnthropicClient
from alph_bot.clients.ai.base import AiClient
from alph_bot.clients.ai.claude_cli import ClaudeCliClient, assert_claude_cli_ready
from alph_bot.clients.ai.exceptions import (
    AiConfigurationError,
    AiError,
    AiResponseError,
    ForecastValidationError,
)
from alph_bot.clients.ai.factory import AiProvider, create_client
from alph_bot.clients.ai.prompt import SYSTEM_PROMPT, build_user_message
from alph_bot.clients.ai.schema import PROBABILITY_ESTIMATE_SCHEMA, parse_probability_estimate

__all__ = [
    "PROBABILITY_ESTIMATE_SCHEMA",
    "SYSTEM_PROMPT",
    "AiAdapter",
    "AiClient",
    "AiConfigurationError",
    "AiError",
    "AiProvider",
    "AiResponseError",
    "AnthropicClient",
    "ClaudeCliClient",
    "ForecastValidationError",
    "assert_claude_cli_ready",
    "build_user_message",
    "create_client",
    "parse_probability_estimate",
]
