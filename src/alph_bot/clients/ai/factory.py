"""Provider selection for the forecaster.

Adding a provider means one new ``AiClient`` implementation, one
``AiProvider`` member and one branch in ``create_client``.
"""

from enum import Enum

from alph_bot.clients.ai.anthropic import AnthropicClient
from alph_bot.clients.ai.base import AiClient
from alph_bot.clients.ai.claude_cli import ClaudeCliClient, assert_claude_cli_ready

DEFAULT_MODEL = "claude-opus-4-6"
DEFAULT_TEMPERATURE = 0.2
_MAX_TEMPERATURE = 2.0


class AiProvider(Enum):
    """Supported forecaster providers."""

    ANTHROPIC = "anthropic"
    CLAUDE_CLI = "claude-cli"


async def create_client(
    provider: AiProvider,
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    api_key: str | None = None,
) -> AiClient:
    """Build the ``AiClient`` for ``provider``.

    Args:
        provider: Which provider to use.
        model: Model identifier.
        temperature: Sampling temperature between 0 and 2.
        api_key: Provider API key; required for ``anthropic``.

    Returns:
        A ready-to-use client.

    Raises:
        ValueError: If the temperature is out of range.
        AiConfigurationError: If the provider's prerequisites are missing.

    """
    if not 0.0 <= temperature <= _MAX_TEMPERATURE:
        msg = f"temperature must be between 0 and {_MAX_TEMPERATURE}, got {temperature}"
        raise ValueError(msg)

    if provider == AiProvider.ANTHROPIC:
        return AnthropicClient(api_key=api_key, model=model, temperature=temperature)
    if provider == AiProvider.CLAUDE_CLI:
        await assert_claude_cli_ready()
        return ClaudeCliClient(model=model, temperature=temperature)

    msg = f"Unknown AI provider: {provider}"
    raise ValueError(msg)
