"""Tests for forecaster provider selection."""

from unittest.mock import AsyncMock, patch

import pytest

from alph_bot.clients.ai.anthropic import AnthropicClient
from alph_bot.clients.ai.claude_cli import ClaudeCliClient
from alph_bot.clients.ai.exceptions import AiConfigurationError
from alph_bot.clients.ai.factory import AiProvider, create_client

_READY_CHECK = "alph_bot.clients.ai.factory.assert_claude_cli_ready"


class TestCreateClient:
    """Tests for create_client."""

    @pytest.mark.asyncio
    async def test_anthropic(self) -> None:
        """Test the anthropic provider builds an HTTP client."""
        client = await create_client(AiProvider.ANTHROPIC, api_key="sk-test")
        assert isinstance(client, AnthropicClient)
        await client.close()

    @pytest.mark.asyncio
    async def test_anthropic_without_key(self) -> None:
        """Test the anthropic provider needs a key."""
        with pytest.raises(AiConfigurationError):
            await create_client(AiProvider.ANTHROPIC)

    @pytest.mark.asyncio
    async def test_claude_cli_checks_readiness(self) -> None:
        """Test the CLI provider verifies the binary before use."""
        with patch(_READY_CHECK, new=AsyncMock()) as mock_ready:
            client = await create_client(AiProvider.CLAUDE_CLI, model="m", temperature=1.0)

        mock_ready.assert_awaited_once()
        assert isinstance(client, ClaudeCliClient)
        assert client.model == "m"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("temperature", [-0.1, 2.1])
    async def test_temperature_range(self, temperature: float) -> None:
        """Test temperatures outside [0, 2] are rejected."""
        with pytest.raises(ValueError, match="temperature must be between"):
            await create_client(AiProvider.ANTHROPIC, temperature=temperature, api_key="k")

    def test_provider_values(self) -> None:
        """Test the provider names accepted on the command line."""
        assert AiProvider("anthropic") == AiProvider.ANTHROPIC
        assert AiProvider("claude-cli") == AiProvider.CLAUDE_CLI
        with pytest.raises(ValueError):
            AiProvider("openai")
