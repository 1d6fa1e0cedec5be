"""Forecaster backed by the Anthropic Messages API.

The model is forced to answer through an ``estimate_probability`` tool whose
input schema is the shared probability estimate schema, so the tool input
can be validated directly.
"""

from collections.abc import Sequence
from typing import Any

import httpx

from alph_bot.clients.ai.exceptions import AiConfigurationError, AiResponseError
from alph_bot.clients.ai.prompt import SYSTEM_PROMPT, build_user_message
from alph_bot.clients.ai.schema import PROBABILITY_ESTIMATE_SCHEMA, parse_probability_estimate
from alph_bot.core.models import MarketDescriptor, ProbabilityEstimate

_HTTP_BAD_REQUEST = 400
_API_VERSION = "2023-06-01"
_MAX_TOKENS = 1024
_TOOL_NAME = "estimate_probability"

ESTIMATE_PROBABILITY_TOOL: dict[str, Any] = {
    "name": _TOOL_NAME,
    "description": (
        "Provide a probability estimate for this market outcome based on the game events so far."
    ),
    "input_schema": PROBABILITY_ESTIMATE_SCHEMA,
}


class AnthropicClient:
    """Async forecaster using the Anthropic Messages API over HTTP.

    Args:
        api_key: Anthropic API key.
        model: Model identifier.
        temperature: Sampling temperature.
        base_url: Messages API endpoint.
        timeout: Request timeout in seconds.

    Raises:
        AiConfigurationError: If no API key is given.

    """

    name = "anthropic"
    BASE_URL = "https://api.anthropic.com/v1/messages"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        temperature: float,
        base_url: str = BASE_URL,
        timeout: float = 120.0,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key.
            model: Model identifier.
            temperature: Sampling temperature.
            base_url: Messages API endpoint.
            timeout: Request timeout in seconds.

        """
        if not api_key:
            raise AiConfigurationError(
                "AnthropicClient requires an API key. Pass --ai-provider-api-key "
                "or set ALPH_BOT_AI_PROVIDER_API_KEY."
            )
        self.model = model
        self.temperature = temperature
        self.base_url = base_url
        self._http_client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "x-api-key": api_key,
                "anthropic-version": _API_VERSION,
                "content-type": "application/json",
            },
        )

    async def estimate_probability(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> ProbabilityEstimate:
        """Ask the model for a probability estimate through the forced tool call.

        Raises:
            AiResponseError: If the request fails or no tool call is returned.
            ForecastValidationError: If the tool input does not match the schema.

        """
        request = {
            "model": self.model,
            "max_tokens": _MAX_TOKENS,
            "temperature": self.temperature,
            "system": SYSTEM_PROMPT,
            "tools": [ESTIMATE_PROBABILITY_TOOL],
            "tool_choice": {"type": "tool", "name": _TOOL_NAME},
            "messages": [
                {"role": "user", "content": build_user_message(sport, game_id, events, market)}
            ],
        }
        try:
            response = await self._http_client.post(self.base_url, json=request)
        except httpx.HTTPError as exc:
            raise AiResponseError(f"HTTP request failed: {exc}") from exc

        if response.status_code >= _HTTP_BAD_REQUEST:
            self._handle_error(response)

        content = response.json().get("content") or []
        tool_use = next(
            (
                block
                for block in content
                if block.get("type") == "tool_use" and block.get("name") == _TOOL_NAME
            ),
            None,
        )
        if tool_use is None:
            raise AiResponseError(
                "AI did not return a probability estimate (no tool_use block in response)"
            )
        return parse_probability_estimate(tool_use.get("input"))

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise an AiResponseError from an error response.

        Raises:
            AiResponseError: Always raised with status code and message.

        """
        try:
            error = response.json().get("error") or {}
            msg = str(error.get("message") or f"HTTP {response.status_code}")
        except Exception:
            msg = f"HTTP {response.status_code}"
        raise AiResponseError(msg, status_code=response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()
