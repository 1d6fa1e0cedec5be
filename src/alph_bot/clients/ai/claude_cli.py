"""Forecaster that shells out to the local ``claude`` CLI.

The CLI manages its own authentication, so no API key is needed. The schema
is embedded in the prompt and the JSON answer is validated with the same
parser the Anthropic client uses.
"""

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from alph_bot.clients.ai.exceptions import (
    AiConfigurationError,
    AiResponseError,
    ForecastValidationError,
)
from alph_bot.clients.ai.prompt import SYSTEM_PROMPT, build_user_message
from alph_bot.clients.ai.schema import PROBABILITY_ESTIMATE_SCHEMA_JSON, parse_probability_estimate
from alph_bot.core.models import MarketDescriptor, ProbabilityEstimate

logger = logging.getLogger(__name__)

_CLAUDE_BINARY = "claude"
_DEFAULT_TIMEOUT_SECONDS = 120.0
_CHECK_TIMEOUT_SECONDS = 10.0
_ERROR_PREVIEW_CHARS = 500

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_NOT_AUTHENTICATED_RE = re.compile(r"not (logged|authenticated)", re.IGNORECASE)


async def run_claude(args: Sequence[str], timeout: float = _DEFAULT_TIMEOUT_SECONDS) -> str:
    """Run the ``claude`` binary and return its stdout.

    Args:
        args: Command-line arguments.
        timeout: Seconds to wait before killing the process.

    Returns:
        Decoded standard output.

    Raises:
        AiResponseError: If the binary is missing, times out or exits non-zero.

    """
    try:
        process = await asyncio.create_subprocess_exec(
            _CLAUDE_BINARY,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise AiResponseError(f"claude CLI failed: {exc}") from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError as exc:
        process.kill()
        await process.wait()
        raise AiResponseError(f"claude CLI timed out after {timeout:.0f}s") from exc

    if process.returncode != 0:
        detail = stderr.decode().strip() or f"exit code {process.returncode}"
        raise AiResponseError(f"claude CLI failed: {detail}")
    return stdout.decode()


async def assert_claude_cli_ready() -> None:
    """Check the ``claude`` CLI is installed and authenticated.

    Raises:
        AiConfigurationError: With instructions for whichever check failed.

    """
    try:
        await run_claude(["--version"], timeout=_CHECK_TIMEOUT_SECONDS)
    except AiResponseError as exc:
        raise AiConfigurationError(
            "The `claude` CLI is not installed or not on your PATH.\n"
            "Install it: https://docs.anthropic.com/en/docs/claude-cli"
        ) from exc

    try:
        output = await run_claude(["auth", "status"], timeout=_CHECK_TIMEOUT_SECONDS)
    except AiResponseError as exc:
        raise AiConfigurationError(
            "The `claude` CLI is not authenticated. Run `claude auth login` first."
        ) from exc
    # Some versions report a missing login on stdout with exit code 0.
    if _NOT_AUTHENTICATED_RE.search(output):
        raise AiConfigurationError(
            "The `claude` CLI is not authenticated. Run `claude auth login` first."
        )


def parse_cli_response(raw: str) -> ProbabilityEstimate:
    """Extract and validate the JSON estimate from the CLI's stdout.

    Markdown fences are stripped; if the text still is not valid JSON, the
    outermost ``{...}`` block is tried.

    Raises:
        ForecastValidationError: If no JSON object can be decoded or it fails
            schema validation.

    """
    text = raw.strip()
    fence = _FENCE_RE.search(text)
    if fence and fence.group(1):
        text = fence.group(1).strip()

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(text)
        if match is None:
            msg = f"claude CLI returned unparseable response:\n{raw[:_ERROR_PREVIEW_CHARS]}"
            raise ForecastValidationError(msg) from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            msg = f"claude CLI returned unparseable response:\n{raw[:_ERROR_PREVIEW_CHARS]}"
            raise ForecastValidationError(msg) from exc

    return parse_probability_estimate(parsed)


class ClaudeCliClient:
    """Async forecaster that invokes ``claude --print`` per estimate.

    Args:
        model: Model identifier passed to ``--model``.
        temperature: Recorded for logging; the CLI does not expose it.

    """

    name = "claude-cli"

    def __init__(self, model: str, temperature: float) -> None:
        """Initialize the CLI client.

        Args:
            model: Model identifier passed to ``--model``.
            temperature: Sampling temperature.

        """
        self.model = model
        self.temperature = temperature

    def build_prompt(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> str:
        """Return the full single-shot prompt including the answer schema."""
        return (
            f"{SYSTEM_PROMPT}\n\n---\n\n"
            f"{build_user_message(sport, game_id, events, market)}\n\n---\n\n"
            "Respond with ONLY a JSON object (no markdown fences, no extra text) "
            "that conforms to the following JSON Schema:\n\n"
            f"{PROBABILITY_ESTIMATE_SCHEMA_JSON}"
        )

    async def estimate_probability(
        self,
        sport: str,
        game_id: str,
        events: Sequence[dict[str, Any]],
        market: MarketDescriptor,
    ) -> ProbabilityEstimate:
        """Run the CLI and parse its JSON answer."""
        prompt = self.build_prompt(sport, game_id, events, market)
        args = ["--print", "--output-format", "text", "--model", self.model, "--prompt", prompt]
        logger.debug("Invoking claude CLI for %s", market.ticker)
        stdout = await run_claude(args)
        return parse_cli_response(stdout)
