"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

import alph_bot.core.config as config_module

_PLACEHOLDER_ENV_VARS = {
    "ALPH_BOT_KALSHI_API_KEY_ID": "test-key-id",
    "ALPH_BOT_SHIPP_API_KEY": "test-shipp-key",
}


@pytest.fixture(autouse=True)
def _set_placeholder_env_vars() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Provide harmless credentials and a fresh config singleton per test.

    Tests that build clients from the packaged ``settings.yaml`` need the
    credential variables to hold something, and a ``ConfigLoader`` cached
    by an earlier test must not leak its values into the next one.
    """
    missing = {k: v for k, v in _PLACEHOLDER_ENV_VARS.items() if k not in os.environ}
    with patch.dict(os.environ, missing), patch.object(config_module, "_config", None):
        yield
