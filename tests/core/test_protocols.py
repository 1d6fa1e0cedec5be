"""Tests for core protocols."""

from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from alph_bot.clients.ai import AiAdapter
from alph_bot.clients.kalshi import KalshiClient
from alph_bot.clients.shipp import ShippClient
from alph_bot.core.protocols import ExchangeClient, FeedClient, Forecaster


class _NotAClient:
    """Has none of the protocol methods."""

    def ping(self) -> str:
        """Return a pong."""
        return "pong"


class TestProtocols:
    """Structural conformance of the concrete clients."""

    @pytest.mark.asyncio
    async def test_kalshi_client_is_exchange(self) -> None:
        """Test KalshiClient satisfies ExchangeClient."""
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        client = KalshiClient(api_key_id="key", private_key=key)
        try:
            assert isinstance(client, ExchangeClient)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_shipp_client_is_feed(self) -> None:
        """Test ShippClient satisfies FeedClient."""
        client = ShippClient(repository=MagicMock(), api_key="key")
        try:
            assert isinstance(client, FeedClient)
        finally:
            await client.close()

    def test_adapter_is_forecaster(self) -> None:
        """Test AiAdapter satisfies Forecaster."""
        assert isinstance(AiAdapter(MagicMock()), Forecaster)

    def test_unrelated_class_is_rejected(self) -> None:
        """Test a class without the methods does not match."""
        obj = _NotAClient()
        assert not isinstance(obj, ExchangeClient)
        assert not isinstance(obj, FeedClient)
        assert not isinstance(obj, Forecaster)
