"""Tests for the Kalshi HTTP client."""

import base64
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from alph_bot.clients.kalshi.client import KalshiClient
from alph_bot.clients.kalshi.exceptions import (
    KalshiAPIError,
    KalshiAuthenticationError,
    KalshiNotFoundError,
    KalshiRateLimitError,
    KalshiValidationError,
)
from alph_bot.core.config import DEMO_KALSHI_URL, ConfigError, ConfigLoader
from alph_bot.core.models import Side, Sport
from alph_bot.core.timestamps import parse_iso_timestamp

_BASE_URL = "https://api.kalshi.test/trade-api/v2"
_SCHEDULED_TS = parse_iso_timestamp("2025-10-19T23:30:00Z")
_TICKER = "KXNBAGAME-25OCT19BOSNYK-BOS"


def _response(payload: dict[str, Any] | None, status_code: int = 200) -> MagicMock:
    """Build a mock httpx response."""
    response = MagicMock()
    response.status_code = status_code
    response.content = json.dumps(payload).encode() if payload is not None else b""
    response.json.return_value = payload
    return response


def _market(
    ticker: str = _TICKER,
    status: str = "active",
    close_time: str = "2025-10-20T03:00:00Z",
    title: str = "Boston at New York Winner?",
) -> dict[str, Any]:
    return {
        "ticker": ticker,
        "event_ticker": "KXNBAGAME-25OCT19BOSNYK",
        "title": title,
        "yes_sub_title": "Boston",
        "no_sub_title": "New York",
        "status": status,
        "yes_bid": 38,
        "yes_ask": 40,
        "no_bid": 58,
        "no_ask": 62,
        "close_time": close_time,
    }


class TestKalshiClient:
    """Test suite for the Kalshi HTTP client."""

    @pytest.fixture
    def private_key(self) -> RSAPrivateKey:
        """Generate a test RSA private key."""
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)

    @pytest.fixture
    def client(self, private_key: RSAPrivateKey) -> KalshiClient:
        """Create a KalshiClient instance."""
        return KalshiClient(api_key_id="key-id", private_key=private_key, base_url=_BASE_URL)

    def test_client_initialization(self, client: KalshiClient) -> None:
        """Test the base URL and its signing prefix are derived."""
        assert client.api_key_id == "key-id"
        assert client.base_url == _BASE_URL
        assert client._base_path == "/trade-api/v2"  # pyright: ignore[reportPrivateUsage]

    def test_from_config(self, tmp_path: Path, private_key: RSAPrivateKey) -> None:
        """Test building a demo client from settings."""
        key_file = tmp_path / "kalshi.pem"
        key_file.write_bytes(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        (tmp_path / "settings.yaml").write_text(f"""
kalshi:
  api_key_id: cfg-key
  private_key_path: {key_file}
  base_url: https://prod.kalshi.test/trade-api/v2
""")

        client = KalshiClient.from_config(demo=True, loader=ConfigLoader(config_dir=tmp_path))
        assert client.api_key_id == "cfg-key"
        assert client.base_url == DEMO_KALSHI_URL

    def test_from_config_missing_key_id(self, tmp_path: Path) -> None:
        """Test a missing key id raises ConfigError."""
        (tmp_path / "settings.yaml").write_text("kalshi: {}")
        with pytest.raises(ConfigError, match="api_key_id not configured"):
            KalshiClient.from_config(loader=ConfigLoader(config_dir=tmp_path))

    def test_from_config_overrides(self, tmp_path: Path, private_key: RSAPrivateKey) -> None:
        """Test explicit credentials are used when settings have none."""
        key_file = tmp_path / "override.pem"
        key_file.write_bytes(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        (tmp_path / "settings.yaml").write_text("kalshi: {}")

        client = KalshiClient.from_config(
            loader=ConfigLoader(config_dir=tmp_path),
            api_key_id="cli-key",
            private_key_path=str(key_file),
        )
        assert client.api_key_id == "cli-key"
        assert client.base_url == "https://api.elections.kalshi.com/trade-api/v2"

    @pytest.mark.asyncio
    async def test_auth_headers_sign_full_path(
        self, client: KalshiClient, private_key: RSAPrivateKey
    ) -> None:
        """Test requests carry a verifiable signature over the API path."""
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response({"balance": 12345})),
        ) as mock_request:
            balance = await client.get_balance()

        assert balance == 12345
        kwargs = mock_request.call_args.kwargs
        headers = kwargs["headers"]
        assert kwargs["url"] == f"{_BASE_URL}/portfolio/balance"
        assert headers["KALSHI-ACCESS-KEY"] == "key-id"
        message = f"{headers['KALSHI-ACCESS-TIMESTAMP']}GET/trade-api/v2/portfolio/balance"
        private_key.public_key().verify(
            base64.b64decode(headers["KALSHI-ACCESS-SIGNATURE"]),
            message.encode(),
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.MAX_LENGTH),
            hashes.SHA256(),
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "error_type"),
        [
            (400, KalshiValidationError),
            (401, KalshiAuthenticationError),
            (403, KalshiAuthenticationError),
            (404, KalshiNotFoundError),
            (429, KalshiRateLimitError),
            (500, KalshiAPIError),
        ],
    )
    async def test_error_mapping(
        self, client: KalshiClient, status_code: int, error_type: type[Exception]
    ) -> None:
        """Test error statuses map onto the exception hierarchy."""
        response = _response({"error": {"code": "x", "message": "nope"}}, status_code)
        with (
            patch.object(
                client._http_client,  # pyright: ignore[reportPrivateUsage]
                "request",
                new=AsyncMock(return_value=response),
            ),
            pytest.raises(error_type, match=rf"\[{status_code}\] nope"),
        ):
            await client.get_market(_TICKER)

    @pytest.mark.asyncio
    async def test_error_without_json_body(self, client: KalshiClient) -> None:
        """Test an undecodable error body still raises with the status."""
        response = _response(None, 502)
        response.json.side_effect = ValueError("not json")
        with (
            patch.object(
                client._http_client,  # pyright: ignore[reportPrivateUsage]
                "request",
                new=AsyncMock(return_value=response),
            ),
            pytest.raises(KalshiAPIError, match="HTTP 502"),
        ):
            await client.get_balance()

    @pytest.mark.asyncio
    async def test_transport_error(self, client: KalshiClient) -> None:
        """Test transport failures are wrapped."""
        with (
            patch.object(
                client._http_client,  # pyright: ignore[reportPrivateUsage]
                "request",
                new=AsyncMock(side_effect=httpx.ConnectError("refused")),
            ),
            pytest.raises(KalshiAPIError, match="failed"),
        ):
            await client.get_balance()

    @pytest.mark.asyncio
    async def test_get_market(self, client: KalshiClient) -> None:
        """Test a market payload is parsed into a snapshot."""
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response({"market": _market()})),
        ):
            market = await client.get_market(_TICKER)

        assert market.ticker == _TICKER
        assert market.yes_ask == 40
        assert market.no_ask == 62
        assert market.is_active

    @pytest.mark.asyncio
    async def test_create_order_body(self, client: KalshiClient) -> None:
        """Test the order body and the parsed acknowledgement."""
        payload = {"order": {"order_id": "ord-1", "status": "executed", "fill_count": 5}}
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response(payload)),
        ) as mock_request:
            result = await client.create_order(_TICKER, Side.NO, 5)

        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == f"{_BASE_URL}/portfolio/orders"
        assert json.loads(kwargs["content"]) == {
            "ticker": _TICKER,
            "side": "no",
            "action": "buy",
            "count": 5,
            "type": "market",
        }
        assert result.order_id == "ord-1"
        assert result.status == "executed"
        assert result.fill_count == 5

    @pytest.mark.asyncio
    async def test_cancel_order_empty_body(self, client: KalshiClient) -> None:
        """Test an empty response body is accepted."""
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response(None)),
        ) as mock_request:
            await client.cancel_order("ord-1")

        assert mock_request.call_args.kwargs["method"] == "DELETE"

    @pytest.mark.asyncio
    async def test_search_markets_from_events(self, client: KalshiClient) -> None:
        """Test event search keeps matching, active markets within the window."""
        events = {
            "events": [
                {
                    "title": "Boston at New York",
                    "sub_title": "Oct 19",
                    "markets": [
                        _market(),
                        _market(ticker="LATE", close_time="2025-10-25T03:00:00Z"),
                        _market(ticker="SETTLED", status="settled"),
                    ],
                },
                {"title": "Lakers at Suns", "markets": [_market(ticker="OTHER")]},
            ]
        }
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response(events)),
        ) as mock_request:
            markets = await client.search_markets(
                "New York", "Boston", _SCHEDULED_TS, Sport.NBA
            )

        assert [m.ticker for m in markets] == [_TICKER]
        assert mock_request.await_count == 1
        params = mock_request.call_args.kwargs["params"]
        assert params["series_ticker"] == "KXNBAGAME"
        assert params["with_nested_markets"] == "true"

    @pytest.mark.asyncio
    async def test_search_markets_falls_back_to_market_listing(self, client: KalshiClient) -> None:
        """Test the plain market listing is used when no event matches."""
        listing = {
            "markets": [
                _market(),
                _market(ticker="OTHER", title="Lakers at Suns Winner?"),
            ]
        }
        listing["markets"][1]["yes_sub_title"] = "Lakers"
        listing["markets"][1]["no_sub_title"] = "Suns"
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(side_effect=[_response({"events": []}), _response(listing)]),
        ) as mock_request:
            markets = await client.search_markets("New York", "Boston", _SCHEDULED_TS, Sport.NBA)

        assert [m.ticker for m in markets] == [_TICKER]
        assert mock_request.call_args.kwargs["url"] == f"{_BASE_URL}/markets"

    @pytest.mark.asyncio
    async def test_search_markets_soccer_queries_each_series(self, client: KalshiClient) -> None:
        """Test soccer searches every league series."""
        with patch.object(
            client._http_client,  # pyright: ignore[reportPrivateUsage]
            "request",
            new=AsyncMock(return_value=_response({"events": [], "markets": []})),
        ) as mock_request:
            markets = await client.search_markets("Arsenal", "Chelsea", _SCHEDULED_TS, Sport.SOCCER)

        assert markets == []
        series = [
            call.kwargs["params"].get("series_ticker") for call in mock_request.call_args_list[:-1]
        ]
        assert "KXEPLGAME" in series
        assert len(series) == len(set(series))

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client: KalshiClient) -> None:
        """Test the async context manager closes the HTTP client."""
        async with client as entered:
            assert entered is client
        assert client._http_client.is_closed  # pyright: ignore[reportPrivateUsage]
