"""HTTP client for the Kalshi trade API."""

import json
import logging
import time
from typing import Any
from urllib.parse import urlparse

import httpx
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from alph_bot.clients.kalshi.auth.signer import RsaPssSigner
from alph_bot.clients.kalshi.exceptions import (
    KalshiAPIError,
    KalshiAuthenticationError,
    KalshiNotFoundError,
    KalshiRateLimitError,
    KalshiValidationError,
)
from alph_bot.clients.kalshi.models import market_from_json, order_from_json, series_tickers_for
from alph_bot.core.config import PROD_KALSHI_URL, ConfigLoader, get_config
from alph_bot.core.models import CENTS_PER_DOLLAR, MarketSnapshot, OrderResult, Side, Sport
from alph_bot.core.timestamps import parse_iso_timestamp

logger = logging.getLogger(__name__)

_HTTP_BAD_REQUEST = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_TOO_MANY_REQUESTS = 429

_SEARCH_WINDOW_SECONDS = 24 * 60 * 60
_DEFAULT_SEARCH_LIMIT = 200
_DEFAULT_ORDERBOOK_DEPTH = 10


class KalshiClient:
    """HTTP client for the Kalshi prediction-market exchange.

    Sign every request with RSA-PSS, map error responses onto the
    ``KalshiAPIError`` hierarchy and expose the market, order and balance
    operations the trading loop needs.
    """

    def __init__(
        self,
        api_key_id: str,
        private_key: RSAPrivateKey,
        base_url: str = PROD_KALSHI_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the Kalshi client.

        Args:
            api_key_id: Kalshi API key id.
            private_key: RSA private key registered with the key id.
            base_url: Base URL for the API (production or demo).
            timeout: Request timeout in seconds.

        """
        self.api_key_id = api_key_id
        self.base_url = base_url.rstrip("/")
        self._base_path = urlparse(self.base_url).path
        self.signer = RsaPssSigner(private_key)
        self._http_client = httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        demo: bool = False,  # noqa: FBT001, FBT002
        loader: ConfigLoader | None = None,
        *,
        api_key_id: str | None = None,
        private_key_path: str | None = None,
    ) -> "KalshiClient":
        """Create a client from the ``kalshi`` configuration section.

        Args:
            demo: Use the demo environment instead of production.
            loader: Configuration source. Defaults to the global loader.
            api_key_id: Overrides the configured API key id.
            private_key_path: Overrides the configured private key path.

        Returns:
            Configured ``KalshiClient``.

        Raises:
            ConfigError: If the API key id or private key path is missing.
            FileNotFoundError: If the private key file does not exist.

        """
        settings = (loader or get_config()).kalshi_settings(
            demo=demo, api_key_id=api_key_id, private_key_path=private_key_path
        )
        private_key = RsaPssSigner.load_private_key(settings.read_private_key())
        return cls(
            api_key_id=settings.api_key_id, private_key=private_key, base_url=settings.base_url
        )

    def _generate_auth_headers(self, method: str, path: str) -> dict[str, str]:
        """Generate the Kalshi authentication headers for a request."""
        timestamp = str(int(time.time() * 1000))
        signature = self.signer.generate_signature(timestamp, method, path)
        return {
            "KALSHI-ACCESS-KEY": self.api_key_id,
            "KALSHI-ACCESS-SIGNATURE": signature,
            "KALSHI-ACCESS-TIMESTAMP": timestamp,
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated API request and return the decoded body.

        Args:
            method: HTTP method.
            path: Request path relative to ``base_url``.
            params: Query parameters; ``None`` values are dropped.
            data: JSON request body.

        Returns:
            Decoded JSON response (empty dict for empty bodies).

        Raises:
            KalshiAPIError: For transport failures and error responses.

        """
        if not path.startswith("/"):
            path = f"/{path}"
        url = f"{self.base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}
        body = json.dumps(data, separators=(",", ":")) if data else ""

        headers = {
            "Content-Type": "application/json",
            **self._generate_auth_headers(method, f"{self._base_path}{path}"),
        }

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=headers,
                params=query or None,
                content=body.encode() if body else None,
            )
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise KalshiAPIError(msg) from exc

        if response.status_code >= _HTTP_BAD_REQUEST:
            self._handle_error(response)

        if not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    def _handle_error(self, response: httpx.Response) -> None:
        """Raise the exception matching an error response.

        Raises:
            KalshiAuthenticationError: For 401 and 403 errors.
            KalshiValidationError: For 400 errors.
            KalshiNotFoundError: For 404 errors.
            KalshiRateLimitError: For 429 errors.
            KalshiAPIError: For other errors.

        """
        try:
            error = response.json().get("error", "Unknown error")
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        except Exception:
            message = f"HTTP {response.status_code}"

        status = response.status_code
        if status in (_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN):
            raise KalshiAuthenticationError(message, status)
        if status == _HTTP_BAD_REQUEST:
            raise KalshiValidationError(message, status)
        if status == _HTTP_NOT_FOUND:
            raise KalshiNotFoundError(message, status)
        if status == _HTTP_TOO_MANY_REQUESTS:
            raise KalshiRateLimitError(message, status)
        raise KalshiAPIError(message, status)

    async def search_markets(
        self,
        home: str,
        away: str,
        scheduled_ts: int,
        sport: Sport,
        active_only: bool = True,  # noqa: FBT001, FBT002
        limit: int = _DEFAULT_SEARCH_LIMIT,
    ) -> list[MarketSnapshot]:
        """Find markets for a game by team name around its scheduled start.

        Query each of the sport's series for open events with nested
        markets, keep events whose title or subtitle mentions either team,
        and keep their markets closing within 24 hours of the scheduled
        start. When no event matches, fall back to the plain market listing
        filtered on the market text.

        Args:
            home: Home team label.
            away: Away team label.
            scheduled_ts: Scheduled start in epoch seconds.
            sport: Sport of the game.
            active_only: Only return tradable markets.
            limit: Maximum results per listing call.

        Returns:
            Matching market snapshots.

        """
        min_close_ts = scheduled_ts - _SEARCH_WINDOW_SECONDS
        max_close_ts = scheduled_ts + _SEARCH_WINDOW_SECONDS
        home_lower, away_lower = home.lower(), away.lower()
        status = "open" if active_only else None
        logger.info("Searching Kalshi markets for %s @ %s", away, home)

        matched: list[MarketSnapshot] = []
        for series_ticker in series_tickers_for(sport):
            logger.debug("Getting Kalshi events for series %s", series_ticker)
            payload = await self._request(
                "GET",
                "/events",
                params={
                    "limit": limit,
                    "with_nested_markets": "true",
                    "status": status,
                    "series_ticker": series_ticker,
                    "min_close_ts": min_close_ts,
                },
            )
            for event in payload.get("events", []):
                text = f"{event.get('title') or ''} {event.get('sub_title') or ''}".lower()
                if home_lower not in text and away_lower not in text:
                    continue
                for market in event.get("markets") or []:
                    close_time = market.get("close_time")
                    if close_time:
                        close_ts = parse_iso_timestamp(close_time)
                        if close_ts < min_close_ts or close_ts > max_close_ts:
                            continue
                    if active_only and market.get("status") != "active":
                        continue
                    matched.append(market_from_json(market))

        if not matched:
            logger.info("No event matches, falling back to market search")
            payload = await self._request(
                "GET",
                "/markets",
                params={
                    "limit": limit,
                    "status": status,
                    "min_close_ts": min_close_ts,
                    "max_close_ts": max_close_ts,
                },
            )
            for market in payload.get("markets", []):
                text = " ".join(
                    str(market.get(key) or "")
                    for key in ("title", "subtitle", "yes_sub_title", "no_sub_title")
                ).lower()
                if home_lower in text or away_lower in text:
                    matched.append(market_from_json(market))

        logger.info("Found %d markets for %s @ %s", len(matched), away, home)
        return matched

    async def get_market(self, ticker: str) -> MarketSnapshot:
        """Return a fresh snapshot of the market ``ticker``."""
        payload = await self._request("GET", f"/markets/{ticker}")
        return market_from_json(payload["market"])

    async def get_orderbook(self, ticker: str, depth: int = _DEFAULT_ORDERBOOK_DEPTH) -> dict[str, Any]:
        """Return the order book for ``ticker`` as price levels per side."""
        payload = await self._request("GET", f"/markets/{ticker}/orderbook", params={"depth": depth})
        orderbook: dict[str, Any] = payload.get("orderbook", {})
        return orderbook

    async def create_order(  # noqa: PLR0913
        self,
        ticker: str,
        side: Side,
        count: int,
        *,
        action: str = "buy",
        order_type: str = "market",
        yes_price: int | None = None,
        no_price: int | None = None,
        time_in_force: str | None = None,
        client_order_id: str | None = None,
    ) -> OrderResult:
        """Submit an order.

        Args:
            ticker: Market ticker.
            side: Contract side.
            count: Number of contracts.
            action: ``"buy"`` or ``"sell"``.
            order_type: ``"market"`` or ``"limit"``.
            yes_price: Limit price in cents for YES.
            no_price: Limit price in cents for NO.
            time_in_force: Optional time-in-force policy.
            client_order_id: Optional idempotency key.

        Returns:
            The exchange's order acknowledgement.

        """
        logger.info("Creating order: %s %d %s on %s", action, count, side.value, ticker)
        body: dict[str, Any] = {
            "ticker": ticker,
            "side": side.value,
            "action": action,
            "count": count,
            "type": order_type,
        }
        optional = {
            "yes_price": yes_price,
            "no_price": no_price,
            "time_in_force": time_in_force,
            "client_order_id": client_order_id,
        }
        body.update({k: v for k, v in optional.items() if v is not None})

        payload = await self._request("POST", "/portfolio/orders", data=body)
        order = order_from_json(payload["order"])
        logger.info(
            "Order created: %s status=%s filled=%d/%d",
            order.order_id,
            order.status,
            order.fill_count,
            order.initial_count,
        )
        return order

    async def get_order(self, order_id: str) -> OrderResult:
        """Return the current state of an order."""
        payload = await self._request("GET", f"/portfolio/orders/{order_id}")
        return order_from_json(payload["order"])

    async def cancel_order(self, order_id: str) -> None:
        """Cancel a resting order."""
        logger.info("Cancelling order %s", order_id)
        await self._request("DELETE", f"/portfolio/orders/{order_id}")

    async def get_balance(self) -> int:
        """Return the available account balance in cents."""
        payload = await self._request("GET", "/portfolio/balance")
        balance = int(payload.get("balance") or 0)
        logger.debug("Kalshi balance: $%.2f", balance / CENTS_PER_DOLLAR)
        return balance

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "KalshiClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()
