"""Async HTTP client for the Shipp live sports feed.

Besides wrapping the REST API, the client owns the game lifecycle
bookkeeping that follows from feed data: schedule lookups upsert ``Game``
rows, the first live events move a game from ``scheduled`` to ``live``, and
an event carrying a final game status marks it ``completed``. The
incremental event cursor of each feed connection is persisted so polling
resumes where it left off across restarts.
"""

import json
import logging
from typing import Any

import httpx

from alph_bot.clients.shipp.exceptions import ShippAPIError, ShippConfigurationError
from alph_bot.clients.shipp.models import ScheduleGame, is_final_event
from alph_bot.core.config import SHIPP_URL, ConfigLoader, get_config
from alph_bot.core.models import GameStatus, LiveEventBatch, Sport
from alph_bot.core.timestamps import now_ms
from alph_bot.storage.models import Connection
from alph_bot.storage.repository import TradingRepository

logger = logging.getLogger(__name__)

_HTTP_BAD_REQUEST = 400
_DEFAULT_EVENT_LIMIT = 100


def live_filter_instructions(sport: Sport, game_id: str) -> str:
    """Return the connection filter used to follow one game."""
    return f"Live events for {sport.value} game {game_id}"


class ShippClient:
    """Async client for Shipp schedules and live event connections.

    Args:
        repository: Persistence for games and connections.
        api_key: Shipp API key, sent as the ``api_key`` query parameter.
        base_url: Base URL for the Shipp API.
        timeout: Request timeout in seconds.

    """

    def __init__(
        self,
        repository: TradingRepository,
        api_key: str | None,
        base_url: str = SHIPP_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the Shipp client.

        Args:
            repository: Persistence for games and connections.
            api_key: Shipp API key.
            base_url: Base URL for the Shipp API.
            timeout: Request timeout in seconds.

        """
        self._repository = repository
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            timeout=timeout, headers={"Content-Type": "application/json"}
        )

    @classmethod
    def from_config(
        cls,
        repository: TradingRepository,
        loader: ConfigLoader | None = None,
        *,
        api_key: str | None = None,
    ) -> "ShippClient":
        """Create a client from the ``shipp`` configuration section.

        Args:
            repository: Persistence for games and connections.
            loader: Configuration source. Defaults to the global loader.
            api_key: Overrides the configured API key.

        """
        settings = (loader or get_config()).shipp_settings(api_key=api_key)
        return cls(repository=repository, api_key=settings.api_key, base_url=settings.base_url)

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return parsed JSON.

        Args:
            method: HTTP method.
            path: Request path relative to ``base_url``.
            body: Optional JSON body.

        Returns:
            Parsed JSON response.

        Raises:
            ShippConfigurationError: If no API key is configured.
            ShippAPIError: For transport failures and error responses.

        """
        if not self._api_key:
            raise ShippConfigurationError(
                "ALPH_BOT_SHIPP_API_KEY is required for Shipp integration"
            )
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request(
                method, url, params={"api_key": self._api_key}, json=body
            )
        except httpx.HTTPError as exc:
            logger.error("Shipp API error: network_error %s %s", method, path)
            raise ShippAPIError(f"HTTP request failed: {type(exc).__name__}") from exc

        if response.status_code >= _HTTP_BAD_REQUEST:
            logger.error("Shipp API error: %d %s %s", response.status_code, method, path)
            self._handle_error(response)

        return response.json()

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise a ShippAPIError from an error response.

        Raises:
            ShippAPIError: Always raised with status code and message.

        """
        try:
            data = response.json()
            msg = str(data.get("message") or data.get("error") or f"HTTP {response.status_code}")
        except Exception:
            msg = f"HTTP {response.status_code}"
        raise ShippAPIError(msg=msg, status_code=response.status_code)

    async def get_schedule(self, sport: Sport) -> list[ScheduleGame]:
        """Fetch a sport's schedule and upsert every game into the database.

        Args:
            sport: Sport to fetch.

        Returns:
            Parsed schedule entries; entries without a game id are dropped.

        """
        logger.info("Fetching schedule for %s", sport.value)
        payload = await self._request("GET", f"/sports/{sport.value}/schedule")
        entries = payload.get("schedule") or []
        logger.debug("Retrieved %d games", len(entries))

        games: list[ScheduleGame] = []
        for entry in entries:
            game = ScheduleGame.from_json(entry)
            if game is None:
                continue
            await self._repository.upsert_game(
                game.game_id,
                sport.value,
                home_team=game.home,
                away_team=game.away,
                venue=game.venue,
                scheduled_start_time=game.scheduled_ts,
                status=game.status,
                metadata_json=json.dumps(game.raw),
            )
            games.append(game)
        return games

    async def get_or_create_connection(
        self,
        filter_instructions: str,
        sport: Sport,
        name: str | None = None,
        description: str | None = None,
    ) -> str:
        """Return the connection for ``filter_instructions``, creating it if needed.

        Args:
            filter_instructions: Natural-language event filter.
            sport: Sport the connection serves.
            name: Optional display name.
            description: Optional description.

        Returns:
            The feed connection id.

        """
        existing = await self._repository.get_connection_by_filter(filter_instructions)
        if existing is not None:
            logger.debug("Reusing connection %s", existing.connection_id)
            return existing.connection_id

        logger.info("Creating connection: %s", filter_instructions)
        payload = await self._request(
            "POST", "/connections/create", {"filter_instructions": filter_instructions}
        )
        connection_id = str(payload["connection_id"])
        await self._repository.add_connection(
            Connection(
                connection_id=connection_id,
                filter_instructions=filter_instructions,
                sport=sport.value,
                enabled=bool(payload.get("enabled", True)),
                name=name,
                description=description,
                created_at=now_ms(),
            )
        )
        logger.info("Created connection %s", connection_id)
        return connection_id

    async def get_live_events(
        self,
        game_id: str,
        sport: Sport,
        since_event_id: str | None = None,
        limit: int = _DEFAULT_EVENT_LIMIT,
    ) -> LiveEventBatch:
        """Poll a game's connection for events newer than the cursor.

        A completed game returns an empty batch without any HTTP call.
        Without an explicit ``since_event_id`` the connection's persisted
        cursor is used.

        Args:
            game_id: Feed game identifier.
            sport: Sport of the game.
            since_event_id: Only return events after this id.
            limit: Maximum number of events to request.

        Returns:
            The new events for this game, oldest first.

        """
        game = await self._repository.get_game(game_id)
        if game is not None and game.status == GameStatus.COMPLETED.value:
            logger.info("Skipping completed game %s", game_id)
            return LiveEventBatch(connection_id="")

        connection_id = await self.get_or_create_connection(
            live_filter_instructions(sport, game_id),
            sport,
            name=f"{sport.value} - {game_id}",
        )

        cursor = since_event_id
        if cursor is None:
            connection = await self._repository.get_connection(connection_id)
            cursor = connection.last_event_id if connection is not None else None

        body: dict[str, Any] = {"limit": limit}
        if cursor is not None:
            body["since_event_id"] = cursor
        logger.debug("Polling connection %s since_event_id=%s", connection_id, cursor or "none")

        payload = await self._request("POST", f"/connections/{connection_id}", body)
        events = [
            event for event in payload.get("data") or [] if str(event.get("game_id")) == game_id
        ]
        batch = LiveEventBatch(connection_id=connection_id, events=events)

        if events and game is not None and game.status == GameStatus.SCHEDULED.value:
            await self._repository.update_game_status(game_id, GameStatus.LIVE)
        if any(is_final_event(event) for event in events):
            await self._repository.update_game_status(game_id, GameStatus.COMPLETED)

        await self._repository.update_connection_cursor(
            connection_id, batch.last_event_id, last_run_at=now_ms()
        )
        logger.info("Retrieved %d live events", len(events))
        return batch

    async def update_game_status(self, game_id: str, status: GameStatus) -> bool:
        """Advance a game's lifecycle status; backward moves are ignored."""
        logger.info("Updating game %s status to %s", game_id, status.value)
        return await self._repository.update_game_status(game_id, status)

    async def list_connections(self) -> list[dict[str, Any]]:
        """Return the connections registered with the feed."""
        payload = await self._request("GET", "/connections")
        connections: list[dict[str, Any]] = payload.get("connections") or []
        return connections

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "ShippClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()
