"""Async repository for games, orders and feed connections.

Wrap SQLAlchemy async engine and session management for the trading agent.
Game status changes go through ``update_game_status``, which only ever moves
a game forward through ``scheduled -> live -> completed`` and stamps the
start and end times exactly once.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from alph_bot.core.models import GameStatus
from alph_bot.core.timestamps import now_ms, now_seconds
from alph_bot.storage.models import Base, Connection, Game, Order

logger = logging.getLogger(__name__)

_OPEN_STATUS = "open"


def _advance_status(game: Game, status: GameStatus, at: int) -> bool:
    """Move ``game`` forward to ``status`` in place.

    Args:
        game: Game row to mutate.
        status: Requested status.
        at: Epoch seconds to stamp on start/end transitions.

    Returns:
        True when the status advanced, False when the request was a no-op.

    """
    current = GameStatus(game.status)
    if status.rank <= current.rank:
        return False
    if game.actual_start_time is None and status.rank >= GameStatus.LIVE.rank:
        game.actual_start_time = at
    if status == GameStatus.COMPLETED and game.end_time is None:
        game.end_time = at
    game.status = status.value
    game.updated_at = now_ms()
    return True


class TradingRepository:
    """Async repository for trading agent persistence.

    Args:
        db_url: SQLAlchemy async connection string
            (e.g. ``sqlite+aiosqlite:///db.sqlite``).

    """

    def __init__(self, db_url: str) -> None:
        """Initialize the repository with an async database engine.

        Args:
            db_url: SQLAlchemy async connection string.

        """
        self._engine: AsyncEngine = create_async_engine(db_url, echo=False)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_db(self) -> None:
        """Create all tables if they do not already exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised")

    # -- games --------------------------------------------------------------

    async def get_game(self, game_id: str) -> Game | None:
        """Return the game with external id ``game_id``, if tracked."""
        stmt = select(Game).where(Game.game_id == game_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def list_games(
        self, sport: str | None = None, status: GameStatus | None = None
    ) -> list[Game]:
        """Return tracked games ordered by scheduled start.

        Args:
            sport: Optional sport code filter.
            status: Optional lifecycle status filter.

        """
        stmt = select(Game).order_by(Game.scheduled_start_time)
        if sport is not None:
            stmt = stmt.where(Game.sport == sport)
        if status is not None:
            stmt = stmt.where(Game.status == status.value)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def upsert_game(  # noqa: PLR0913
        self,
        game_id: str,
        sport: str,
        *,
        home_team: str | None,
        away_team: str | None,
        scheduled_start_time: int | None,
        status: GameStatus = GameStatus.SCHEDULED,
        venue: str | None = None,
        metadata_json: str | None = None,
    ) -> Game:
        """Insert a game or refresh an existing one from schedule data.

        Labels, venue, scheduled start and metadata are overwritten. The
        status is only ever advanced, never moved backward.

        Args:
            game_id: External game identifier.
            sport: Sport code.
            home_team: Home team label.
            away_team: Away team label.
            scheduled_start_time: Scheduled start in epoch seconds.
            status: Status reported by the schedule.
            venue: Venue name.
            metadata_json: Raw schedule payload as JSON text.

        Returns:
            The persisted ``Game``.

        """
        now = now_ms()
        async with self._session_factory() as session, session.begin():
            result = await session.execute(select(Game).where(Game.game_id == game_id))
            game = result.scalar_one_or_none()
            if game is None:
                game = Game(
                    game_id=game_id,
                    sport=sport,
                    status=GameStatus.SCHEDULED.value,
                    created_at=now,
                    updated_at=now,
                )
                session.add(game)
            game.home_team = home_team
            game.away_team = away_team
            game.venue = venue
            game.scheduled_start_time = scheduled_start_time
            game.metadata_json = metadata_json
            game.updated_at = now
            _advance_status(game, status, now_seconds())
        return game

    async def update_game_status(
        self, game_id: str, status: GameStatus, at: int | None = None
    ) -> bool:
        """Advance a game's lifecycle status.

        Requests that would not move the game forward are logged and ignored,
        so a completed game never changes again.

        Args:
            game_id: External game identifier.
            status: Requested status.
            at: Epoch seconds for the start/end stamps. Defaults to now.

        Returns:
            True if the status changed.

        """
        stamp = at if at is not None else now_seconds()
        async with self._session_factory() as session, session.begin():
            result = await session.execute(select(Game).where(Game.game_id == game_id))
            game = result.scalar_one_or_none()
            if game is None:
                logger.warning("Cannot update status of unknown game %s", game_id)
                return False
            previous = game.status
            if not _advance_status(game, status, stamp):
                logger.debug(
                    "Ignoring status change %s -> %s for game %s",
                    previous,
                    status.value,
                    game_id,
                )
                return False
        logger.info("Game %s status %s -> %s", game_id, previous, status.value)
        return True

    # -- orders -------------------------------------------------------------

    async def add_order(self, order: Order) -> Order:
        """Persist a new order and return it with its primary key set."""
        async with self._session_factory() as session, session.begin():
            session.add(order)
        logger.debug("Saved order %d on %s", order.id, order.market_id)
        return order

    async def get_orders(self, game_id: str | None = None) -> list[Order]:
        """Return orders, optionally for one game, oldest first."""
        stmt = select(Order).order_by(Order.opened_at, Order.id)
        if game_id is not None:
            stmt = stmt.where(Order.game_id == game_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_open_orders(self) -> list[Order]:
        """Return every order with status ``open``."""
        stmt = select(Order).where(Order.status == _OPEN_STATUS)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_orders_opened_since(self, since_ms: int) -> list[Order]:
        """Return orders opened at or after ``since_ms`` (epoch milliseconds)."""
        stmt = select(Order).where(Order.opened_at >= since_ms)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_open_orders_for_market(self, market_id: str) -> list[Order]:
        """Return open orders on the market ticker ``market_id``."""
        stmt = select(Order).where(Order.market_id == market_id, Order.status == _OPEN_STATUS)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # -- connections --------------------------------------------------------

    async def get_connection_by_filter(self, filter_instructions: str) -> Connection | None:
        """Return the connection created for identical filter instructions."""
        stmt = (
            select(Connection)
            .where(Connection.filter_instructions == filter_instructions)
            .order_by(Connection.id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def get_connection(self, connection_id: str) -> Connection | None:
        """Return the connection with feed id ``connection_id``."""
        stmt = select(Connection).where(Connection.connection_id == connection_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def add_connection(self, connection: Connection) -> Connection:
        """Persist a newly created feed connection."""
        async with self._session_factory() as session, session.begin():
            session.add(connection)
        logger.debug("Saved connection %s", connection.connection_id)
        return connection

    async def update_connection_cursor(
        self, connection_id: str, last_event_id: str | None, last_run_at: int
    ) -> None:
        """Record the last poll time and, when given, the newest event id.

        Args:
            connection_id: Feed connection identifier.
            last_event_id: Newest event id seen, or None to keep the cursor.
            last_run_at: Epoch milliseconds of the poll.

        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(Connection).where(Connection.connection_id == connection_id)
            )
            connection = result.scalar_one_or_none()
            if connection is None:
                logger.warning("Cannot update cursor of unknown connection %s", connection_id)
                return
            connection.last_run_at = last_run_at
            if last_event_id is not None:
                connection.last_event_id = last_event_id

    async def close(self) -> None:
        """Dispose the async engine and release all connections."""
        await self._engine.dispose()
        logger.info("Database engine disposed")
