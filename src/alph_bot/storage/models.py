"""SQLAlchemy ORM models for the trading database.

Define the ``games``, ``orders`` and ``connections`` tables. Games carry the
lifecycle status driven by the feed client and trading loop; orders form the
append-only audit trail of every approved trade; connections hold the live
feed's incremental cursor.
"""

from sqlalchemy import BigInteger, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for all trading ORM models."""


class Game(Base):
    """A tracked sporting event.

    Attributes:
        id: Auto-incrementing primary key.
        game_id: External game identifier from the sports feed (unique).
        sport: Sport code (e.g. ``"NBA"``).
        status: ``"scheduled"``, ``"live"`` or ``"completed"``.
        home_team: Home team label.
        away_team: Away team label.
        venue: Venue name, if known.
        scheduled_start_time: Scheduled start in epoch seconds.
        actual_start_time: Epoch seconds of the first transition into live.
        end_time: Epoch seconds of the transition into completed.
        created_at: Epoch milliseconds when the row was inserted.
        updated_at: Epoch milliseconds of the last change.
        metadata_json: Raw schedule payload as JSON text.

    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    sport: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default="scheduled")
    home_team: Mapped[str | None] = mapped_column(String, nullable=True)
    away_team: Mapped[str | None] = mapped_column(String, nullable=True)
    venue: Mapped[str | None] = mapped_column(String, nullable=True)
    scheduled_start_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    actual_start_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    end_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    updated_at: Mapped[int] = mapped_column(BigInteger)
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)


class Order(Base):
    """A paper or live order placed by the trading loop.

    Sizes and prices are integer cents. Settlement (close price, P&L and the
    final status) is written by a process outside the trading loop.

    Attributes:
        id: Auto-incrementing primary key.
        market_type: Venue type, ``"kalshi"``.
        market_id: Exchange market ticker (indexed).
        market_title: Human-readable market title.
        side: ``"yes"`` or ``"no"``.
        size: Position size in cents.
        entry_price: Price paid per contract in cents.
        current_price: Latest marked price in cents.
        status: ``"paper"``, ``"open"``, ``"closed"`` and so on (indexed).
        opened_at: Epoch milliseconds when the order was recorded (indexed).
        closed_at: Epoch milliseconds when settled.
        close_price: Settlement price in cents.
        pnl: Realised profit and loss in cents, null until closed.
        strategy: Strategy tag, ``"value-bet"``.
        game_id: External game identifier the order was placed on.
        metadata_json: JSON audit blob with the estimate and risk decision.
        external_order_id: Exchange order identifier for live orders.
        average_fill_price: Average fill price in cents.
        submitted_at: Epoch milliseconds of exchange submission.
        filled_at: Epoch milliseconds of the final fill.
        cancelled_at: Epoch milliseconds of cancellation.
        error_message: Failure detail for rejected submissions.

    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_type: Mapped[str] = mapped_column(String)
    market_id: Mapped[str] = mapped_column(String, index=True)
    market_title: Mapped[str] = mapped_column(String)
    side: Mapped[str] = mapped_column(String)
    size: Mapped[int] = mapped_column(Integer)
    entry_price: Mapped[int] = mapped_column(Integer)
    current_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String, index=True)
    opened_at: Mapped[int] = mapped_column(BigInteger, index=True)
    closed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    close_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pnl: Mapped[int | None] = mapped_column(Integer, nullable=True)
    strategy: Mapped[str | None] = mapped_column(String, nullable=True)
    game_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    external_order_id: Mapped[str | None] = mapped_column(String, nullable=True)
    average_fill_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    submitted_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    filled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    cancelled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("ix_orders_market_status", "market_id", "status"),)


class Connection(Base):
    """A live-feed connection and its incremental event cursor.

    Attributes:
        id: Auto-incrementing primary key.
        connection_id: Feed connection identifier (unique).
        filter_instructions: Natural-language filter the connection was created with.
        sport: Sport code the connection serves.
        enabled: Whether the feed reports the connection as enabled.
        name: Optional display name.
        description: Optional description.
        created_at: Epoch milliseconds when the row was inserted.
        last_run_at: Epoch milliseconds of the last poll.
        last_event_id: Id of the newest event seen, used as the ``since`` cursor.

    """

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    connection_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    filter_instructions: Mapped[str] = mapped_column(Text, index=True)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    last_run_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_event_id: Mapped[str | None] = mapped_column(String, nullable=True)
