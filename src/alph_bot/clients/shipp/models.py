"""Data models for Shipp schedule and live event payloads."""

from dataclasses import dataclass, field
from typing import Any

from alph_bot.core.models import GameStatus
from alph_bot.core.timestamps import parse_iso_timestamp

_LIVE_STATUSES = frozenset({"live", "inprogress", "in_progress", "halftime"})
_FINAL_STATUSES = frozenset({"completed", "complete", "closed", "final", "ended"})


def normalize_game_status(raw: str | None) -> GameStatus:
    """Map a feed status string onto the lifecycle status.

    Unknown or missing values are treated as ``scheduled``.
    """
    value = (raw or "").strip().lower()
    if value in _FINAL_STATUSES:
        return GameStatus.COMPLETED
    if value in _LIVE_STATUSES:
        return GameStatus.LIVE
    return GameStatus.SCHEDULED


def is_final_event(event: dict[str, Any]) -> bool:
    """Return whether a live event reports that its game has finished."""
    raw = event.get("game_status") or event.get("status")
    return isinstance(raw, str) and normalize_game_status(raw) == GameStatus.COMPLETED


def _raw_payload() -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class ScheduleGame:
    """One game from a sport's schedule.

    Args:
        game_id: Feed game identifier.
        home: Home team label.
        away: Away team label.
        scheduled: ISO-8601 scheduled start, if published.
        status: Lifecycle status derived from the feed's status field.
        venue: Venue name.
        raw: The original payload, stored as game metadata.

    """

    game_id: str
    home: str | None
    away: str | None
    scheduled: str | None
    status: GameStatus
    venue: str | None = None
    raw: dict[str, Any] = field(default_factory=_raw_payload)

    @property
    def scheduled_ts(self) -> int | None:
        """Return the scheduled start in epoch seconds."""
        if not self.scheduled:
            return None
        return parse_iso_timestamp(self.scheduled)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ScheduleGame | None":
        """Parse a schedule entry, returning None when it has no game id."""
        game_id = data.get("game_id") or data.get("id")
        if not game_id:
            return None
        return cls(
            game_id=str(game_id),
            home=data.get("home"),
            away=data.get("away"),
            scheduled=data.get("scheduled"),
            status=normalize_game_status(data.get("game_status") or data.get("status")),
            venue=data.get("venue"),
            raw=data,
        )
