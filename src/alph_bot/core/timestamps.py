"""Timestamp helpers.

Games store their scheduled, start and end times in epoch seconds; orders
and bookkeeping columns use epoch milliseconds. Daily risk limits reset at
local midnight.
"""

import time
from datetime import UTC, datetime

_MS_PER_SECOND = 1000


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * _MS_PER_SECOND)


def now_seconds() -> int:
    """Return the current time in epoch seconds."""
    return int(time.time())


def parse_iso_timestamp(value: str) -> int:
    """Parse an ISO-8601 timestamp into epoch seconds.

    A trailing ``Z`` is accepted and naive timestamps are treated as UTC.

    Args:
        value: ISO-8601 date-time string.

    Returns:
        Epoch seconds.

    Raises:
        ValueError: If ``value`` is not a valid ISO-8601 timestamp.

    """
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp())


def format_epoch_seconds(ts: int) -> str:
    """Format epoch seconds as a UTC ISO-8601 string."""
    return datetime.fromtimestamp(ts, tz=UTC).isoformat()


def start_of_local_day_ms(reference: datetime | None = None) -> int:
    """Return local midnight of the reference day in epoch milliseconds.

    Args:
        reference: Aware or local-naive datetime. Defaults to now.

    """
    current = reference if reference is not None else datetime.now().astimezone()
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * _MS_PER_SECOND)
