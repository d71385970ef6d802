"""
Arena payout countdowns.

A player's ``poOffset`` is their timezone offset in minutes as stored by the
bot. Character arena pays out 6 hours before that local midnight, fleet
arena 5 hours before.
"""

import time
from datetime import UTC, datetime

DAY_MS = 24 * 60 * 60 * 1000
HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000

ARENA_OFFSETS = {"char": 6, "fleet": 5}


def _utc_midnight_ms(now_ms: int) -> int:
    today = datetime.fromtimestamp(now_ms / 1000, tz=UTC).date()
    midnight = datetime(today.year, today.month, today.day, tzinfo=UTC)
    return int(midnight.timestamp() * 1000)


def time_until_payout(po_offset: int, hour_diff: int, now_ms: int) -> int:
    """Milliseconds from ``now_ms`` until the next payout."""
    then = DAY_MS - 1 + _utc_midnight_ms(now_ms) - po_offset * MINUTE_MS - hour_diff * HOUR_MS
    if then < now_ms:
        then += DAY_MS
    return then - now_ms


def format_duration(ms: int) -> str:
    hours = ms // HOUR_MS
    minutes = (ms % HOUR_MS) // MINUTE_MS
    return f"{hours}h {minutes}m"


def format_payout_times(po_offset: int, now_ms: int | None = None) -> dict[str, str]:
    """Return ``{"char": "Hh Mm", "fleet": "Hh Mm"}`` for a payout offset."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    offset = int(po_offset or 0)
    return {
        arena: format_duration(time_until_payout(offset, hours, now_ms))
        for arena, hours in ARENA_OFFSETS.items()
    }
