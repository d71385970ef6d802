"""
Per-session cache of the user's Discord guild list.

The snapshot lives in the session under ``cached_guilds`` as
``{"guilds": [...], "expires_at": <unix seconds>}``. It is replaced wholesale
on expiry; a failed refresh propagates and leaves the old entry in place.
"""

from __future__ import annotations

import time
from collections.abc import MutableMapping
from typing import Any, Protocol

from utils.logging import get_logger

logger = get_logger(__name__)

GUILD_LIST_TTL_SECONDS = 300
SESSION_CACHE_KEY = "cached_guilds"


class UserGuildsFetcher(Protocol):
    async def fetch_user_guilds(self, access_token: str) -> list[dict[str, Any]]: ...


def _fresh_entry(session: MutableMapping[str, Any], now: float) -> dict | None:
    cached = session.get(SESSION_CACHE_KEY)
    if not isinstance(cached, dict):
        return None
    expires_at = cached.get("expires_at")
    if not isinstance(expires_at, (int, float)) or now >= expires_at:
        return None
    return cached


async def get_cached_user_guilds(
    session: MutableMapping[str, Any],
    access_token: str,
    discord: UserGuildsFetcher,
    now: float | None = None,
    ttl: float = GUILD_LIST_TTL_SECONDS,
) -> list[dict[str, Any]]:
    """
    Return the user's guilds, fetching from Discord only on a cache miss.

    Args:
        session: Mutable session payload owned by the current request.
        access_token: The user's OAuth bearer token.
        discord: Client exposing ``fetch_user_guilds``.
        now: Current unix time; defaults to ``time.time()``.
        ttl: Cache lifetime in seconds.

    Raises:
        httpx.HTTPStatusError / httpx.RequestError: when the fetch fails.
    """
    current = time.time() if now is None else now

    cached = _fresh_entry(session, current)
    if cached is not None:
        return cached["guilds"]

    guilds = await discord.fetch_user_guilds(access_token)
    session[SESSION_CACHE_KEY] = {"guilds": guilds, "expires_at": current + ttl}
    logger.debug("Refreshed cached guild list (%d guilds)", len(guilds))
    return guilds


def invalidate_guild_cache(session: MutableMapping[str, Any]) -> None:
    session.pop(SESSION_CACHE_KEY, None)
