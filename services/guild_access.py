"""
Guild access resolution.

A user may administer a guild's bot configuration when Discord reports the
MANAGE_GUILD permission for them, or when one of their roles in that guild
is on the guild's configured admin-role allow-list.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import httpx

from utils.logging import get_logger

logger = get_logger(__name__)

MANAGE_GUILD = 0x20


class GuildMemberFetcher(Protocol):
    async def fetch_guild_member(self, access_token: str, guild_id: str) -> dict: ...


def parse_permissions(discord_permissions: str | int | None) -> int:
    """
    Parse Discord's decimal-string permission bitmask into an int.

    Discord sends permissions as strings because the values exceed 53 bits;
    Python ints are arbitrary precision so ``int()`` is exact. Anything that
    is not a non-negative decimal integer is treated as no permissions.
    """
    if discord_permissions is None:
        return 0
    if isinstance(discord_permissions, bool):
        return 0
    if isinstance(discord_permissions, int):
        return max(discord_permissions, 0)
    text = str(discord_permissions).strip()
    if not (text.isascii() and text.isdigit()):
        return 0
    return int(text)


def has_manage_guild(discord_permissions: str | int | None) -> bool:
    return bool(parse_permissions(discord_permissions) & MANAGE_GUILD)


async def can_access_guild(
    discord: GuildMemberFetcher,
    access_token: str,
    guild_id: str,
    discord_permissions: str | int | None,
    admin_role_allow_list: Sequence[str] | None,
) -> bool:
    """
    Decide whether the user behind ``access_token`` may manage ``guild_id``.

    The MANAGE_GUILD bit short-circuits without any Discord call. Otherwise
    the user's member roles are fetched once and checked against the
    allow-list. A failed fetch is a denial, never an exception.
    """
    if has_manage_guild(discord_permissions):
        return True

    allowed_roles = {str(role_id) for role_id in admin_role_allow_list or ()}

    try:
        member = await discord.fetch_guild_member(access_token, guild_id)
    except httpx.HTTPStatusError as e:
        logger.info(
            "Guild member lookup rejected by Discord",
            extra={"guild_id": guild_id, "status": e.response.status_code},
        )
        return False
    except Exception as e:
        logger.warning(
            "Guild member lookup failed",
            extra={"guild_id": guild_id, "cause": type(e).__name__},
        )
        return False

    roles = (member or {}).get("roles") or []
    return any(str(role_id) in allowed_roles for role_id in roles)
