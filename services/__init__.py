"""
Services package for the bot website.

Domain logic shared by the HTTP routes: settings reconciliation, guild
access checks, the session guild-list cache, the command catalogue and
arena payout countdowns. Storage lives in ``services.db``.
"""

from .base import BaseService
from .command_service import CommandCatalogService
from .guild_access import MANAGE_GUILD, can_access_guild, has_manage_guild
from .guild_list_cache import GUILD_LIST_TTL_SECONDS, get_cached_user_guilds
from .payout import format_payout_times
from .settings_reconciler import (
    DEFAULT_GUILD_SETTINGS,
    ReconciliationResult,
    diff_from_defaults,
)

__all__ = [
    "DEFAULT_GUILD_SETTINGS",
    "GUILD_LIST_TTL_SECONDS",
    "MANAGE_GUILD",
    "BaseService",
    "CommandCatalogService",
    "ReconciliationResult",
    "can_access_guild",
    "diff_from_defaults",
    "format_payout_times",
    "get_cached_user_guilds",
    "has_manage_guild",
]
