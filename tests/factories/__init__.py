"""
Test Factories Module

Centralized fakes and factory functions: config files, an in-memory
MongoDB client and Discord REST client doubles.
"""

from .config_factories import make_config, temp_config_file
from .discord_factories import (
    MANAGE_GUILD_PERMS,
    NO_PERMS,
    FakeDiscordBotClient,
    FakeDiscordOAuthClient,
    make_discord_user,
    make_guild,
    make_http_status_error,
)
from .mongo_factories import (
    FakeCollection,
    FakeMongoClient,
    make_guild_config,
    make_user_config,
)

__all__ = [
    "MANAGE_GUILD_PERMS",
    "NO_PERMS",
    "FakeCollection",
    "FakeDiscordBotClient",
    "FakeDiscordOAuthClient",
    "FakeMongoClient",
    "make_config",
    "make_discord_user",
    "make_guild",
    "make_guild_config",
    "make_http_status_error",
    "make_user_config",
    "temp_config_file",
]
