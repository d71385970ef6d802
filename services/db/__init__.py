"""
Database Package

MongoDB access layer for the bot website.
"""

from .database import Database
from .repository import (
    GuildConfigRepository,
    UnitRepository,
    UserRepository,
    build_settings_update,
    flatten_update,
)

__all__ = [
    "Database",
    "GuildConfigRepository",
    "UnitRepository",
    "UserRepository",
    "build_settings_update",
    "flatten_update",
]
