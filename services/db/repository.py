"""
Repositories for the bot's MongoDB documents.

Each repository wraps one collection and resolves it through ``Database``
on every call, so tests can swap the client between cases.

Usage:
    config = await GuildConfigRepository.get_guild_config("123456789012345678")
    await GuildConfigRepository.update_guild_settings(
        "123456789012345678", {"timezone": "Europe/Berlin"}, ["language"]
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from utils.errors import DatabaseError
from utils.logging import get_logger

from .database import Database

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from pymongo.asynchronous.collection import AsyncCollection

logger = get_logger(__name__)

GUILD_CONFIGS = "guildConfigs"
USERS = "users"
UNITS = "units"
UNIT_LANGUAGE = "eng_us"

# Documents go straight into JSON responses; ObjectIds are not serializable.
WITHOUT_ID = {"_id": 0}


def flatten_update(
    changes: Mapping[str, Any], prefix: str = ""
) -> dict[str, Any]:
    """
    Flatten nested mappings into dotted ``$set`` paths.

    ``{"arenaAlert": {"arena": "char"}}`` becomes ``{"arenaAlert.arena": "char"}``
    so sibling fields already stored under ``arenaAlert`` survive the update.
    Lists and scalars are leaves.
    """
    flat: dict[str, Any] = {}
    for key, value in changes.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            flat.update(flatten_update(value, f"{path}."))
        else:
            flat[path] = value
    return flat


def build_settings_update(
    set_fields: Mapping[str, Any], unset_fields: Iterable[str] | None = None
) -> dict[str, Any]:
    """Build a ``$set``/``$unset`` document for keys under ``settings.``."""
    update: dict[str, Any] = {}
    if set_fields:
        update["$set"] = {f"settings.{key}": value for key, value in set_fields.items()}
    unset_list = list(unset_fields or ())
    if unset_list:
        update["$unset"] = {f"settings.{key}": 1 for key in unset_list}
    return update


class BaseRepository:
    """Shared error translation for collection access."""

    collection_name: str = ""

    @classmethod
    def collection(cls) -> AsyncCollection:
        return Database.bot_db()[cls.collection_name]

    @staticmethod
    def _wrap(action: str, error: PyMongoError) -> DatabaseError:
        logger.exception("MongoDB %s failed", action, exc_info=error)
        return DatabaseError(f"{action} failed: {error}")


class GuildConfigRepository(BaseRepository):
    """Per-guild bot configuration documents, keyed by ``guildId``."""

    collection_name = GUILD_CONFIGS

    @classmethod
    async def get_guild_config(cls, guild_id: str) -> dict[str, Any] | None:
        try:
            return await cls.collection().find_one({"guildId": guild_id}, WITHOUT_ID)
        except PyMongoError as e:
            raise cls._wrap("guild config lookup", e) from e

    @classmethod
    async def get_guild_configs(cls, guild_ids: Sequence[str]) -> list[dict[str, Any]]:
        if not guild_ids:
            return []
        try:
            cursor = cls.collection().find(
                {"guildId": {"$in": list(guild_ids)}}, WITHOUT_ID
            )
            return await cursor.to_list()
        except PyMongoError as e:
            raise cls._wrap("guild config batch lookup", e) from e

    @classmethod
    async def update_guild_settings(
        cls,
        guild_id: str,
        set_fields: Mapping[str, Any],
        unset_fields: Iterable[str] | None = None,
    ) -> bool:
        """
        Apply a settings delta. Never creates a document.

        Returns:
            True if an update was sent, False when the delta was empty.
        """
        update = build_settings_update(set_fields, unset_fields)
        if not update:
            return False
        try:
            await cls.collection().update_one({"guildId": guild_id}, update)
        except PyMongoError as e:
            raise cls._wrap("guild settings update", e) from e
        logger.info(
            "Guild settings updated",
            extra={"guild_id": guild_id},
        )
        return True

    @classmethod
    async def update_guild_events(
        cls, guild_id: str, events: list[dict[str, Any]]
    ) -> None:
        try:
            await cls.collection().update_one(
                {"guildId": guild_id}, {"$set": {"events": events}}
            )
        except PyMongoError as e:
            raise cls._wrap("guild events update", e) from e
        logger.info("Guild events updated", extra={"guild_id": guild_id})


class UserRepository(BaseRepository):
    """Per-user bot configuration documents, keyed by Discord ``id``."""

    collection_name = USERS

    @classmethod
    async def get_user(cls, user_id: str) -> dict[str, Any] | None:
        try:
            return await cls.collection().find_one({"id": user_id}, WITHOUT_ID)
        except PyMongoError as e:
            raise cls._wrap("user lookup", e) from e

    @classmethod
    async def update_user(cls, user_id: str, changes: Mapping[str, Any]) -> bool:
        """
        Set the given (possibly nested) fields on an existing user document.

        Returns:
            True if a document matched, False when the user has no document
            or there was nothing to change.
        """
        flat = flatten_update(changes)
        if not flat:
            return False
        try:
            result = await cls.collection().update_one({"id": user_id}, {"$set": flat})
        except PyMongoError as e:
            raise cls._wrap("user update", e) from e
        matched = result.matched_count > 0
        if matched:
            logger.info("User config updated", extra={"user_id": user_id})
        return matched


class UnitRepository:
    """Read-only access to game unit names in the SWAPI database."""

    @staticmethod
    def collection() -> AsyncCollection:
        return Database.swapi_db()[UNITS]

    @classmethod
    async def get_unit_names(cls, def_ids: Iterable[str]) -> dict[str, str]:
        """
        Map unit ``baseId`` to its English ``nameKey``.

        Ids with no matching unit are absent from the result; callers fall
        back to the raw id.
        """
        ids = list(dict.fromkeys(def_ids))
        if not ids:
            return {}
        try:
            cursor = cls.collection().find(
                {"baseId": {"$in": ids}, "language": UNIT_LANGUAGE},
                projection={"baseId": 1, "nameKey": 1, "_id": 0},
            )
            units = await cursor.to_list()
        except PyMongoError as e:
            logger.exception("MongoDB unit name lookup failed", exc_info=e)
            raise DatabaseError(f"unit name lookup failed: {e}") from e
        return {unit["baseId"]: unit["nameKey"] for unit in units}
