"""
Database and Repository Tests

Run against the in-memory Mongo fake so the exact filters and update
documents sent to MongoDB can be asserted.
"""

import pytest
from pymongo.errors import PyMongoError

from services.db.database import Database
from services.db.repository import (
    GUILD_CONFIGS,
    UNITS,
    USERS,
    GuildConfigRepository,
    UnitRepository,
    UserRepository,
    build_settings_update,
    flatten_update,
)
from tests.factories import FakeMongoClient, make_guild_config, make_user_config
from utils.errors import DatabaseError

GUILD_ID = "111111111111111111"
USER_ID = "222222222222222222"


class TestUpdateBuilders:
    def test_settings_update_prefixes_keys(self):
        update = build_settings_update({"timezone": "UTC"}, ["language"])

        assert update == {
            "$set": {"settings.timezone": "UTC"},
            "$unset": {"settings.language": 1},
        }

    def test_settings_update_omits_empty_operators(self):
        assert build_settings_update({}, []) == {}
        assert build_settings_update({}, ["enablePart"]) == {
            "$unset": {"settings.enablePart": 1}
        }

    def test_flatten_nested_sections(self):
        flat = flatten_update({"arenaAlert": {"arena": "char", "payoutWarning": 5}})

        assert flat == {"arenaAlert.arena": "char", "arenaAlert.payoutWarning": 5}

    def test_flatten_keeps_lists_and_empty_dicts_as_leaves(self):
        flat = flatten_update({"settings": {"adminRole": ["1"], "aliases": {}}})

        assert flat == {"settings.adminRole": ["1"], "settings.aliases": {}}


@pytest.mark.asyncio
class TestDatabase:
    async def test_initialize_pings_and_exposes_databases(self):
        Database.reset()
        client = FakeMongoClient()

        await Database.initialize(client=client, bot_db="botdb", swapi_db="gamedb")

        assert Database.is_initialized()
        assert Database.bot_db().name == "botdb"
        assert Database.swapi_db().name == "gamedb"
        Database.reset()

    async def test_unreachable_server_raises_and_closes(self):
        Database.reset()
        client = FakeMongoClient(reachable=False)

        with pytest.raises(DatabaseError):
            await Database.initialize(client=client)

        assert client.closed
        assert not Database.is_initialized()
        Database.reset()

    async def test_missing_uri_raises(self):
        Database.reset()

        with pytest.raises(DatabaseError):
            await Database.initialize(uri="")

    async def test_access_before_initialize_raises(self):
        Database.reset()

        with pytest.raises(DatabaseError):
            Database.bot_db()

    async def test_close_closes_client(self, fake_mongo):
        await Database.close()

        assert fake_mongo.closed
        assert not Database.is_initialized()


@pytest.mark.asyncio
class TestGuildConfigRepository:
    async def test_get_guild_config_hides_object_id(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]
        await collection.insert_one(make_guild_config(GUILD_ID, {"timezone": "UTC"}))

        config = await GuildConfigRepository.get_guild_config(GUILD_ID)

        assert config == {"guildId": GUILD_ID, "settings": {"timezone": "UTC"}}

    async def test_get_guild_config_missing(self, fake_mongo):
        assert await GuildConfigRepository.get_guild_config(GUILD_ID) is None

    async def test_get_guild_configs_batches(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]
        await collection.insert_one(make_guild_config("111111111111111111"))
        await collection.insert_one(make_guild_config("555555555555555555"))

        configs = await GuildConfigRepository.get_guild_configs(
            ["111111111111111111", "999999999999999999"]
        )

        assert [c["guildId"] for c in configs] == ["111111111111111111"]
        assert collection.find_calls[-1][0] == {
            "guildId": {"$in": ["111111111111111111", "999999999999999999"]}
        }

    async def test_get_guild_configs_empty_input_skips_query(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]

        assert await GuildConfigRepository.get_guild_configs([]) == []
        assert collection.find_calls == []

    async def test_update_settings_sets_and_unsets(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]
        await collection.insert_one(
            make_guild_config(GUILD_ID, {"timezone": "UTC", "language": "de_DE"})
        )

        sent = await GuildConfigRepository.update_guild_settings(
            GUILD_ID, {"timezone": "Europe/Berlin"}, ["language"]
        )

        assert sent is True
        stored = await GuildConfigRepository.get_guild_config(GUILD_ID)
        assert stored["settings"] == {"timezone": "Europe/Berlin"}
        assert collection.update_calls[-1] == (
            {"guildId": GUILD_ID},
            {"$set": {"settings.timezone": "Europe/Berlin"}, "$unset": {"settings.language": 1}},
        )

    async def test_update_settings_empty_delta_is_noop(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]

        sent = await GuildConfigRepository.update_guild_settings(GUILD_ID, {}, [])

        assert sent is False
        assert collection.update_calls == []

    async def test_update_settings_never_creates_document(self, fake_mongo):
        await GuildConfigRepository.update_guild_settings(GUILD_ID, {"timezone": "UTC"})

        assert await GuildConfigRepository.get_guild_config(GUILD_ID) is None

    async def test_update_events_replaces_list(self, fake_mongo):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]
        await collection.insert_one(make_guild_config(GUILD_ID, events=[{"name": "old"}]))

        await GuildConfigRepository.update_guild_events(GUILD_ID, [{"name": "new"}])

        stored = await GuildConfigRepository.get_guild_config(GUILD_ID)
        assert stored["events"] == [{"name": "new"}]

    async def test_driver_errors_become_database_errors(self, fake_mongo, monkeypatch):
        collection = fake_mongo["swgohbot"][GUILD_CONFIGS]

        async def broken_find_one(*args, **kwargs):
            raise PyMongoError("connection reset")

        monkeypatch.setattr(collection, "find_one", broken_find_one)

        with pytest.raises(DatabaseError):
            await GuildConfigRepository.get_guild_config(GUILD_ID)


@pytest.mark.asyncio
class TestUserRepository:
    async def test_update_user_merges_nested_fields(self, fake_mongo):
        collection = fake_mongo["swgohbot"][USERS]
        await collection.insert_one(make_user_config(USER_ID))

        matched = await UserRepository.update_user(USER_ID, {"arenaAlert": {"arena": "char"}})

        assert matched is True
        user = await UserRepository.get_user(USER_ID)
        assert user["arenaAlert"]["arena"] == "char"
        assert user["arenaAlert"]["payoutWarning"] == 0
        assert "_id" not in user

    async def test_update_missing_user_reports_no_match(self, fake_mongo):
        matched = await UserRepository.update_user(USER_ID, {"lang": {"language": "de_DE"}})

        assert matched is False

    async def test_empty_changes_send_nothing(self, fake_mongo):
        collection = fake_mongo["swgohbot"][USERS]

        assert await UserRepository.update_user(USER_ID, {}) is False
        assert collection.update_calls == []


@pytest.mark.asyncio
class TestUnitRepository:
    async def test_names_for_known_units(self, fake_mongo):
        units = fake_mongo["swapi"][UNITS]
        await units.insert_one({"baseId": "VADER", "nameKey": "Darth Vader", "language": "eng_us"})
        await units.insert_one({"baseId": "VADER", "nameKey": "Darth Vader DE", "language": "ger_de"})
        await units.insert_one({"baseId": "REYJEDITRAINING", "nameKey": "Rey (Jedi Training)", "language": "eng_us"})

        names = await UnitRepository.get_unit_names(["VADER", "REYJEDITRAINING", "UNKNOWN", "VADER"])

        assert names == {"VADER": "Darth Vader", "REYJEDITRAINING": "Rey (Jedi Training)"}
        query, projection = units.find_calls[-1]
        assert query["baseId"] == {"$in": ["VADER", "REYJEDITRAINING", "UNKNOWN"]}
        assert projection == {"baseId": 1, "nameKey": 1, "_id": 0}

    async def test_no_ids_skips_query(self, fake_mongo):
        units = fake_mongo["swapi"][UNITS]

        assert await UnitRepository.get_unit_names([]) == {}
        assert units.find_calls == []
