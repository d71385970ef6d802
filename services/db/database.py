"""
Database Helper Module

Provides a centralized MongoDB interface for the website. The bot owns the
documents; the website reads them and applies small partial updates. Two
databases are used: the bot database (guild configs, users) and the SWAPI
database (game unit metadata).
"""

import asyncio

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from utils.errors import DatabaseError
from utils.logging import get_logger

logger = get_logger(__name__)


class Database:
    _client: AsyncMongoClient | None = None
    _bot_db_name: str = "swgohbot"
    _swapi_db_name: str = "swapi"
    _lock = asyncio.Lock()  # Ensures that only one initialization happens
    _initialized = False

    @classmethod
    async def initialize(
        cls,
        uri: str | None = None,
        bot_db: str | None = None,
        swapi_db: str | None = None,
        client: AsyncMongoClient | None = None,
    ) -> None:
        """
        Connect to MongoDB and verify the connection with a ping.

        Args:
            uri: MongoDB connection string (ignored when ``client`` is given).
            bot_db: Name of the bot database.
            swapi_db: Name of the SWAPI database.
            client: Pre-built client, used by tests to inject a fake.

        Raises:
            DatabaseError: if the server cannot be reached.
        """
        async with cls._lock:
            if cls._initialized:
                return
            if bot_db:
                cls._bot_db_name = bot_db
            if swapi_db:
                cls._swapi_db_name = swapi_db

            if client is None:
                if not uri:
                    raise DatabaseError("MONGODB_URI is not configured")
                client = AsyncMongoClient(uri)

            try:
                await client[cls._bot_db_name].command("ping")
            except PyMongoError as e:
                await client.close()
                raise DatabaseError(f"Could not connect to MongoDB: {e}") from e

            cls._client = client
            cls._initialized = True
            logger.info(
                "Database initialized (bot=%s, swapi=%s).",
                cls._bot_db_name,
                cls._swapi_db_name,
            )

    @classmethod
    def _require_client(cls) -> AsyncMongoClient:
        if cls._client is None:
            raise DatabaseError("Database is not initialized")
        return cls._client

    @classmethod
    def bot_db(cls) -> AsyncDatabase:
        return cls._require_client()[cls._bot_db_name]

    @classmethod
    def swapi_db(cls) -> AsyncDatabase:
        return cls._require_client()[cls._swapi_db_name]

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._initialized

    @classmethod
    async def close(cls) -> None:
        async with cls._lock:
            if cls._client is not None:
                await cls._client.close()
                logger.info("Database connection closed.")
            cls._client = None
            cls._initialized = False

    @classmethod
    def reset(cls) -> None:
        """Forget the current client without closing it (useful for testing)."""
        cls._client = None
        cls._initialized = False
        cls._bot_db_name = "swgohbot"
        cls._swapi_db_name = "swapi"
