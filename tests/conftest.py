import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

# Settings are read once at import time, so they must be in place before any
# web.backend module is imported.
_LOG_DIR = Path(tempfile.gettempdir()) / "bot-website-tests"
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_FILE", str(_LOG_DIR / "website.log"))
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789")
os.environ.setdefault("DISCORD_CLIENT_ID", "315739499932024834")
os.environ.setdefault("DISCORD_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("DISCORD_BOT_TOKEN", "test-bot-token")
os.environ.setdefault("PUBLIC_URL", "http://test")

from config.config_loader import ConfigLoader  # noqa: E402
from services.db.database import Database  # noqa: E402
from tests.factories import FakeMongoClient  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_loader():
    """Each test starts from the checked-in config.yaml."""
    ConfigLoader.reset()
    ConfigLoader.load_config()
    yield
    ConfigLoader.reset()


@pytest_asyncio.fixture()
async def fake_mongo():
    """Point ``Database`` at an in-memory client for the duration of a test."""
    Database.reset()
    client = FakeMongoClient()
    await Database.initialize(client=client)

    yield client

    Database.reset()
