"""
Test configuration and fixtures for backend tests.

The app is driven through ``httpx.ASGITransport`` (which does not run the
lifespan), with the Discord clients and command service swapped for fakes via
``dependency_overrides`` and MongoDB replaced by the in-memory fake.
"""

import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Settings are read once at import time; mirror tests/conftest.py.
_LOG_DIR = Path(tempfile.gettempdir()) / "bot-website-tests"
os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_FILE", str(_LOG_DIR / "website.log"))
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789")
os.environ.setdefault("DISCORD_CLIENT_ID", "315739499932024834")
os.environ.setdefault("DISCORD_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("DISCORD_BOT_TOKEN", "test-bot-token")
os.environ.setdefault("PUBLIC_URL", "http://test")

from config.config_loader import ConfigLoader  # noqa: E402
from services.command_service import CommandCatalogService  # noqa: E402
from services.db.database import Database  # noqa: E402
from services.db.repository import GUILD_CONFIGS, USERS  # noqa: E402
from tests.factories import (  # noqa: E402
    FakeDiscordBotClient,
    FakeDiscordOAuthClient,
    FakeMongoClient,
    make_discord_user,
)
from web.backend.app import app  # noqa: E402
from web.backend.core.csrf import CSRF_HEADER_NAME  # noqa: E402
from web.backend.core.dependencies import (  # noqa: E402
    get_command_service,
    get_discord_bot_client,
    get_discord_oauth_client,
)
from web.backend.core.security import create_session_token  # noqa: E402

CSRF_TOKEN = "c" * 64


@pytest.fixture(autouse=True)
def reset_config_loader():
    ConfigLoader.reset()
    ConfigLoader.load_config()
    yield
    ConfigLoader.reset()


@pytest_asyncio.fixture()
async def fake_mongo():
    Database.reset()
    client = FakeMongoClient()
    await Database.initialize(client=client)

    yield client

    Database.reset()


@pytest.fixture
def guild_configs(fake_mongo):
    return fake_mongo["swgohbot"][GUILD_CONFIGS]


@pytest.fixture
def users(fake_mongo):
    return fake_mongo["swgohbot"][USERS]


@pytest.fixture
def discord():
    return FakeDiscordOAuthClient()


@pytest.fixture
def bot():
    return FakeDiscordBotClient()


@pytest.fixture
def command_service(tmp_path):
    return CommandCatalogService(str(tmp_path / "help.json"), ttl_hours=1)


@pytest_asyncio.fixture
async def client(fake_mongo, discord, bot, command_service):
    """Create a test client for the FastAPI app."""
    app.dependency_overrides[get_discord_oauth_client] = lambda: discord
    app.dependency_overrides[get_discord_bot_client] = lambda: bot
    app.dependency_overrides[get_command_service] = lambda: command_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def session_user():
    return make_discord_user()


@pytest.fixture
def session_token(session_user):
    """A logged-in server-side session with a known CSRF token."""
    return create_session_token(
        {
            "user": session_user,
            "access_token": "fake-access-token",
            "csrf_token": CSRF_TOKEN,
        }
    )


@pytest.fixture
def auth_headers(session_token):
    """Cookie only: enough for reads."""
    return {"Cookie": f"session={session_token}"}


@pytest.fixture
def csrf_headers(session_token):
    """Cookie plus CSRF header: required for writes."""
    return {"Cookie": f"session={session_token}", CSRF_HEADER_NAME: CSRF_TOKEN}
