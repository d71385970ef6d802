"""
Dependency injection for FastAPI routes.

Provides access to the session, the Discord clients, the command catalogue
and service lifecycle hooks used by the app lifespan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import Cookie, Depends, Header, HTTPException

from config.config_loader import ConfigLoader
from services.command_service import CommandCatalogService
from services.db.database import Database
from services.guild_list_cache import invalidate_guild_cache

from .csrf import CSRF_HEADER_NAME, verify_csrf_token
from .discord_client import DiscordBotClient, DiscordOAuthClient
from .env_config import (
    BOT_DATA_PATH,
    MONGODB_BOT_DB,
    MONGODB_SWAPI_DB,
    MONGODB_URI,
)
from .security import SESSION_COOKIE_NAME, decode_session_token, update_session

logger = logging.getLogger(__name__)

# Singletons created on first use, closed by shutdown_services()
_oauth_client: DiscordOAuthClient | None = None
_bot_client: DiscordBotClient | None = None
_command_service: CommandCatalogService | None = None


def get_discord_oauth_client() -> DiscordOAuthClient:
    """Return the cached DiscordOAuthClient instance."""
    global _oauth_client
    if _oauth_client is None:
        _oauth_client = DiscordOAuthClient()
    return _oauth_client


def get_discord_bot_client() -> DiscordBotClient:
    """Return the cached DiscordBotClient instance."""
    global _bot_client
    if _bot_client is None:
        _bot_client = DiscordBotClient()
    return _bot_client


def get_command_service() -> CommandCatalogService:
    global _command_service
    if _command_service is None:
        _command_service = CommandCatalogService(BOT_DATA_PATH)
    return _command_service


async def initialize_services() -> None:
    """Initialize services on application startup.

    Observability:
        - Logs INFO with resolved config path and status
        - Logs INFO once MongoDB answers a ping
    """
    ConfigLoader.load_config()
    config_status = ConfigLoader.get_config_status()
    logger.info(
        "Config load status: %s (%s)",
        config_status.get("config_status"),
        config_status.get("config_path"),
    )

    await Database.initialize(
        MONGODB_URI, bot_db=MONGODB_BOT_DB, swapi_db=MONGODB_SWAPI_DB
    )
    await get_command_service().initialize()

    logger.info("Services initialized")


async def shutdown_services() -> None:
    """Cleanup services on application shutdown."""
    global _oauth_client, _bot_client

    if _command_service:
        await _command_service.shutdown()

    if _oauth_client:
        await _oauth_client.close()
        _oauth_client = None
    if _bot_client:
        await _bot_client.close()
        _bot_client = None

    await Database.close()
    logger.info("Services shut down")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass
class SessionContext:
    """
    A decoded session bound to its cookie token.

    ``data`` is a private copy; call ``save()`` to persist changes.
    """

    token: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def user(self) -> dict[str, Any] | None:
        return self.data.get("user")

    @property
    def user_id(self) -> str | None:
        user = self.user
        return str(user["id"]) if user else None

    @property
    def access_token(self) -> str | None:
        return self.data.get("access_token")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.access_token)

    def clear_auth(self) -> None:
        """Drop the Discord identity but keep the session (and CSRF token)."""
        self.data.pop("user", None)
        self.data.pop("access_token", None)
        invalidate_guild_cache(self.data)

    def save(self) -> bool:
        return update_session(self.token, self.data)


async def get_optional_session(
    session: str | None = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> SessionContext | None:
    if not session:
        return None
    data = decode_session_token(session)
    if data is None:
        logger.debug("Session cookie present but invalid or expired")
        return None
    return SessionContext(token=session, data=data)


async def require_session(
    ctx: SessionContext | None = Depends(get_optional_session),
) -> SessionContext:
    """
    Dependency to get the current authenticated session.

    Raises:
        HTTPException: 401 if not logged in
    """
    if ctx is None or not ctx.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return ctx


async def require_csrf(
    ctx: SessionContext = Depends(require_session),
    csrf_token: str | None = Header(None, alias=CSRF_HEADER_NAME),
) -> SessionContext:
    """Authenticated session whose CSRF header matches; 403 otherwise."""
    if not verify_csrf_token(ctx.data, csrf_token):
        logger.warning(
            "CSRF token missing or invalid",
            extra={"user_id": ctx.user_id},
        )
        raise HTTPException(status_code=403, detail="Invalid CSRF token")
    return ctx
