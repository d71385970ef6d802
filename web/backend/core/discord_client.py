"""
Discord REST clients.

``DiscordOAuthClient`` acts on behalf of a logged-in user (bearer token) and
raises ``httpx.HTTPStatusError`` on any non-2xx response.
``DiscordBotClient`` uses the bot token for guild lookups the user token
cannot make; those lookups degrade to ``False`` / ``[]`` on failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import HTTPException

from .env_config import (
    DISCORD_API_BASE,
    DISCORD_BOT_TOKEN,
    DISCORD_CLIENT_ID,
    DISCORD_CLIENT_SECRET,
    DISCORD_HTTP_TIMEOUT,
    DISCORD_REDIRECT_URI,
    DISCORD_TOKEN_URL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthToken:
    access_token: str
    expires_in: int


def translate_discord_error(exc: Exception, default_detail: str) -> HTTPException:
    """Convert httpx exceptions from user-token calls into HTTPException objects."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 401:
            return HTTPException(
                status_code=401,
                detail={
                    "code": "discord_token_expired",
                    "message": "Discord session expired, please log in again",
                },
            )
        return HTTPException(
            status_code=502, detail=f"{default_detail} (Discord returned {status})"
        )

    if isinstance(exc, httpx.RequestError):
        return HTTPException(status_code=503, detail=f"{default_detail}: Discord unreachable")

    return HTTPException(status_code=500, detail=default_detail)


class _DiscordHTTP:
    def __init__(self, base_url: str = DISCORD_API_BASE, timeout: float = DISCORD_HTTP_TIMEOUT):
        self.base_url = base_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None


class DiscordOAuthClient(_DiscordHTTP):
    """User-token Discord API calls used by login and access checks."""

    def __init__(
        self,
        client_id: str = DISCORD_CLIENT_ID,
        client_secret: str = DISCORD_CLIENT_SECRET,
        redirect_uri: str = DISCORD_REDIRECT_URI,
        token_url: str = DISCORD_TOKEN_URL,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.token_url = token_url

    async def exchange_code(self, code: str) -> OAuthToken:
        """
        Exchange an authorization code for an access token.

        Raises:
            httpx.HTTPStatusError: If Discord rejects the code
        """
        client = await self._get_client()
        response = await client.post(
            self.token_url,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        response.raise_for_status()
        data = response.json()
        return OAuthToken(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in", 0)),
        )

    async def _get_json(self, path: str, access_token: str) -> Any:
        client = await self._get_client()
        response = await client.get(
            path, headers={"Authorization": f"Bearer {access_token}"}
        )
        response.raise_for_status()
        return response.json()

    async def fetch_user(self, access_token: str) -> dict[str, Any]:
        """Return ``{id, username, avatar}`` for the token's owner."""
        data = await self._get_json("/users/@me", access_token)
        return {
            "id": str(data["id"]),
            "username": data.get("username", ""),
            "avatar": data.get("avatar"),
        }

    async def fetch_user_guilds(self, access_token: str) -> list[dict[str, Any]]:
        """Return ``[{id, name, icon, permissions}]``; permissions stay decimal strings."""
        data = await self._get_json("/users/@me/guilds", access_token)
        return [
            {
                "id": str(g["id"]),
                "name": g.get("name", ""),
                "icon": g.get("icon"),
                "permissions": str(g.get("permissions", "0")),
            }
            for g in data
        ]

    async def fetch_guild_member(self, access_token: str, guild_id: str) -> dict[str, Any]:
        """Return the user's member object for ``guild_id`` (``roles`` as id strings)."""
        data = await self._get_json(f"/users/@me/guilds/{guild_id}/member", access_token)
        return {"roles": [str(r) for r in data.get("roles", [])]}


class DiscordBotClient(_DiscordHTTP):
    """Bot-token lookups for guild metadata."""

    def __init__(self, bot_token: str = DISCORD_BOT_TOKEN, **kwargs: Any):
        super().__init__(**kwargs)
        self.bot_token = bot_token
        if not bot_token:
            logger.warning(
                "DiscordBotClient initialized without DISCORD_BOT_TOKEN; guild lookups will fail"
            )

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.bot_token}"}

    async def is_bot_in_guild(self, guild_id: str) -> bool:
        try:
            client = await self._get_client()
            response = await client.get(f"/guilds/{guild_id}", headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(
                "Bot guild lookup failed",
                extra={"guild_id": guild_id, "cause": type(e).__name__},
            )
            return False
        return response.is_success

    async def _fetch_named(self, path: str, guild_id: str) -> list[dict[str, str]]:
        try:
            client = await self._get_client()
            response = await client.get(path, headers=self._headers())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Bot lookup %s failed",
                path,
                extra={"guild_id": guild_id, "cause": type(e).__name__},
            )
            return []
        return [{"id": str(item["id"]), "name": item.get("name", "")} for item in data]

    async def fetch_guild_roles(self, guild_id: str) -> list[dict[str, str]]:
        return await self._fetch_named(f"/guilds/{guild_id}/roles", guild_id)

    async def fetch_guild_channels(self, guild_id: str) -> list[dict[str, str]]:
        return await self._fetch_named(f"/guilds/{guild_id}/channels", guild_id)
