"""Guild configuration endpoints: guild select, config view, settings and events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request

from services.db.repository import GuildConfigRepository, UnitRepository
from services.guild_access import can_access_guild, has_manage_guild
from services.guild_list_cache import get_cached_user_guilds
from web.backend.core.dependencies import (
    SessionContext,
    get_discord_bot_client,
    get_discord_oauth_client,
    require_csrf,
    require_session,
)
from web.backend.core.discord_client import (
    DiscordBotClient,
    DiscordOAuthClient,
    translate_discord_error,
)
from web.backend.core.guild_settings import (
    build_event,
    build_settings_delta,
    collect_unit_ids,
    find_event,
    get_admin_roles,
    get_announce_channel,
)
from web.backend.core.log_context import get_api_log_extra
from web.backend.core.schemas import (
    AccessibleGuild,
    EventListResponse,
    GuildDetailResponse,
    GuildEventForm,
    GuildListResponse,
    GuildSettingsForm,
    GuildSummary,
    SettingsDeltaResponse,
)
from web.backend.core.validation import require_snowflake

router = APIRouter(prefix="/api/guilds", tags=["guilds"])
logger = logging.getLogger(__name__)


def _discord_failure(ctx: SessionContext, exc: Exception, detail: str) -> HTTPException:
    """Translate a user-token failure; an expired token logs the user out."""
    error = translate_discord_error(exc, detail)
    if error.status_code == 401:
        ctx.clear_auth()
        ctx.save()
    logger.warning(
        "%s: %s",
        detail,
        type(exc).__name__,
        extra={"user_id": ctx.user_id, "status": error.status_code},
    )
    return error


async def _load_user_guilds(
    ctx: SessionContext, discord: DiscordOAuthClient
) -> list[dict[str, Any]]:
    try:
        guilds = await get_cached_user_guilds(ctx.data, ctx.access_token, discord)
    except httpx.HTTPError as e:
        raise _discord_failure(ctx, e, "Failed to load your Discord servers") from e
    ctx.save()
    return guilds


async def _authorize_guild(
    guild_id: str, ctx: SessionContext, discord: DiscordOAuthClient
) -> tuple[dict[str, Any], dict[str, Any] | None]:
    """
    Return ``(guild, config)`` if the user may manage ``guild_id``.

    Raises:
        HTTPException: 400 for a malformed id, 403 when the guild is not in
            the user's list or the access check fails.
    """
    require_snowflake(guild_id, "guild ID")

    guilds = await _load_user_guilds(ctx, discord)
    guild = next((g for g in guilds if g["id"] == guild_id), None)
    if guild is None:
        raise HTTPException(
            status_code=403,
            detail="You do not have access to this server's configuration.",
        )

    config = await GuildConfigRepository.get_guild_config(guild_id)
    allowed = await can_access_guild(
        discord,
        ctx.access_token,
        guild_id,
        guild.get("permissions"),
        get_admin_roles(config),
    )
    if not allowed:
        raise HTTPException(
            status_code=403,
            detail="You do not have access to this server's configuration.",
        )
    return guild, config


def _require_config(config: dict[str, Any] | None) -> dict[str, Any]:
    if config is None:
        raise HTTPException(
            status_code=404, detail="The bot has no configuration for this server yet."
        )
    return config


@router.get("", response_model=GuildListResponse)
async def list_guilds(
    ctx: SessionContext = Depends(require_session),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
    bot: DiscordBotClient = Depends(get_discord_bot_client),
):
    """
    Servers the user can configure.

    Guilds with a stored config are listed when the access check passes;
    guilds the user can manage that have no config yet are listed when the
    bot is a member.
    """
    guilds = await _load_user_guilds(ctx, discord)
    guild_map = {g["id"]: g for g in guilds}
    configs = await GuildConfigRepository.get_guild_configs(list(guild_map))
    configured_ids = {c.get("guildId") for c in configs}

    accessible: list[AccessibleGuild] = []
    for config in configs:
        guild = guild_map.get(config.get("guildId"))
        if guild is None:
            continue
        allowed = await can_access_guild(
            discord,
            ctx.access_token,
            guild["id"],
            guild.get("permissions"),
            get_admin_roles(config),
        )
        if allowed:
            accessible.append(AccessibleGuild(guild=GuildSummary(**guild), config=config))

    unconfigured = [
        g
        for g in guilds
        if g["id"] not in configured_ids and has_manage_guild(g.get("permissions"))
    ]
    in_guild = await asyncio.gather(*(bot.is_bot_in_guild(g["id"]) for g in unconfigured))
    for guild, present in zip(unconfigured, in_guild, strict=True):
        if present:
            accessible.append(AccessibleGuild(guild=GuildSummary(**guild), config=None))

    return GuildListResponse(guilds=accessible)


@router.get("/{guild_id}", response_model=GuildDetailResponse)
async def get_guild(
    guild_id: str,
    ctx: SessionContext = Depends(require_session),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
    bot: DiscordBotClient = Depends(get_discord_bot_client),
):
    """Guild config with role, channel and unit names resolved for display."""
    guild, config = await _authorize_guild(guild_id, ctx, discord)

    if config is None:
        return GuildDetailResponse(guild=GuildSummary(**guild), config=None)

    roles, channels, unit_names = await asyncio.gather(
        bot.fetch_guild_roles(guild_id),
        bot.fetch_guild_channels(guild_id),
        UnitRepository.get_unit_names(collect_unit_ids(config)),
    )

    return GuildDetailResponse(
        guild=GuildSummary(**guild),
        config=config,
        role_map={r["id"]: r["name"] for r in roles},
        channel_map={c["id"]: c["name"] for c in channels},
        unit_name_map=unit_names,
    )


@router.put("/{guild_id}/settings", response_model=SettingsDeltaResponse)
async def update_guild_settings(
    guild_id: str,
    form: GuildSettingsForm,
    request: Request,
    ctx: SessionContext = Depends(require_csrf),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
):
    """Store the settings that differ from the bot defaults, clear the rest."""
    _, config = await _authorize_guild(guild_id, ctx, discord)
    _require_config(config)

    delta = build_settings_delta(form.form_changes())
    await GuildConfigRepository.update_guild_settings(guild_id, delta.set, delta.unset)

    logger.info(
        "Guild settings saved",
        extra=get_api_log_extra(
            request,
            user_id=ctx.user_id,
            guild_id=guild_id,
            set_keys=sorted(delta.set),
            unset_keys=delta.unset,
        ),
    )
    return SettingsDeltaResponse(set=delta.set, unset=delta.unset)


def _check_event_channel(form: GuildEventForm, config: dict[str, Any]) -> None:
    if not form.channel and not get_announce_channel(config):
        raise HTTPException(
            status_code=422,
            detail={
                "code": "validation_error",
                "message": "This server has no announcement channel, so the event needs a channel.",
                "fields": {"channel": "A channel is required"},
            },
        )


def _duplicate_name() -> HTTPException:
    return HTTPException(status_code=409, detail="An event with that name already exists.")


@router.post("/{guild_id}/events", response_model=EventListResponse, status_code=201)
async def create_event(
    guild_id: str,
    form: GuildEventForm,
    request: Request,
    ctx: SessionContext = Depends(require_csrf),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
):
    _, config = await _authorize_guild(guild_id, ctx, discord)
    config = _require_config(config)

    events = list(config.get("events") or [])
    if find_event(events, form.name) is not None:
        raise _duplicate_name()
    _check_event_channel(form, config)

    events.append(build_event(form))
    await GuildConfigRepository.update_guild_events(guild_id, events)

    logger.info(
        "Guild event created",
        extra=get_api_log_extra(request, user_id=ctx.user_id, guild_id=guild_id),
    )
    return EventListResponse(events=events)


@router.put("/{guild_id}/events/{event_name:path}", response_model=EventListResponse)
async def update_event(
    guild_id: str,
    event_name: str,
    form: GuildEventForm,
    request: Request,
    ctx: SessionContext = Depends(require_csrf),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
):
    _, config = await _authorize_guild(guild_id, ctx, discord)
    config = _require_config(config)

    events = list(config.get("events") or [])
    index = find_event(events, event_name)
    if index is None:
        raise HTTPException(status_code=404, detail="Event not found")
    clash = find_event(events, form.name)
    if clash is not None and clash != index:
        raise _duplicate_name()
    _check_event_channel(form, config)

    events[index] = build_event(form)
    await GuildConfigRepository.update_guild_events(guild_id, events)

    logger.info(
        "Guild event updated",
        extra=get_api_log_extra(request, user_id=ctx.user_id, guild_id=guild_id),
    )
    return EventListResponse(events=events)


@router.delete("/{guild_id}/events/{event_name:path}", response_model=EventListResponse)
async def delete_event(
    guild_id: str,
    event_name: str,
    request: Request,
    ctx: SessionContext = Depends(require_csrf),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
):
    _, config = await _authorize_guild(guild_id, ctx, discord)
    config = _require_config(config)

    events = list(config.get("events") or [])
    index = find_event(events, event_name)
    if index is None:
        raise HTTPException(status_code=404, detail="Event not found")

    del events[index]
    await GuildConfigRepository.update_guild_events(guild_id, events)

    logger.info(
        "Guild event deleted",
        extra=get_api_log_extra(request, user_id=ctx.user_id, guild_id=guild_id),
    )
    return EventListResponse(events=events)
