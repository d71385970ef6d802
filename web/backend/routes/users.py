"""
Per-user bot settings: the dashboard view and partial updates of the
user's stored configuration.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from services.db.repository import UserRepository
from services.payout import format_payout_times
from web.backend.core.dependencies import (
    SessionContext,
    require_csrf,
    require_session,
)
from web.backend.core.log_context import get_api_log_extra
from web.backend.core.schemas import (
    ArenaAlertForm,
    ArenaWatchForm,
    DashboardResponse,
    FormModel,
    GuildTicketsForm,
    GuildUpdateForm,
    LangForm,
    SessionUser,
    UserUpdateResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _name_key(entry: dict[str, Any]) -> str:
    return str(entry.get("name", "")).lower()


def prepare_user_config(user_config: dict[str, Any] | None) -> dict[str, Any] | None:
    """Sort accounts and arena-watch entries by name and add payout countdowns."""
    if not user_config:
        return user_config

    accounts = user_config.get("accounts")
    if isinstance(accounts, list):
        user_config["accounts"] = sorted(accounts, key=_name_key)

    arena_watch = user_config.get("arenaWatch")
    if isinstance(arena_watch, dict) and isinstance(arena_watch.get("allycodes"), list):
        entries = sorted(arena_watch["allycodes"], key=_name_key)
        for entry in entries:
            entry["payoutTimes"] = format_payout_times(entry.get("poOffset") or 0)
        arena_watch["allycodes"] = entries

    return user_config


@router.get("/api/dashboard", response_model=DashboardResponse)
async def dashboard(ctx: SessionContext = Depends(require_session)):
    """Logged-in user's bot configuration (null when the bot has none)."""
    user_config = await UserRepository.get_user(ctx.user_id)
    return DashboardResponse(
        user=SessionUser(**ctx.user),
        user_config=prepare_user_config(user_config),
    )


async def _apply_user_update(
    request: Request, ctx: SessionContext, section: str, form: FormModel
) -> UserUpdateResponse:
    changes = form.form_changes()
    if not changes:
        return UserUpdateResponse(updated={})

    matched = await UserRepository.update_user(ctx.user_id, {section: changes})
    if not matched:
        raise HTTPException(status_code=404, detail="No bot configuration found for this user")

    logger.info(
        "User %s settings updated",
        section,
        extra=get_api_log_extra(request, user_id=ctx.user_id),
    )
    return UserUpdateResponse(updated={section: changes})


@router.put("/api/users/me/lang", response_model=UserUpdateResponse)
async def update_lang(
    form: LangForm, request: Request, ctx: SessionContext = Depends(require_csrf)
):
    return await _apply_user_update(request, ctx, "lang", form)


@router.put("/api/users/me/arena-alert", response_model=UserUpdateResponse)
async def update_arena_alert(
    form: ArenaAlertForm, request: Request, ctx: SessionContext = Depends(require_csrf)
):
    return await _apply_user_update(request, ctx, "arenaAlert", form)


@router.put("/api/users/me/arena-watch", response_model=UserUpdateResponse)
async def update_arena_watch(
    form: ArenaWatchForm, request: Request, ctx: SessionContext = Depends(require_csrf)
):
    return await _apply_user_update(request, ctx, "arenaWatch", form)


@router.put("/api/users/me/guild-update", response_model=UserUpdateResponse)
async def update_guild_update(
    form: GuildUpdateForm, request: Request, ctx: SessionContext = Depends(require_csrf)
):
    return await _apply_user_update(request, ctx, "guildUpdate", form)


@router.put("/api/users/me/guild-tickets", response_model=UserUpdateResponse)
async def update_guild_tickets(
    form: GuildTicketsForm, request: Request, ctx: SessionContext = Depends(require_csrf)
):
    return await _apply_user_update(request, ctx, "guildTickets", form)
