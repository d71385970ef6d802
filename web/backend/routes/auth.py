"""
Authentication routes for the Discord OAuth2 flow.
"""

import logging

import httpx
from fastapi import APIRouter, Cookie, Depends, HTTPException
from fastapi.responses import RedirectResponse

from web.backend.core.csrf import generate_csrf_token, rotate_csrf_token
from web.backend.core.dependencies import (
    SessionContext,
    get_discord_oauth_client,
    get_optional_session,
)
from web.backend.core.discord_client import DiscordOAuthClient
from web.backend.core.schemas import AuthMeResponse, SessionUser
from web.backend.core.security import (
    SESSION_COOKIE_NAME,
    clear_session_cookie,
    consume_oauth_state,
    create_session_token,
    destroy_session,
    generate_oauth_state,
    get_discord_authorize_url,
    set_session_cookie,
)

router = APIRouter()
api_router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/login")
async def login(return_to: str | None = None):
    """
    Initiate Discord OAuth2 flow.

    Redirects user to Discord authorization page.
    """
    state = generate_oauth_state(return_to)
    return RedirectResponse(url=get_discord_authorize_url(state), status_code=302)


@router.get("/callback")
async def callback(
    code: str | None = None,
    state: str | None = None,
    session: str | None = Cookie(None, alias=SESSION_COOKIE_NAME),
    discord: DiscordOAuthClient = Depends(get_discord_oauth_client),
):
    """
    Handle Discord OAuth2 callback.

    Validates the one-time state, exchanges the code, fetches the Discord
    user and starts a fresh session (the previous one, if any, is dropped).

    Returns:
        Redirect to the page the login started from
    """
    return_to = consume_oauth_state(state)
    if return_to is None:
        logger.warning("OAuth callback with invalid or expired state token")
        raise HTTPException(
            status_code=403,
            detail="Invalid OAuth state. Please try logging in again.",
        )

    if not code:
        return RedirectResponse(url="/", status_code=302)

    try:
        token = await discord.exchange_code(code)
        user = await discord.fetch_user(token.access_token)
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.error(
            "OAuth callback failed",
            extra={"cause": type(e).__name__},
        )
        return RedirectResponse(url="/", status_code=302)

    destroy_session(session)

    session_data: dict = {
        "user": {
            "id": user["id"],
            "username": user["username"],
            "avatar": user.get("avatar"),
        },
        "access_token": token.access_token,
    }
    rotate_csrf_token(session_data)

    response = RedirectResponse(url=return_to, status_code=302)
    set_session_cookie(response, create_session_token(session_data))
    logger.info("User logged in", extra={"user_id": user["id"]})
    return response


@router.post("/logout")
async def logout(session: str | None = Cookie(None, alias=SESSION_COOKIE_NAME)):
    """Destroy the server-side session and clear the cookie."""
    destroy_session(session)
    response = RedirectResponse(url="/", status_code=303)
    clear_session_cookie(response)
    return response


@api_router.get("/me", response_model=AuthMeResponse)
async def get_me(ctx: SessionContext | None = Depends(get_optional_session)):
    """
    Current user (or null) plus the session's CSRF token.

    The CSRF token is only issued for logged-in sessions.
    """
    if ctx is None or not ctx.is_authenticated:
        return AuthMeResponse(user=None)

    had_token = bool(ctx.data.get("csrf_token"))
    csrf_token = generate_csrf_token(ctx.data)
    if not had_token:
        ctx.save()

    return AuthMeResponse(user=SessionUser(**ctx.user), csrf_token=csrf_token)
