"""
Security utilities for session management and the OAuth login flow.

Sessions are stored server-side keyed by a small token signed and
timestamped with itsdangerous; the cookie carries only that token. Records
live in memory, which is fine for the single-process deployment the site
runs as.
"""

import copy
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from fastapi import Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .env_config import (
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DISCORD_CLIENT_ID,
    DISCORD_OAUTH_SCOPE,
    DISCORD_OAUTH_URL,
    DISCORD_REDIRECT_URI,
    OAUTH_STATE_MAX_AGE,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE,
    SESSION_SECRET,
)

DEFAULT_RETURN_TO = "/dashboard"


@dataclass
class OAuthState:
    created_at: float
    return_to: str


@dataclass
class SessionRecord:
    data: dict
    created_at: datetime
    expires_at: datetime


# OAuth state: in-memory store with 5-minute expiration, one-time use.
_oauth_states: dict[str, OAuthState] = {}

_session_store: dict[str, SessionRecord] = {}
_session_signer = URLSafeTimedSerializer(SESSION_SECRET, salt="session")


def sanitize_return_to(raw: str | None) -> str:
    """Only allow same-site relative paths; anything else goes to the dashboard."""
    if raw and raw.startswith("/") and not raw.startswith("//") and "\\" not in raw:
        return raw
    return DEFAULT_RETURN_TO


# ---------------------------------------------------------------------------
# OAuth state
# ---------------------------------------------------------------------------


def generate_oauth_state(return_to: str | None = None) -> str:
    """
    Generate a cryptographically random state for the OAuth flow.

    Args:
        return_to: Where to send the user after login (sanitized here).

    Returns:
        Random state string
    """
    cleanup_expired_states()
    state = secrets.token_urlsafe(32)
    _oauth_states[state] = OAuthState(
        created_at=datetime.now(UTC).timestamp(),
        return_to=sanitize_return_to(return_to),
    )
    return state


def consume_oauth_state(state: str | None) -> str | None:
    """
    Validate an OAuth state and remove it (one-time use).

    Returns:
        The stored ``return_to`` path when valid, otherwise None.
    """
    if not state:
        return None
    record = _oauth_states.pop(state, None)
    if record is None:
        return None
    age = datetime.now(UTC).timestamp() - record.created_at
    if age >= OAUTH_STATE_MAX_AGE:
        return None
    return record.return_to


def cleanup_expired_states() -> None:
    """Remove expired OAuth states."""
    now = datetime.now(UTC).timestamp()
    expired = [s for s, rec in _oauth_states.items() if now - rec.created_at > OAUTH_STATE_MAX_AGE]
    for s in expired:
        _oauth_states.pop(s, None)


def get_discord_authorize_url(state: str) -> str:
    """
    Generate Discord OAuth2 authorization URL with state.

    Args:
        state: State parameter for CSRF protection (required)

    Returns:
        Full authorization URL
    """
    params = {
        "client_id": DISCORD_CLIENT_ID,
        "redirect_uri": DISCORD_REDIRECT_URI,
        "response_type": "code",
        "scope": DISCORD_OAUTH_SCOPE,
        "state": state,
    }
    return f"{DISCORD_OAUTH_URL}?{urlencode(params)}"


# ---------------------------------------------------------------------------
# Server-side session store
# ---------------------------------------------------------------------------


def _cleanup_expired_sessions(now: datetime | None = None) -> None:
    """Prune expired session records to keep memory bounded."""
    now = now or datetime.now(UTC)
    expired_keys = [sid for sid, rec in _session_store.items() if rec.expires_at <= now]
    for sid in expired_keys:
        _session_store.pop(sid, None)


def _resolve_session_id(token: str) -> str | None:
    try:
        return _session_signer.loads(token, max_age=SESSION_MAX_AGE)
    except (BadSignature, SignatureExpired):
        return None


def create_session_token(data: dict, expires_in_seconds: int | None = None) -> str:
    """
    Create a new server-side session and return its signed token.

    Args:
        data: Session payload (user, access token, csrf token, cached guilds)
        expires_in_seconds: Optional TTL override, clamped to SESSION_MAX_AGE.
            Negative values expire immediately (test helper).

    Returns:
        Signed, time-stamped token representing the session key.
    """
    now = datetime.now(UTC)
    ttl = SESSION_MAX_AGE if expires_in_seconds is None else min(expires_in_seconds, SESSION_MAX_AGE)
    ttl = max(ttl, 0)

    session_id = secrets.token_urlsafe(32)
    _session_store[session_id] = SessionRecord(
        data=copy.deepcopy(data),
        created_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )

    _cleanup_expired_sessions(now)

    return _session_signer.dumps(session_id)


def decode_session_token(token: str) -> dict | None:
    """Resolve a session token to its server-side payload or return None.

    Returns a deep copy of the stored data; changes are persisted only through
    ``update_session``.
    """
    now = datetime.now(UTC)
    _cleanup_expired_sessions(now)

    session_id = _resolve_session_id(token)
    if session_id is None:
        return None

    record = _session_store.get(session_id)
    if not record:
        return None

    if record.expires_at <= now:
        _session_store.pop(session_id, None)
        return None

    return copy.deepcopy(record.data)


def update_session(token: str, data: dict) -> bool:
    """Replace the payload of an existing session. False if it no longer exists."""
    session_id = _resolve_session_id(token)
    if session_id is None:
        return False
    record = _session_store.get(session_id)
    if record is None or record.expires_at <= datetime.now(UTC):
        return False
    record.data = copy.deepcopy(data)
    return True


def destroy_session(token: str | None) -> None:
    if not token:
        return
    session_id = _resolve_session_id(token)
    if session_id is not None:
        _session_store.pop(session_id, None)


def set_session_cookie(response: Response, token: str) -> None:
    """Set a secure session cookie containing the signed session key only."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=SESSION_MAX_AGE,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
    )
