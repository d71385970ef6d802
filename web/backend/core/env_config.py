"""
Centralized environment configuration.

Single source of truth for all environment-derived settings. The ``.env``
file (if any) is loaded before anything is read.

Usage:
    from web.backend.core.env_config import (
        PUBLIC_URL,
        DISCORD_CLIENT_ID,
        DISCORD_REDIRECT_URI,
        MONGODB_URI,
        SESSION_SECRET,
        ENV,
    )
"""

import logging
import os
from typing import Literal, cast
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment Mode
# ---------------------------------------------------------------------------
ENV = os.getenv("ENV", "development").lower()
IS_PRODUCTION = ENV == "production"

# ---------------------------------------------------------------------------
# Public URL (single source of truth for external-facing URLs)
# ---------------------------------------------------------------------------
PUBLIC_URL = os.getenv("PUBLIC_URL", "http://localhost:3300").rstrip("/")

_parsed_public = urlparse(PUBLIC_URL)
_public_scheme = _parsed_public.scheme or "http"

# ---------------------------------------------------------------------------
# Discord OAuth2 / REST Configuration
# ---------------------------------------------------------------------------
DISCORD_CLIENT_ID = os.getenv("DISCORD_CLIENT_ID", "")
DISCORD_CLIENT_SECRET = os.getenv("DISCORD_CLIENT_SECRET", "")
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN", "")

# Derived from PUBLIC_URL unless given explicitly
DISCORD_REDIRECT_URI = os.getenv("DISCORD_REDIRECT_URI") or f"{PUBLIC_URL}/auth/callback"

# Discord API endpoints (constants - never change)
DISCORD_OAUTH_URL = "https://discord.com/oauth2/authorize"
DISCORD_API_BASE = "https://discord.com/api/v10"
DISCORD_TOKEN_URL = f"{DISCORD_API_BASE}/oauth2/token"
DISCORD_OAUTH_SCOPE = "identify guilds guilds.members.read"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("Invalid %s=%r, using %s", name, raw, default)
        return default


DISCORD_HTTP_TIMEOUT = _float_env("DISCORD_HTTP_TIMEOUT", 5.0)

# ---------------------------------------------------------------------------
# MongoDB / bot data
# ---------------------------------------------------------------------------
MONGODB_URI = os.getenv("MONGODB_URI", "")
MONGODB_BOT_DB = os.getenv("MONGODB_BOT_DB", "")
MONGODB_SWAPI_DB = os.getenv("MONGODB_SWAPI_DB", "")
BOT_DATA_PATH = os.getenv("BOT_DATA_PATH", "")

LOG_FILE = os.getenv("LOG_FILE", "logs/website.log")

# ---------------------------------------------------------------------------
# Session & Cookie Configuration
# ---------------------------------------------------------------------------
DEV_SESSION_SECRET = "dev_only_change_me_in_production"
SESSION_SECRET = os.getenv("SESSION_SECRET", DEV_SESSION_SECRET)
SESSION_COOKIE_NAME = "session"
SESSION_MAX_AGE = 86400 * 7  # 7 days
OAUTH_STATE_MAX_AGE = 300

# Auto-detect secure cookies based on PUBLIC_URL scheme
_auto_cookie_secure = _public_scheme == "https"
COOKIE_SECURE = os.getenv("COOKIE_SECURE", str(_auto_cookie_secure).lower()).lower() == "true"

_cookie_samesite_raw = os.getenv("COOKIE_SAMESITE", "lax").lower()
COOKIE_SAMESITE: Literal["lax", "strict", "none"] | None = cast(
    "Literal['lax', 'strict', 'none'] | None",
    _cookie_samesite_raw if _cookie_samesite_raw in {"lax", "strict", "none"} else None,
)

_REQUIRED = (
    "DISCORD_CLIENT_ID",
    "DISCORD_CLIENT_SECRET",
    "DISCORD_BOT_TOKEN",
    "MONGODB_URI",
    "MONGODB_BOT_DB",
    "MONGODB_SWAPI_DB",
    "BOT_DATA_PATH",
)


def validate_environment() -> list[str]:
    """
    Return a list of problems with the current environment.

    An empty list means every required variable is present and valid.
    """
    problems = [f"{name} is not set" for name in _REQUIRED if not globals()[name]]

    if len(SESSION_SECRET) < 16:
        problems.append("SESSION_SECRET must be at least 16 characters")
    if IS_PRODUCTION and SESSION_SECRET == DEV_SESSION_SECRET:
        problems.append("SESSION_SECRET must be set to a secure value in production")
    if _parsed_public.scheme not in {"http", "https"} or not _parsed_public.netloc:
        problems.append(f"PUBLIC_URL is not a valid URL: {PUBLIC_URL!r}")
    if IS_PRODUCTION and not COOKIE_SECURE:
        problems.append("COOKIE_SECURE is false in production")

    return problems
