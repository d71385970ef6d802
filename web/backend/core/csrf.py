"""
CSRF tokens bound to the server-side session.

The token is created once per session (and rotated on login), handed to the
client by ``/api/auth/me`` and echoed back in the ``X-CSRF-Token`` header on
every state-changing request.
"""

import hmac
import secrets
from collections.abc import MutableMapping
from typing import Any

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"


def _new_token() -> str:
    return secrets.token_hex(32)


def generate_csrf_token(session: MutableMapping[str, Any]) -> str:
    """Return the session's CSRF token, creating one if absent."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = _new_token()
        session[CSRF_SESSION_KEY] = token
    return token


def rotate_csrf_token(session: MutableMapping[str, Any]) -> str:
    token = _new_token()
    session[CSRF_SESSION_KEY] = token
    return token


def verify_csrf_token(session: MutableMapping[str, Any], token: str | None) -> bool:
    expected = session.get(CSRF_SESSION_KEY)
    if not token or not expected:
        return False
    return hmac.compare_digest(str(token).encode("utf-8"), str(expected).encode("utf-8"))
