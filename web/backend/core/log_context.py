"""
``extra=`` payloads for log calls made inside route handlers.
"""

from typing import Any

from fastapi import Request

from web.backend.core.request_id import get_request_id


def get_api_log_extra(
    request: Request | None = None,
    user_id: str | None = None,
    guild_id: str | None = None,
    **additional: Any,
) -> dict[str, Any]:
    """
    Collect request id, route and actor ids for a structured log record.

    Ids are stringified so snowflakes never lose precision in the JSON output;
    empty values are left out.

    Examples:
        logger.info("Guild settings saved", extra=get_api_log_extra(request, guild_id=gid))
    """
    context: dict[str, Any] = {
        "request_id": get_request_id(),
        "endpoint": request.url.path if request is not None else None,
        "method": request.method if request is not None else None,
        "user_id": str(user_id) if user_id else None,
        "guild_id": str(guild_id) if guild_id else None,
    }
    extra = {key: value for key, value in context.items() if value}
    extra.update(additional)
    return extra
