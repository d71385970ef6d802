"""
Web Backend Validation Utilities.

Reusable checks shared by the form schemas and route handlers: Discord
snowflake ids, comma-separated integer lists, IANA timezone names and the
event date format.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any
from zoneinfo import available_timezones

from fastapi import HTTPException

SNOWFLAKE_RE = re.compile(r"^\d{17,19}$")
EVENT_DT_FORMAT = "%Y-%m-%dT%H:%M"


def is_snowflake(value: Any) -> bool:
    return isinstance(value, str) and bool(SNOWFLAKE_RE.match(value))


def require_snowflake(value: Any, name: str = "ID") -> str:
    """
    Validate a Discord snowflake taken from a path parameter.

    Raises:
        HTTPException: 400 if the ID format is invalid
    """
    if not is_snowflake(value):
        raise HTTPException(status_code=400, detail=f"Invalid {name} format")
    return value


def parse_positive_int_list(raw: str) -> list[int]:
    """
    Parse ``"24, 2,1"`` into ``[24, 2, 1]``.

    Blank entries are ignored, so an empty string yields an empty list.

    Raises:
        ValueError: listing every entry that is not a positive integer.
    """
    parts = [part.strip() for part in raw.split(",")]
    parts = [part for part in parts if part]
    invalid = [
        part for part in parts if not (part.isascii() and part.isdigit()) or int(part) <= 0
    ]
    if invalid:
        quoted = ", ".join(f'"{part}"' for part in invalid)
        raise ValueError(f"Invalid values: {quoted}. Use positive integers only.")
    return [int(part) for part in parts]


def coerce_positive_int_list(value: Any) -> list[int]:
    """Accept either the comma-separated form value or a JSON list of ints."""
    if isinstance(value, str):
        return parse_positive_int_list(value)
    if isinstance(value, list):
        invalid = [
            item
            for item in value
            if isinstance(item, bool) or not isinstance(item, int) or item <= 0
        ]
        if invalid:
            quoted = ", ".join(f'"{item}"' for item in invalid)
            raise ValueError(f"Invalid values: {quoted}. Use positive integers only.")
        return list(value)
    raise ValueError("Expected a comma-separated list of positive integers")


@lru_cache(maxsize=1)
def _timezones() -> frozenset[str]:
    return frozenset(available_timezones())


def is_valid_timezone(name: str) -> bool:
    return name in _timezones()


def parse_event_datetime(raw: str) -> datetime:
    """Parse ``YYYY-MM-DDTHH:MM`` as a UTC datetime."""
    try:
        parsed = datetime.strptime(raw.strip(), EVENT_DT_FORMAT)
    except ValueError as e:
        raise ValueError("Event date must use the format YYYY-MM-DDTHH:MM") from e
    return parsed.replace(tzinfo=UTC)
