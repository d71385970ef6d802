"""Helpers for turning guild forms into stored guild config changes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from services.settings_reconciler import (
    DEFAULT_GUILD_SETTINGS,
    ReconciliationResult,
    diff_from_defaults,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schemas import GuildEventForm

ADMIN_ROLE_KEY = "adminRole"
ANNOUNCE_CHANNEL_KEY = "announceChan"
WELCOME_MESSAGE_KEY = "welcomeMessage"
PART_MESSAGE_KEY = "partMessage"

# Settings without a bot default: an empty submission clears the stored value.
CLEARABLE_KEYS = (ADMIN_ROLE_KEY, ANNOUNCE_CHANNEL_KEY, WELCOME_MESSAGE_KEY, PART_MESSAGE_KEY)


def _is_empty(value: Any) -> bool:
    return value == "" or value == []


def build_settings_delta(changes: Mapping[str, Any]) -> ReconciliationResult:
    """
    Combine the defaults diff with the settings that have no default.

    ``changes`` holds only submitted fields (camelCase). Defaultable keys go
    through ``diff_from_defaults``; the clearable keys are set when non-empty
    and unset when empty. Anything else is ignored.
    """
    delta = diff_from_defaults(
        {key: value for key, value in changes.items() if key in DEFAULT_GUILD_SETTINGS}
    )

    for key in CLEARABLE_KEYS:
        if key not in changes:
            continue
        value = changes[key]
        if _is_empty(value):
            delta.unset.append(key)
        else:
            delta.set[key] = value

    return delta


def get_admin_roles(config: Mapping[str, Any] | None) -> list[str]:
    """Stored admin-role allow-list for a guild config document (may be empty)."""
    if not config:
        return []
    roles = (config.get("settings") or {}).get(ADMIN_ROLE_KEY) or []
    return [str(role) for role in roles]


def get_announce_channel(config: Mapping[str, Any] | None) -> str | None:
    if not config:
        return None
    return (config.get("settings") or {}).get(ANNOUNCE_CHANNEL_KEY) or None


def collect_unit_ids(config: Mapping[str, Any] | None) -> list[str]:
    """Unit ids referenced by the territory-war lists and the alias map."""
    if not config:
        return []
    settings = config.get("settings") or {}
    tw_list = settings.get("twList") or {}
    aliases = settings.get("aliases") or {}
    ids = [*tw_list.get("light", []), *tw_list.get("dark", []), *aliases.values()]
    return [str(unit_id) for unit_id in ids]


def build_event(form: GuildEventForm) -> dict[str, Any]:
    """Stored event document for a validated event form."""
    event: dict[str, Any] = {"name": form.name}

    timestamp = form.event_timestamp_ms()
    if timestamp is not None:
        event["eventDT"] = timestamp
    if form.message:
        event["message"] = form.message
    if form.channel:
        event["channel"] = form.channel
    event["countdown"] = form.countdown

    if form.repeat_days:
        event["repeatDays"] = list(form.repeat_days)
    elif form.repeat_day or form.repeat_hour or form.repeat_min:
        event["repeat"] = {
            "repeatDay": form.repeat_day or 0,
            "repeatHour": form.repeat_hour or 0,
            "repeatMin": form.repeat_min or 0,
        }

    return event


def find_event(events: list[dict[str, Any]], name: str) -> int | None:
    """Index of the event called ``name`` (case-insensitive), or None."""
    wanted = name.strip().lower()
    for index, event in enumerate(events):
        if str(event.get("name", "")).strip().lower() == wanted:
            return index
    return None
