"""
Guild settings reconciliation.

Turns a validated settings patch into the minimal storage delta relative to
the bot's default guild settings: keys that differ from their default are
stored explicitly (``set``), keys that match their default are removed from
the stored document (``unset``) so later default changes reach every guild
that never overrode them.

Only keys declared in ``DEFAULT_GUILD_SETTINGS`` are diffed. Anything else in
the patch (admin role lists, alias maps, free-form messages) is ignored here
and must be handled by the caller.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from utils.errors import SettingsContractError

if TYPE_CHECKING:
    from collections.abc import Mapping


class CompareRule(enum.Enum):
    """How a proposed value is compared against its default."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"


@dataclass(frozen=True, slots=True)
class SettingDefault:
    key: str
    value: Any
    rule: CompareRule


@dataclass(slots=True)
class ReconciliationResult:
    """Storage delta: keys to ``$set`` and keys to ``$unset``."""

    set: dict[str, Any] = field(default_factory=dict)
    unset: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.set and not self.unset

    def to_dict(self) -> dict[str, Any]:
        return {"set": dict(self.set), "unset": list(self.unset)}


def _build_defaults(*entries: SettingDefault) -> Mapping[str, SettingDefault]:
    return MappingProxyType({entry.key: entry for entry in entries})


DEFAULT_GUILD_SETTINGS: Mapping[str, SettingDefault] = _build_defaults(
    SettingDefault("timezone", "America/New_York", CompareRule.SCALAR),
    SettingDefault("language", "en_US", CompareRule.SCALAR),
    SettingDefault("swgohLanguage", "ENG_US", CompareRule.SCALAR),
    SettingDefault("useEventPages", False, CompareRule.SCALAR),
    SettingDefault("shardtimeVertical", False, CompareRule.SCALAR),
    SettingDefault("eventCountdown", (24, 2, 1), CompareRule.SEQUENCE),
    SettingDefault("enableWelcome", False, CompareRule.SCALAR),
    SettingDefault("enablePart", False, CompareRule.SCALAR),
)


def default_settings_dict(
    defaults: Mapping[str, SettingDefault] = DEFAULT_GUILD_SETTINGS,
) -> dict[str, Any]:
    """Plain ``{key: value}`` view of the defaults table (sequences as lists)."""
    return {
        key: list(entry.value) if entry.rule is CompareRule.SEQUENCE else entry.value
        for key, entry in defaults.items()
    }


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _scalar_equal(proposed: Any, default: Any) -> bool:
    # False == 0 in Python; a stored boolean default only matches a boolean.
    if isinstance(proposed, bool) or isinstance(default, bool):
        return type(proposed) is type(default) and proposed == default
    return proposed == default


def _sequence_equal(proposed: Any, default: Any) -> bool:
    if len(proposed) != len(default):
        return False
    return all(_scalar_equal(p, d) for p, d in zip(proposed, default, strict=True))


def diff_from_defaults(
    proposed: Mapping[str, Any],
    defaults: Mapping[str, SettingDefault] = DEFAULT_GUILD_SETTINGS,
) -> ReconciliationResult:
    """
    Compute which defaultable settings to store and which to clear.

    A key missing from ``proposed`` (or mapped to ``None``) is left alone.
    Sequence settings compare element-wise and in order; everything else
    compares with strict equality.

    Raises:
        SettingsContractError: when a value's shape does not match its
            default (a list for a scalar setting or vice versa). Callers are
            expected to validate forms before reconciling.
    """
    result = ReconciliationResult()

    for key, entry in defaults.items():
        if key not in proposed:
            continue
        value = proposed[key]
        if value is None:
            continue

        if entry.rule is CompareRule.SEQUENCE:
            if not _is_sequence(value):
                raise SettingsContractError(key, "expected a sequence value")
            matches_default = _sequence_equal(value, entry.value)
        else:
            if _is_sequence(value):
                raise SettingsContractError(key, "expected a scalar value")
            matches_default = _scalar_equal(value, entry.value)

        if matches_default:
            result.unset.append(key)
        else:
            result.set[key] = list(value) if _is_sequence(value) else value

    return result
