"""
Settings Reconciler Tests

Covers the defaults diff: matching values are cleared, differing values are
stored, omitted keys are untouched, and the result is stable when fed back in.
"""

import pytest

from services.settings_reconciler import (
    DEFAULT_GUILD_SETTINGS,
    CompareRule,
    ReconciliationResult,
    SettingDefault,
    default_settings_dict,
    diff_from_defaults,
)
from utils.errors import SettingsContractError

SMALL_DEFAULTS = {
    "timezone": SettingDefault("timezone", "America/New_York", CompareRule.SCALAR),
    "eventCountdown": SettingDefault("eventCountdown", (24, 2, 1), CompareRule.SEQUENCE),
}


class TestDocumentedExamples:
    def test_matching_timezone_is_unset(self):
        result = diff_from_defaults({"timezone": "America/New_York"}, SMALL_DEFAULTS)

        assert result.set == {}
        assert result.unset == ["timezone"]

    def test_differing_timezone_is_set(self):
        result = diff_from_defaults({"timezone": "Europe/Berlin"}, SMALL_DEFAULTS)

        assert result.set == {"timezone": "Europe/Berlin"}
        assert result.unset == []

    def test_matching_countdown_is_unset(self):
        result = diff_from_defaults({"eventCountdown": [24, 2, 1]}, SMALL_DEFAULTS)

        assert "eventCountdown" in result.unset
        assert "eventCountdown" not in result.set

    def test_shorter_countdown_is_set(self):
        result = diff_from_defaults({"eventCountdown": [12, 1]}, SMALL_DEFAULTS)

        assert result.set["eventCountdown"] == [12, 1]
        assert result.unset == []


class TestDiffProperties:
    def test_every_default_value_is_unset(self):
        result = diff_from_defaults(default_settings_dict())

        assert result.set == {}
        assert sorted(result.unset) == sorted(DEFAULT_GUILD_SETTINGS)

    def test_differing_values_are_set_exactly(self):
        proposed = {
            "timezone": "Asia/Tokyo",
            "language": "de_DE",
            "useEventPages": True,
            "eventCountdown": [48, 24],
        }

        result = diff_from_defaults(proposed)

        assert result.set == proposed
        assert result.unset == []

    def test_omitted_keys_are_untouched(self):
        result = diff_from_defaults({"language": "en_US"})

        assert result.unset == ["language"]
        for key in DEFAULT_GUILD_SETTINGS:
            if key != "language":
                assert key not in result.set
                assert key not in result.unset

    def test_none_counts_as_omitted(self):
        result = diff_from_defaults({"timezone": None, "enablePart": None})

        assert result.is_empty()

    def test_unknown_keys_are_ignored(self):
        result = diff_from_defaults({"adminRole": ["123456789012345678"], "aliases": {}})

        assert result.is_empty()

    def test_reordered_sequence_differs(self):
        result = diff_from_defaults({"eventCountdown": [1, 2, 24]})

        assert result.set == {"eventCountdown": [1, 2, 24]}

    def test_tuple_sequence_matches_default(self):
        result = diff_from_defaults({"eventCountdown": (24, 2, 1)})

        assert result.unset == ["eventCountdown"]

    def test_longer_sequence_differs(self):
        result = diff_from_defaults({"eventCountdown": [24, 2, 1, 0]})

        assert result.set == {"eventCountdown": [24, 2, 1, 0]}

    def test_stored_sequence_is_a_copy(self):
        proposed = [12, 6]
        result = diff_from_defaults({"eventCountdown": proposed})
        proposed.append(1)

        assert result.set["eventCountdown"] == [12, 6]

    def test_bool_default_does_not_match_zero(self):
        result = diff_from_defaults({"useEventPages": 0})

        assert result.set == {"useEventPages": 0}
        assert result.unset == []

    def test_rerunning_set_values_is_idempotent(self):
        proposed = {
            "timezone": "Europe/Berlin",
            "language": "en_US",
            "eventCountdown": [12, 1],
            "enableWelcome": True,
        }
        first = diff_from_defaults(proposed)
        second = diff_from_defaults(first.set)

        assert second.set == first.set
        assert second.unset == []

    def test_deterministic(self):
        proposed = {"timezone": "UTC", "eventCountdown": [24, 2, 1], "enablePart": False}

        assert diff_from_defaults(proposed) == diff_from_defaults(proposed)


class TestContractViolations:
    def test_scalar_for_sequence_setting_raises(self):
        with pytest.raises(SettingsContractError) as exc_info:
            diff_from_defaults({"eventCountdown": 24})

        assert exc_info.value.key == "eventCountdown"

    def test_sequence_for_scalar_setting_raises(self):
        with pytest.raises(SettingsContractError) as exc_info:
            diff_from_defaults({"timezone": ["UTC"]})

        assert exc_info.value.key == "timezone"

    def test_contract_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            diff_from_defaults({"timezone": ["UTC"]})


class TestResultAndTable:
    def test_result_to_dict_copies(self):
        result = ReconciliationResult(set={"timezone": "UTC"}, unset=["language"])
        dumped = result.to_dict()
        dumped["unset"].append("enablePart")

        assert result.unset == ["language"]
        assert dumped["set"] == {"timezone": "UTC"}

    def test_defaults_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_GUILD_SETTINGS["timezone"] = None  # type: ignore[index]

    def test_default_settings_dict_lists_sequences(self):
        defaults = default_settings_dict()

        assert defaults["eventCountdown"] == [24, 2, 1]
        assert defaults["timezone"] == "America/New_York"
