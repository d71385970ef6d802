"""
Guild Access Tests

The MANAGE_GUILD bit grants access without any Discord call; otherwise the
member's roles are checked against the guild's admin-role allow-list, and
any lookup failure is a denial.
"""

import httpx
import pytest

from services.guild_access import (
    MANAGE_GUILD,
    can_access_guild,
    has_manage_guild,
    parse_permissions,
)
from tests.factories import FakeDiscordOAuthClient, make_http_status_error

GUILD_ID = "111111111111111111"
ADMIN_ROLE = "333333333333333333"
OTHER_ROLE = "444444444444444444"


class TestParsePermissions:
    def test_decimal_string(self):
        assert parse_permissions("2147483647") == 2147483647

    def test_values_beyond_53_bits_are_exact(self):
        # 2**53 + 32 cannot be represented exactly as a float
        raw = str(2**53 + 32)

        assert parse_permissions(raw) == 2**53 + 32
        assert has_manage_guild(raw)

    def test_full_64_bit_mask(self):
        assert has_manage_guild(str(2**64 - 1))

    def test_high_bits_without_manage_guild(self):
        assert not has_manage_guild(str(2**60 | 0x8))

    @pytest.mark.parametrize("raw", [None, "", "abc", "-32", "3.2e1", True, "²", "３２"])
    def test_invalid_values_mean_no_permissions(self, raw):
        assert parse_permissions(raw) == 0

    def test_int_input(self):
        assert parse_permissions(MANAGE_GUILD) == MANAGE_GUILD


@pytest.mark.asyncio
class TestCanAccessGuild:
    async def test_manage_guild_short_circuits(self):
        discord = FakeDiscordOAuthClient()
        discord.member_error = httpx.ConnectError("unreachable")

        allowed = await can_access_guild(discord, "token", GUILD_ID, "32", [])

        assert allowed is True
        assert discord.calls["fetch_guild_member"] == 0

    async def test_unicode_digit_permissions_fall_back_to_roles(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: []})

        allowed = await can_access_guild(discord, "token", GUILD_ID, "²", [])

        assert allowed is False
        assert discord.calls["fetch_guild_member"] == 1

    async def test_manage_guild_among_other_bits(self):
        discord = FakeDiscordOAuthClient()

        allowed = await can_access_guild(
            discord, "token", GUILD_ID, str(0x20 | 0x8 | 2**40), None
        )

        assert allowed is True
        assert discord.calls["fetch_guild_member"] == 0

    async def test_role_overlap_grants_access(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: [OTHER_ROLE, ADMIN_ROLE]})

        allowed = await can_access_guild(discord, "token", GUILD_ID, "0", [ADMIN_ROLE])

        assert allowed is True
        assert discord.calls["fetch_guild_member"] == 1

    async def test_no_overlap_denies(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: [OTHER_ROLE]})

        allowed = await can_access_guild(discord, "token", GUILD_ID, "0", [ADMIN_ROLE])

        assert allowed is False
        assert discord.calls["fetch_guild_member"] == 1

    async def test_empty_allow_list_denies(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: [ADMIN_ROLE]})

        allowed = await can_access_guild(discord, "token", GUILD_ID, "8", [])

        assert allowed is False

    async def test_expired_token_denies_without_raising(self):
        discord = FakeDiscordOAuthClient()
        discord.member_error = make_http_status_error(401)

        allowed = await can_access_guild(discord, "token", GUILD_ID, "0", [ADMIN_ROLE])

        assert allowed is False

    async def test_network_failure_denies_without_raising(self):
        discord = FakeDiscordOAuthClient()
        discord.member_error = httpx.ConnectTimeout("timed out")

        allowed = await can_access_guild(discord, "token", GUILD_ID, "0", [ADMIN_ROLE])

        assert allowed is False

    async def test_unexpected_failure_denies(self):
        discord = FakeDiscordOAuthClient()
        discord.member_error = KeyError("roles")

        allowed = await can_access_guild(discord, "token", GUILD_ID, None, [ADMIN_ROLE])

        assert allowed is False

    async def test_numeric_allow_list_entries_compare_as_strings(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: [ADMIN_ROLE]})

        allowed = await can_access_guild(
            discord, "token", GUILD_ID, "0", [int(ADMIN_ROLE)]
        )

        assert allowed is True

    async def test_at_most_one_fetch_per_decision(self):
        discord = FakeDiscordOAuthClient(member_roles={GUILD_ID: []})

        await can_access_guild(discord, "token", GUILD_ID, "0", [ADMIN_ROLE, OTHER_ROLE])

        assert discord.calls["fetch_guild_member"] == 1
