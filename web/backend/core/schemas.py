"""
Pydantic schemas for API request/response models.

Form fields are snake_case in Python and camelCase on the wire, matching
the keys the bot stores in MongoDB. Dump forms with ``form_changes()`` to
get only the submitted fields under their stored names.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .validation import (
    coerce_positive_int_list,
    is_snowflake,
    is_valid_timezone,
    parse_event_datetime,
)

Language = Literal["en_US", "de_DE", "es_SP", "ko_KR", "pt_BR"]
SwgohLanguage = Literal[
    "ENG_US",
    "GER_DE",
    "SPA_XM",
    "FRE_FR",
    "RUS_RU",
    "POR_BR",
    "KOR_KR",
    "ITA_IT",
    "TUR_TR",
    "CHS_CN",
    "CHT_CN",
    "IND_ID",
    "JPN_JP",
    "THA_TH",
]


def _check_snowflake(value: str) -> str:
    if not is_snowflake(value):
        raise ValueError("must be a Discord ID (17-19 digits)")
    return value


def _check_snowflake_or_empty(value: str) -> str:
    if value == "":
        return value
    return _check_snowflake(value)


Snowflake = Annotated[str, AfterValidator(_check_snowflake)]
SnowflakeOrEmpty = Annotated[str, AfterValidator(_check_snowflake_or_empty)]


class FormModel(BaseModel):
    """Base for submitted forms: camelCase aliases, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def form_changes(self) -> dict[str, Any]:
        """Submitted, non-null fields keyed by their stored (camelCase) names."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


# ---------------------------------------------------------------------------
# User settings forms
# ---------------------------------------------------------------------------


class LangForm(FormModel):
    language: Language | None = None
    swgoh_language: SwgohLanguage | None = None


class ArenaAlertForm(FormModel):
    enable_rank_dms: Literal["all", "primary", "off"] | None = Field(
        None, alias="enableRankDMs"
    )
    arena: Literal["char", "fleet", "both", "none"] | None = None
    payout_warning: int | None = Field(None, ge=0, le=60)
    enable_payout_result: StrictBool | None = None


class ArenaWatchForm(FormModel):
    enabled: StrictBool
    report: Literal["climb", "drop", "both"] | None = None
    showvs: StrictBool


class GuildUpdateForm(FormModel):
    enabled: StrictBool


class GuildTicketsForm(FormModel):
    enabled: StrictBool
    sort_by: Literal["tickets", "name"] | None = None
    show_max: StrictBool


# ---------------------------------------------------------------------------
# Guild forms
# ---------------------------------------------------------------------------


class GuildSettingsForm(FormModel):
    language: Language | None = None
    swgoh_language: SwgohLanguage | None = None
    timezone: str | None = None
    use_event_pages: StrictBool | None = None
    shardtime_vertical: StrictBool | None = None
    announce_chan: SnowflakeOrEmpty | None = None
    admin_role: list[Snowflake] | None = None
    event_countdown: list[int] | None = None
    enable_welcome: StrictBool | None = None
    welcome_message: str | None = Field(None, max_length=1000)
    enable_part: StrictBool | None = None
    part_message: str | None = Field(None, max_length=1000)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_timezone(value):
            raise ValueError("Invalid timezone")
        return value

    @field_validator("event_countdown", mode="before")
    @classmethod
    def _parse_countdown(cls, value: Any) -> Any:
        if value is None:
            return value
        return coerce_positive_int_list(value)


class GuildEventForm(FormModel):
    name: str = Field(min_length=1, max_length=100)
    event_dt: str | None = Field(None, alias="eventDT")
    channel: Snowflake | None = None
    countdown: StrictBool | None = None
    message: str | None = Field(None, max_length=1000)
    repeat_day: int | None = Field(None, ge=0)
    repeat_hour: int | None = Field(None, ge=0)
    repeat_min: int | None = Field(None, ge=0)
    repeat_days: list[int] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Event name is required")
        return value

    @field_validator("event_dt")
    @classmethod
    def _future_event(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        when = parse_event_datetime(value)
        if when <= datetime.now(UTC):
            raise ValueError("Event date and time must be in the future.")
        return value

    @field_validator("repeat_days", mode="before")
    @classmethod
    def _parse_repeat_days(cls, value: Any) -> Any:
        if value is None:
            return value
        return coerce_positive_int_list(value)

    @model_validator(mode="after")
    def _single_repeat_type(self) -> "GuildEventForm":
        has_interval = bool(self.repeat_day or self.repeat_hour or self.repeat_min)
        if has_interval and self.repeat_days:
            raise ValueError(
                "Cannot set both Repeat Interval and Repeat Days. Use only one repeat type."
            )
        return self

    def event_timestamp_ms(self) -> int | None:
        if not self.event_dt:
            return None
        return int(parse_event_datetime(self.event_dt).timestamp() * 1000)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SessionUser(BaseModel):
    id: str
    username: str
    avatar: str | None = None


class AuthMeResponse(BaseModel):
    """Response for /api/auth/me endpoint."""

    success: bool = True
    user: SessionUser | None = None
    csrf_token: str | None = None


class GuildSummary(BaseModel):
    """Minimal guild information for the guild select page."""

    id: str
    name: str
    icon: str | None = None
    permissions: str = "0"


class AccessibleGuild(BaseModel):
    guild: GuildSummary
    config: dict[str, Any] | None = None


class GuildListResponse(BaseModel):
    """Response for /api/guilds."""

    success: bool = True
    guilds: list[AccessibleGuild]


class GuildDetailResponse(BaseModel):
    """Response for /api/guilds/{guild_id}."""

    success: bool = True
    guild: GuildSummary
    config: dict[str, Any] | None = None
    role_map: dict[str, str] = Field(default_factory=dict)
    channel_map: dict[str, str] = Field(default_factory=dict)
    unit_name_map: dict[str, str] = Field(default_factory=dict)


class SettingsDeltaResponse(BaseModel):
    """Response for settings writes: what was stored and what was cleared."""

    success: bool = True
    set: dict[str, Any] = Field(default_factory=dict)
    unset: list[str] = Field(default_factory=list)


class EventListResponse(BaseModel):
    success: bool = True
    events: list[dict[str, Any]]


class DashboardResponse(BaseModel):
    success: bool = True
    user: SessionUser
    user_config: dict[str, Any] | None = None


class UserUpdateResponse(BaseModel):
    success: bool = True
    updated: dict[str, Any] = Field(default_factory=dict)
