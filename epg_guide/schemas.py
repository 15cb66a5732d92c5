from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from epg_guide.config import settings
from epg_guide.utils.logging_helpers import sanitize_url_for_logging
from epg_guide.utils.timezone import InvalidTimezoneError, get_zone


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Channel(CamelModel):
    """Channel data model"""
    id: str | None = Field(..., description="XMLTV channel ID")
    name: str = Field("", description="Display name of the channel")
    icon: str = Field("", description="URL to channel icon, empty if absent")


class ProgrammeResponse(CamelModel):
    """Single programme with start/stop localized to the requested timezone"""
    channel_id: str | None = Field(..., description="XMLTV channel ID this programme belongs to")
    start: str = Field(..., description="Localized start time, e.g. 'Mon, 01 Jan 2024 19:30:00 CET'")
    stop: str = Field(..., description="Localized stop time")
    title: str = ""
    description: str = ""


class ChannelSchedule(CamelModel):
    """Current and next programme for one channel"""
    channel: Channel
    current_program: ProgrammeResponse | None = None
    next_program: ProgrammeResponse | None = None


class ChannelErrorResponse(CamelModel):
    """Per-item marker for an identifier that matched no channel"""
    channel_id: str
    error: str = "Channel not found"


class StreamRecord(BaseModel):
    """External stream record carrying an optional EPG channel ID"""
    model_config = ConfigDict(extra="ignore")

    stream_id: str | int = Field(..., description="External stream identifier used as result key")
    epg_channel_id: str | None = Field(None, description="XMLTV channel ID, if the stream has one")


class StreamBatchRequest(BaseModel):
    """Batch schedule request keyed by stream ID"""
    streams: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Stream records to resolve; records without a usable stream_id or epg_channel_id are skipped"
    )


class ProviderQuery(BaseModel):
    """Provider credentials and timezone passed with every query"""
    base_url: str = Field(..., description="Provider base URL, e.g. 'http://provider.example:8080'")
    username: str
    password: str
    timezone: str | None = Field(
        None,
        validate_default=True,
        description="Timezone for programme times (e.g., 'UTC', 'Europe/London'); defaults to DEFAULT_TIMEZONE"
    )

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate provider URL is HTTP/HTTPS"""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"Provider base URL must be HTTP/HTTPS: {sanitize_url_for_logging(v)}")
        return v.rstrip('/')

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str | None) -> str:
        """Validate timezone string, falling back to the configured default"""
        if v is None:
            return settings.default_timezone
        try:
            get_zone(v)
            return v
        except InvalidTimezoneError as e:
            raise ValueError(str(e))
