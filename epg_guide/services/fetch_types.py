"""
Shared dataclasses used across the guide fetch/extract/resolve pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class ChannelPayload:
    """In-memory representation of a <channel> element."""
    xmltv_id: str | None
    display_name: str = ""
    icon_url: str = ""


@dataclass(slots=True, frozen=True)
class ProgrammePayload:
    """In-memory representation of a <programme> element.

    ``start``/``stop`` keep the raw XMLTV encoding; ``start_time``/``stop_time``
    are the parsed instants, or None when the raw value did not parse.
    """
    xmltv_channel_id: str | None
    start: str | None
    stop: str | None
    start_time: datetime | None = None
    stop_time: datetime | None = None
    title: str = ""
    description: str = ""

    @property
    def is_schedulable(self) -> bool:
        return self.start_time is not None and self.stop_time is not None


@dataclass(slots=True)
class GuideData:
    """Result of one fetch + extract pass."""
    channels: list[ChannelPayload]
    programmes: list[ProgrammePayload]


__all__ = ["ChannelPayload", "ProgrammePayload", "GuideData"]
