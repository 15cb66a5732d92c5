"""
Schedule Resolver Service

Finds the programme airing at a reference instant and the one after it.
Input must be pre-filtered to one channel and sorted by start time.
"""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
import logging

from epg_guide.schemas import ProgrammeResponse
from epg_guide.services.fetch_types import ProgrammePayload
from epg_guide.utils.timezone import format_for_timezone, reference_instant

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResolvedSchedule:
    current_program: ProgrammeResponse | None = None
    next_program: ProgrammeResponse | None = None


def find_channel_programmes(
    programmes: Iterable[ProgrammePayload],
    channel_id: str
) -> list[ProgrammePayload]:
    """Filter programmes to one channel, preserving order"""
    return [programme for programme in programmes if programme.xmltv_channel_id == channel_id]


def resolve_schedule(
    programmes: Sequence[ProgrammePayload],
    timezone_name: str,
    now: datetime | None = None
) -> ResolvedSchedule:
    """
    Resolve the current and next programme for one channel

    Scans in order and stops at the first programme whose [start, stop)
    interval contains now (its successor becomes next), or at the first
    programme starting after now (it becomes next, nothing is current).
    Programmes with unparseable start/stop times are skipped.

    Args:
        programmes: Programmes of a single channel sorted by start
        timezone_name: Timezone for "now" and for the formatted start/stop
        now: Optional reference instant (defaults to the current time)

    Returns:
        ResolvedSchedule with localized programmes, None where nothing matched

    Raises:
        InvalidTimezoneError: If timezone_name is unknown
    """
    current_instant = reference_instant(timezone_name, now)
    schedulable = [programme for programme in programmes if programme.is_schedulable]

    current: ProgrammePayload | None = None
    upcoming: ProgrammePayload | None = None

    for index, programme in enumerate(schedulable):
        if programme.start_time <= current_instant < programme.stop_time:
            current = programme
            upcoming = schedulable[index + 1] if index + 1 < len(schedulable) else None
            break
        if programme.start_time > current_instant:
            upcoming = programme
            break

    return ResolvedSchedule(
        current_program=_to_response(current, timezone_name) if current else None,
        next_program=_to_response(upcoming, timezone_name) if upcoming else None,
    )


def _to_response(programme: ProgrammePayload, timezone_name: str) -> ProgrammeResponse:
    return ProgrammeResponse(
        channel_id=programme.xmltv_channel_id,
        start=format_for_timezone(programme.start_time, timezone_name),
        stop=format_for_timezone(programme.stop_time, timezone_name),
        title=programme.title,
        description=programme.description,
    )
