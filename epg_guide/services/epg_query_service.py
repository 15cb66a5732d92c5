"""
EPG Query Service

Business logic for answering channel and current/next programme queries.
Every operation performs exactly one download and one parse of the guide,
shared by all items of a batch, and keeps no state between calls.
"""
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
import logging

import httpx
from pydantic import ValidationError

from epg_guide.config import settings
from epg_guide.schemas import Channel, ChannelErrorResponse, ChannelSchedule, StreamRecord
from epg_guide.services.fetch_types import ChannelPayload, GuideData, ProgrammePayload
from epg_guide.services.schedule_resolver_service import find_channel_programmes, resolve_schedule
from epg_guide.services.xmltv_downloader_service import fetch_xmltv
from epg_guide.services.xmltv_parser_service import parse_xmltv_async
from epg_guide.utils.logging_helpers import describe_error, log_query_summary
from epg_guide.utils.timezone import get_zone

logger = logging.getLogger(__name__)

CHANNEL_NOT_FOUND = "Channel not found"


class EPGQueryError(RuntimeError):
    """Raised when a batch query cannot fetch or process the guide"""
    pass


async def resolve_channel(
    epg_channel_id: str,
    base_url: str,
    username: str,
    password: str,
    timezone: str,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None
) -> ChannelSchedule | None:
    """
    Get current and next programme for a single channel

    Args:
        epg_channel_id: XMLTV channel ID
        base_url: Provider base URL
        username: Provider account username
        password: Provider account password
        timezone: Timezone for "now" and for programme times

    Returns:
        ChannelSchedule, or None if the channel is unknown or the guide could not be processed
    """
    try:
        get_zone(timezone)
        guide = await _load_guide(base_url, username, password, client)

        channel = _find_channel(guide.channels, epg_channel_id)
        if channel is None:
            logger.info(f"Channel {epg_channel_id} not found in guide")
            return None

        programmes = find_channel_programmes(guide.programmes, epg_channel_id)
        return _build_schedule(channel, programmes, timezone, now)
    except Exception as e:
        _log_failure("resolve_channel", e)
        return None


async def resolve_channels(
    channel_ids_csv: str,
    base_url: str,
    username: str,
    password: str,
    timezone: str,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None
) -> list[ChannelSchedule | ChannelErrorResponse]:
    """
    Get current and next programme for a comma-separated list of channels

    Duplicate IDs are collapsed, first-seen order is kept. Unknown IDs yield
    a ChannelErrorResponse item instead of failing the batch.

    Returns:
        One result or error marker per unique channel ID

    Raises:
        EPGQueryError: If the guide could not be fetched or processed
    """
    channel_ids = parse_channel_ids(channel_ids_csv)
    logger.info(f"Received multi-channel request: {len(channel_ids)} unique channels, timezone={timezone}")

    try:
        get_zone(timezone)
        guide = await _load_guide(base_url, username, password, client)
        channel_index = _index_channels(guide.channels)
        programmes_by_channel = _group_programmes(guide.programmes)

        results: list[ChannelSchedule | ChannelErrorResponse] = []
        for channel_id in channel_ids:
            channel = channel_index.get(channel_id)
            if channel is None:
                results.append(ChannelErrorResponse(channel_id=channel_id, error=CHANNEL_NOT_FOUND))
                continue
            results.append(
                _build_schedule(channel, programmes_by_channel.get(channel_id, []), timezone, now)
            )
    except Exception as e:
        _log_failure("resolve_channels", e)
        raise EPGQueryError(f"Error processing XMLTV data: {describe_error(e)}") from e

    resolved = sum(1 for result in results if isinstance(result, ChannelSchedule))
    log_query_summary(logger, "resolve_channels", len(channel_ids), resolved)
    return results


async def list_channels(
    base_url: str,
    username: str,
    password: str,
    *,
    client: httpx.AsyncClient | None = None
) -> list[Channel]:
    """
    Get the full channel list sorted by name

    Raises:
        EPGQueryError: If the guide could not be fetched or processed
    """
    try:
        guide = await _load_guide(base_url, username, password, client)
    except Exception as e:
        _log_failure("list_channels", e)
        raise EPGQueryError(f"Error fetching channels list: {describe_error(e)}") from e

    return [_to_channel(channel) for channel in guide.channels]


async def resolve_batch_by_stream_id(
    records: Iterable[StreamRecord | Mapping[str, Any]],
    base_url: str,
    username: str,
    password: str,
    timezone: str,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None
) -> dict[str, ChannelSchedule]:
    """
    Get current and next programme for a batch of stream records

    Records without an epg_channel_id, whose stream_id is missing or
    invalid, or whose ID matches no channel, are left out of the result.

    Args:
        records: StreamRecord instances or mappings with stream_id and optional epg_channel_id

    Returns:
        Mapping of str(stream_id) to ChannelSchedule

    Raises:
        EPGQueryError: If the guide could not be fetched or processed
    """
    records = list(records)
    streams = [stream for stream in map(_to_stream_record, records) if stream is not None]

    try:
        get_zone(timezone)
        guide = await _load_guide(base_url, username, password, client)
        channel_index = _index_channels(guide.channels)
        programmes_by_channel = _group_programmes(guide.programmes)

        results: dict[str, ChannelSchedule] = {}
        for stream in streams:
            channel = channel_index.get(stream.epg_channel_id)
            if channel is None:
                continue

            results[str(stream.stream_id)] = _build_schedule(
                channel,
                programmes_by_channel.get(stream.epg_channel_id, []),
                timezone,
                now,
            )
    except Exception as e:
        _log_failure("resolve_batch_by_stream_id", e)
        raise EPGQueryError(f"Error processing XMLTV data: {describe_error(e)}") from e

    omitted = len(records) - len(results)
    if omitted:
        logger.debug(f"{omitted} stream record(s) without a usable stream ID or known EPG channel omitted from batch result")
    log_query_summary(logger, "resolve_batch_by_stream_id", len(records), len(results))
    return results


def parse_channel_ids(channel_ids_csv: str) -> list[str]:
    """
    Split a comma-separated ID list, collapsing duplicates

    Entries are whitespace-trimmed. Blank entries such as the middle of
    "a,,b" are dropped rather than reported as unknown channels.
    """
    candidates = (channel_id.strip() for channel_id in (channel_ids_csv or "").split(","))
    return list(dict.fromkeys(channel_id for channel_id in candidates if channel_id))


async def _load_guide(
    base_url: str,
    username: str,
    password: str,
    client: httpx.AsyncClient | None
) -> GuideData:
    """Fetch and parse the guide once"""
    text = await fetch_xmltv(base_url, username, password, client=client)
    channels, programmes = await parse_xmltv_async(
        text,
        parse_timeout_seconds=settings.xmltv_parse_timeout_sec
    )
    return GuideData(channels=channels, programmes=programmes)


def _find_channel(channels: Iterable[ChannelPayload], channel_id: str) -> ChannelPayload | None:
    return next((channel for channel in channels if channel.xmltv_id == channel_id), None)


def _index_channels(channels: Iterable[ChannelPayload]) -> dict[str, ChannelPayload]:
    """Index channels by ID, first occurrence wins"""
    index: dict[str, ChannelPayload] = {}
    for channel in channels:
        if channel.xmltv_id is not None:
            index.setdefault(channel.xmltv_id, channel)
    return index


def _group_programmes(programmes: Iterable[ProgrammePayload]) -> dict[str, list[ProgrammePayload]]:
    """Group programmes by channel ID, keeping start order"""
    grouped: dict[str, list[ProgrammePayload]] = defaultdict(list)
    for programme in programmes:
        if programme.xmltv_channel_id is not None:
            grouped[programme.xmltv_channel_id].append(programme)
    return grouped


def _build_schedule(
    channel: ChannelPayload,
    programmes: list[ProgrammePayload],
    timezone: str,
    now: datetime | None
) -> ChannelSchedule:
    resolved = resolve_schedule(programmes, timezone, now)
    return ChannelSchedule(
        channel=_to_channel(channel),
        current_program=resolved.current_program,
        next_program=resolved.next_program,
    )


def _to_channel(channel: ChannelPayload) -> Channel:
    return Channel(id=channel.xmltv_id, name=channel.display_name, icon=channel.icon_url)


def _to_stream_record(record: StreamRecord | Mapping[str, Any]) -> StreamRecord | None:
    """Return the record as a StreamRecord, or None if it cannot be looked up"""
    if isinstance(record, StreamRecord):
        return record if record.epg_channel_id else None

    if not isinstance(record, Mapping) or not record.get("epg_channel_id"):
        return None

    try:
        return StreamRecord.model_validate(record)
    except ValidationError as e:
        logger.debug(f"Skipping invalid stream record: {e.error_count()} validation error(s)")
        return None


def _log_failure(operation: str, exc: Exception) -> None:
    # httpx tracebacks repeat the request URL, credentials included
    logger.error(f"Error in {operation}: {describe_error(exc)}", exc_info=not isinstance(exc, httpx.HTTPError))
