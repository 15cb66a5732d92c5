from typing import Annotated
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from epg_guide.schemas import (
    Channel,
    ChannelErrorResponse,
    ChannelSchedule,
    ProviderQuery,
    StreamBatchRequest,
)
from epg_guide.services import (
    EPGQueryError,
    list_channels,
    resolve_batch_by_stream_id,
    resolve_channel,
    resolve_channels,
)


logger = logging.getLogger(__name__)

main_router = APIRouter()


def get_provider_query(
    base_url: Annotated[str, Query(description="Provider base URL")],
    username: Annotated[str, Query(description="Provider account username")],
    password: Annotated[str, Query(description="Provider account password")],
    timezone: Annotated[str | None, Query(description="IANA timezone for programme times")] = None,
) -> ProviderQuery:
    """Collect provider credentials and timezone from query parameters"""
    try:
        return ProviderQuery(
            base_url=base_url,
            username=username,
            password=password,
            timezone=timezone,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


Provider = Annotated[ProviderQuery, Depends(get_provider_query)]


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "EPG Guide",
        "version": "0.1.0",
        "endpoints": {
            "channels": "/channels - List all guide channels",
            "channel_epg": "/channels/{epg_channel_id}/epg - Current and next programme for one channel",
            "epg": "/epg?channels=a,b - Current and next programme for several channels",
            "epg_batch": "/epg/batch - Current and next programme keyed by stream ID (POST)",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    return {"status": "ok"}


@main_router.get("/channels", response_model=list[Channel])
async def get_channels(provider: Provider) -> list[Channel]:
    """List every channel in the provider guide, sorted by name"""
    try:
        return await list_channels(provider.base_url, provider.username, provider.password)
    except EPGQueryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@main_router.get("/channels/{epg_channel_id}/epg", response_model=ChannelSchedule)
async def get_channel_epg(epg_channel_id: str, provider: Provider) -> ChannelSchedule:
    """Current and next programme for a single channel"""
    result = await resolve_channel(
        epg_channel_id,
        provider.base_url,
        provider.username,
        provider.password,
        provider.timezone,
    )
    if result is None:
        raise HTTPException(status_code=404, detail=f"EPG not available for channel {epg_channel_id}")
    return result


@main_router.get("/epg", response_model=list[ChannelSchedule | ChannelErrorResponse])
async def get_epg(
    channels: Annotated[str, Query(min_length=1, description="Comma-separated XMLTV channel IDs")],
    provider: Provider
) -> list[ChannelSchedule | ChannelErrorResponse]:
    """Current and next programme for several channels"""
    try:
        return await resolve_channels(
            channels,
            provider.base_url,
            provider.username,
            provider.password,
            provider.timezone,
        )
    except EPGQueryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@main_router.post("/epg/batch", response_model=dict[str, ChannelSchedule])
async def get_epg_batch(
    request: StreamBatchRequest,
    provider: Provider
) -> dict[str, ChannelSchedule]:
    """
    Current and next programme for a batch of streams

    Streams without an EPG channel ID, or with an unknown one, are left out.
    """
    try:
        return await resolve_batch_by_stream_id(
            request.streams,
            provider.base_url,
            provider.username,
            provider.password,
            provider.timezone,
        )
    except EPGQueryError as e:
        raise HTTPException(status_code=502, detail=str(e))
