"""
Services package for EPG Guide

This package contains the fetch, extract, resolve and query components.
"""
from epg_guide.services.epg_query_service import (
    EPGQueryError,
    list_channels,
    resolve_batch_by_stream_id,
    resolve_channel,
    resolve_channels,
)
from epg_guide.services.schedule_resolver_service import resolve_schedule
from epg_guide.services.xmltv_downloader_service import fetch_xmltv
from epg_guide.services.xmltv_parser_service import parse_xmltv_document

__all__ = [
    'EPGQueryError',
    'list_channels',
    'resolve_batch_by_stream_id',
    'resolve_channel',
    'resolve_channels',
    'resolve_schedule',
    'fetch_xmltv',
    'parse_xmltv_document',
]
