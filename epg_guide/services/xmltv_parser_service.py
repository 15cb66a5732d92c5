"""
XMLTV Parser Service

Best-effort extraction of channels and programmes from an XMLTV document.
The parser runs in lxml recovery mode, so malformed markup degrades to fewer
elements instead of failing the whole pass. Missing attributes become None
and missing child elements become empty strings.
"""
from datetime import datetime, timezone
from typing import Optional
import asyncio
import logging
import unicodedata

from lxml import etree # type: ignore

from epg_guide.services.fetch_types import ChannelPayload, ProgrammePayload
from epg_guide.utils.logging_helpers import log_parse_summary
from epg_guide.utils.timezone import DateFormatError, parse_xmltv_time

logger = logging.getLogger(__name__)

_UNPARSEABLE_SORT_KEY = datetime.min.replace(tzinfo=timezone.utc)


def _build_parser() -> etree.XMLParser:
    return etree.XMLParser(
        encoding="utf-8",
        recover=True,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_comments=True,
        remove_pis=True,
    )


def parse_xmltv_document(text: str) -> tuple[list[ChannelPayload], list[ProgrammePayload]]:
    """
    Parse XMLTV document text and return channels and programmes

    Args:
        text: Raw XMLTV document body

    Returns:
        Tuple of (channels, programmes)
        - channels: sorted by display name
        - programmes: sorted by start instant, unparseable start times last
    """
    logger.debug(f"Parsing XMLTV document ({len(text or '')} characters)")

    root = _load_root(text)
    if root is None:
        logger.warning("XMLTV document is empty or unrecoverable - no channels or programmes extracted")
        return [], []
    logger.debug(f"  XML document loaded (root tag: {root.tag})")

    channels = _parse_channels(root)
    programmes = _parse_programmes(root)

    invalid_times = sum(1 for programme in programmes if not programme.is_schedulable)
    log_parse_summary(logger, len(channels), len(programmes), invalid_times)

    return channels, programmes


async def parse_xmltv_async(
    text: str,
    *,
    parse_timeout_seconds: int | None = None
) -> tuple[list[ChannelPayload], list[ProgrammePayload]]:
    """
    Parse XMLTV document asynchronously with timeout protection.

    Parsing is offloaded to thread pool to avoid blocking event loop.

    Args:
        text: Raw XMLTV document body

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Returns:
        Tuple of (channels, programmes)

    Raises:
        ValueError: If parsing times out
    """
    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    loop = asyncio.get_running_loop()
    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
    parse_task = loop.run_in_executor(None, parse_xmltv_document, text)

    try:
        if effective_timeout:
            return await asyncio.wait_for(parse_task, timeout=effective_timeout)
        return await parse_task
    except asyncio.TimeoutError:
        logger.error("XML parsing timed out after %s", timeout_display)
        raise ValueError("XML parsing timed out - document may be too large or malformed")


def _load_root(text: str) -> Optional[etree._Element]:
    """Build the element tree, returning None when nothing is recoverable"""
    if not text or not text.strip():
        return None

    data = text.lstrip("\ufeff").encode("utf-8", errors="replace")
    try:
        return etree.fromstring(data, _build_parser())
    except etree.XMLSyntaxError as e:
        logger.warning(f"  XML document could not be recovered: {e}")
        return None


def _parse_channels(root: etree._Element) -> list[ChannelPayload]:
    """Extract channels from XMLTV root element"""
    channels = []

    for channel in root.iter('channel'):
        xmltv_id = _get_attribute(channel, 'id')
        if xmltv_id is None:
            logger.debug("Channel element without id attribute kept with empty id")

        icon_elem = channel.find('.//icon')
        icon_url = _get_attribute(icon_elem, 'src') if icon_elem is not None else None

        channels.append(ChannelPayload(
            xmltv_id=xmltv_id,
            display_name=_get_text(channel, 'display-name'),
            icon_url=icon_url or '',
        ))

    channels.sort(key=_channel_sort_key)
    return channels


def _parse_programmes(root: etree._Element) -> list[ProgrammePayload]:
    """Extract programmes from XMLTV root element"""
    programmes = [_parse_single_programme(programme) for programme in root.iter('programme')]
    programmes.sort(key=_programme_sort_key)
    return programmes


def _parse_single_programme(programme: etree._Element) -> ProgrammePayload:
    """Parse single programme element"""
    start_str = _get_attribute(programme, 'start')
    stop_str = _get_attribute(programme, 'stop')

    return ProgrammePayload(
        xmltv_channel_id=_get_attribute(programme, 'channel'),
        start=start_str,
        stop=stop_str,
        start_time=_parse_time_or_none(start_str),
        stop_time=_parse_time_or_none(stop_str),
        title=_get_text(programme, 'title'),
        description=_get_text(programme, 'desc'),
    )


def _parse_time_or_none(time_str: Optional[str]) -> Optional[datetime]:
    if time_str is None:
        return None
    try:
        return parse_xmltv_time(time_str)
    except DateFormatError as e:
        logger.debug(str(e))
        return None


def _channel_sort_key(channel: ChannelPayload) -> tuple[str, str]:
    # Accent- and case-insensitive first, raw name breaks ties
    folded = unicodedata.normalize('NFKD', channel.display_name)
    folded = ''.join(ch for ch in folded if not unicodedata.combining(ch)).casefold()
    return folded, channel.display_name


def _programme_sort_key(programme: ProgrammePayload) -> tuple[bool, datetime]:
    return programme.start_time is None, programme.start_time or _UNPARSEABLE_SORT_KEY


def _get_attribute(element: etree._Element, name: str) -> Optional[str]:
    """Read an attribute, matching the name case-insensitively"""
    value = element.get(name)
    if value is not None:
        return value

    lowered = name.lower()
    for key, candidate in element.attrib.items():
        if isinstance(key, str) and key.lower() == lowered:
            return candidate
    return None


def _get_text(element: etree._Element, tag: str) -> str:
    """Safely extract leading text of the first matching descendant"""
    child = element.find(f'.//{tag}')
    if child is None or not child.text:
        return ''
    return child.text.strip()
