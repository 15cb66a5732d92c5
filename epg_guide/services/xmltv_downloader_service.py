"""
XMLTV Downloader Service

Retrieves the raw XMLTV document from an Xtream-style provider.
One request per call with redirects followed; no retries and no caching.
"""
import logging

import httpx

from epg_guide.config import settings
from epg_guide.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)


def build_xmltv_url(base_url: str, username: str, password: str) -> httpx.URL:
    """
    Build the guide URL for the given provider and credentials

    Args:
        base_url: Provider base URL, e.g. 'http://provider.example:8080'
        username: Provider account username
        password: Provider account password

    Returns:
        URL of the form '{base_url}/xmltv.php?username=...&password=...'
    """
    url = httpx.URL(f"{base_url.rstrip('/')}/{settings.xmltv_path}")
    return url.copy_merge_params({"username": username, "password": password})


async def fetch_xmltv(
    base_url: str,
    username: str,
    password: str,
    *,
    client: httpx.AsyncClient | None = None
) -> str:
    """
    Download the XMLTV document body

    Args:
        base_url: Provider base URL
        username: Provider account username
        password: Provider account password

    Keyword Args:
        client: Optional shared client; it is used as-is and left open

    Returns:
        Document body as text

    Raises:
        httpx.HTTPError: On transport failure or non-success status
    """
    url = build_xmltv_url(base_url, username, password)
    safe_url = sanitize_url_for_logging(url)
    logger.info(f"Downloading XMLTV guide from {safe_url}...")

    if client is not None:
        response = await client.get(url, follow_redirects=True)
    else:
        client_kwargs = {}
        if settings.xmltv_fetch_timeout_sec:
            client_kwargs["timeout"] = settings.xmltv_fetch_timeout_sec
        async with httpx.AsyncClient(follow_redirects=True, **client_kwargs) as own_client:
            response = await own_client.get(url)

    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP {e.response.status_code} while downloading {safe_url}")
        raise

    if response.history:
        logger.info(f"Guide request redirected to {sanitize_url_for_logging(response.url)}")

    logger.info(f"Downloaded {len(response.content) / (1024 * 1024):.2f} MB from {safe_url}")
    return response.text
