"""
Structured logging helpers for consistent log formatting.

Provides utilities for credential-safe, compact logging of guide requests.
"""
import logging

import httpx


SENSITIVE_QUERY_PARAMS = frozenset({"username", "password"})


def sanitize_url_for_logging(url: str | httpx.URL) -> str:
    """
    Remove credentials from URL for safe logging.

    Masks userinfo and the username/password query parameters used by
    Xtream-style providers.

    Args:
        url: URL to sanitize

    Returns:
        URL string with credentials replaced by '***'
    """
    try:
        parsed = httpx.URL(url) if isinstance(url, str) else url
    except (httpx.InvalidURL, TypeError, ValueError):
        return str(url)

    if parsed.userinfo:
        parsed = parsed.copy_with(username="***", password="***")

    masked_params = [
        (key, "***" if key.lower() in SENSITIVE_QUERY_PARAMS else value)
        for key, value in parsed.params.multi_items()
    ]
    if masked_params:
        parsed = parsed.copy_with(params=httpx.QueryParams(masked_params))

    # Keep the asterisks readable rather than percent-encoded
    return str(parsed).replace("%2A%2A%2A", "***")


def log_parse_summary(
    logger: logging.Logger,
    channels_count: int,
    programmes_count: int,
    invalid_times_count: int = 0
) -> None:
    """
    Log extraction pass summary.

    Args:
        logger: Logger instance
        channels_count: Number of extracted channels
        programmes_count: Number of extracted programmes
        invalid_times_count: Number of programmes with unparseable start/stop
    """
    logger.info(f"XMLTV parsing complete: {channels_count} channels, {programmes_count} programmes")
    if invalid_times_count:
        logger.warning(
            f"{invalid_times_count} programme(s) have unparseable start/stop times and will never be scheduled"
        )


def log_query_summary(
    logger: logging.Logger,
    operation: str,
    requested: int,
    resolved: int
) -> None:
    """
    Log a batch query summary.

    Args:
        logger: Logger instance
        operation: Name of the facade operation
        requested: Number of identifiers or records requested
        resolved: Number resolved to a known channel
    """
    logger.info(f"{operation}: {resolved}/{requested} channels resolved")


def describe_error(exc: BaseException) -> str:
    """
    Describe an exception without echoing provider credentials.

    httpx errors carry the full request URL in their message, so they are
    described by type, status and sanitized URL instead.

    Args:
        exc: Exception to describe

    Returns:
        One-line description safe for logs and error responses
    """
    if not isinstance(exc, httpx.HTTPError):
        return f"{type(exc).__name__}: {exc}"

    try:
        safe_url = sanitize_url_for_logging(exc.request.url)
    except RuntimeError:
        # Raised by httpx when the error was created without a request
        return type(exc).__name__

    if isinstance(exc, httpx.HTTPStatusError):
        return f"{type(exc).__name__}: HTTP {exc.response.status_code} for {safe_url}"
    return f"{type(exc).__name__} for {safe_url}"
