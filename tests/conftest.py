"""
Pytest configuration and shared fixtures for EPG Guide tests.
"""
from datetime import datetime, timezone
from collections.abc import Callable

import httpx
import pytest


BASE_URL = "http://provider.test:8080"
USERNAME = "alice"
PASSWORD = "s3cret"

# Programmes are deliberately out of order; the parser must sort them.
SAMPLE_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE tv SYSTEM "xmltv.dtd">
<tv generator-info-name="test-provider">
  <channel id="cnn.us">
    <display-name>CNN</display-name>
  </channel>
  <channel id="bbc1.uk">
    <display-name lang="en">BBC One</display-name>
    <display-name lang="cy">BBC Un</display-name>
    <icon src="http://img.test/bbc1.png" />
  </channel>
  <channel id="arte.fr">
    <display-name>arte</display-name>
    <icon src="http://img.test/arte.png"></icon>
  </channel>
  <programme start="20240101190000 +0000" stop="20240101200000 +0000" channel="bbc1.uk">
    <title lang="en">Drama</title>
  </programme>
  <programme start="20240101170000 +0000" stop="20240101180000 +0000" channel="bbc1.uk">
    <title lang="en">Early News</title>
    <desc lang="en">Headlines</desc>
  </programme>
  <programme start="20240101180000 +0000" stop="20240101190000 +0000" channel="bbc1.uk">
    <title lang="en">Evening Show</title>
    <desc lang="en">Talk &amp; music</desc>
  </programme>
  <programme start="20240101200000 +0100" stop="20240101220000 +0100" channel="cnn.us">
    <title>World Report</title>
  </programme>
  <programme start="20240101120000 +0000" stop="20240101130000 +0000" channel="orphan.xx">
    <title>Nobody Watches</title>
  </programme>
</tv>
"""


@pytest.fixture
def sample_xmltv() -> str:
    """XMLTV document with three channels and a handful of programmes."""
    return SAMPLE_XMLTV


@pytest.fixture
def reference_now() -> datetime:
    """18:30 UTC on 2024-01-01, inside the 'Evening Show' slot."""
    return datetime(2024, 1, 1, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_client(recorded_requests) -> Callable[..., httpx.AsyncClient]:
    """
    Factory for an httpx.AsyncClient backed by httpx.MockTransport.

    Every request is appended to ``recorded_requests``. With ``redirect_to``,
    any other URL answers 302 pointing there.
    """
    def _make_client(
        body: str = SAMPLE_XMLTV,
        status_code: int = 200,
        exc: Exception | None = None,
        redirect_to: str | None = None
    ):
        def handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            if exc is not None:
                raise exc
            if redirect_to is not None and str(request.url) != redirect_to:
                return httpx.Response(302, headers={"Location": redirect_to})
            return httpx.Response(status_code, text=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make_client
