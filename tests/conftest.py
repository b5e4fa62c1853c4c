"""Shared fixtures."""

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from edgeguard.app.admission.models import GeoLocationInfo
from edgeguard.app.admission.rate_limiter import RateLimiter
from edgeguard.app.main import create_app

US_PAYLOAD = {
    "ip": "8.8.8.8",
    "city": "Mountain View",
    "region": "California",
    "region_code": "CA",
    "country_code": "US",
    "country_name": "United States",
    "timezone": "America/Los_Angeles",
    "asn": "AS7922",
    "org": "Comcast Cable Communications",
}

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Accept": "text/html,application/xhtml+xml",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Referer": "https://example.com/",
    "DNT": "1",
}


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def _make_geo(**overrides) -> GeoLocationInfo:
    values = dict(
        country="United States",
        country_code="US",
        region="California",
        region_code="CA",
        city="Mountain View",
        timezone="America/Los_Angeles",
        isp="Comcast Cable",
        org="Comcast Cable",
        as_="AS7922",
    )
    values.update(overrides)
    return GeoLocationInfo(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        window_ms=60_000,
        max_requests=3,
        block_duration_ms=300_000,
        use_redis=False,
        clock=clock,
    )


@pytest.fixture
def app(rate_limiter: RateLimiter):
    return create_app(rate_limiter=rate_limiter)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_geo():
    """Factory for GeoLocationInfo records, US/Comcast by default."""
    return _make_geo


@pytest.fixture
def us_payload() -> dict:
    return dict(US_PAYLOAD)


@pytest.fixture
def browser_headers() -> dict:
    return dict(BROWSER_HEADERS)
