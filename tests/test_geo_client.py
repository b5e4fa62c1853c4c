"""Tests for the geolocation client."""

import httpx
import pytest
import respx
from httpx import Response

from edgeguard.app.admission.geo import GeoReputationClient, is_local_ip, parse_geo_payload
from edgeguard.app.admission.models import LOCAL_GEO_INFO


class TestIsLocalIp:
    """Tests for the local address shortcut."""

    @pytest.mark.parametrize("ip", ["127.0.0.1", "::1", "192.168.1.20", "10.0.0.7"])
    def test_local_addresses(self, ip):
        assert is_local_ip(ip) is True

    @pytest.mark.parametrize("ip", ["8.8.8.8", "172.16.0.1", "100.10.0.1", "unknown"])
    def test_public_addresses(self, ip):
        assert is_local_ip(ip) is False


class TestParseGeoPayload:
    """Tests for mapping provider payloads."""

    def test_maps_provider_fields(self, us_payload):
        """Operator name fills both isp and org; asn fills the AS descriptor."""
        geo = parse_geo_payload(us_payload)

        assert geo.country == "United States"
        assert geo.country_code == "US"
        assert geo.region_code == "CA"
        assert geo.isp == "Comcast Cable Communications"
        assert geo.org == "Comcast Cable Communications"
        assert geo.as_ == "AS7922"
        assert geo.proxy is False
        assert geo.hosting is False
        assert geo.mobile is False

    def test_missing_fields_default_to_unknown(self):
        geo = parse_geo_payload({"country_code": "DE"})

        assert geo.country_code == "DE"
        assert geo.country == "Unknown"
        assert geo.city == "Unknown"
        assert geo.isp == "Unknown"
        assert geo.as_ == "Unknown"

    def test_flags_are_read_when_present(self):
        geo = parse_geo_payload({"country_code": "US", "proxy": True, "hosting": True, "mobile": None})

        assert geo.proxy is True
        assert geo.hosting is True
        assert geo.mobile is False


class TestGeoReputationClient:
    """Tests for lookups against the provider."""

    @pytest.fixture
    def geo_client(self):
        return GeoReputationClient(base_url="https://ipapi.co", timeout=3.0)

    @pytest.mark.asyncio
    async def test_local_ip_skips_provider(self, geo_client):
        """Local addresses resolve without any HTTP call."""
        with respx.mock(assert_all_called=False) as router:
            route = router.get(url__startswith="https://ipapi.co/")
            geo = await geo_client.lookup("127.0.0.1")

        assert geo is LOCAL_GEO_INFO
        assert geo.is_local is True
        assert route.called is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_successful_lookup(self, geo_client, us_payload):
        """A 2xx JSON response is parsed into GeoLocationInfo."""
        route = respx.get("https://ipapi.co/8.8.8.8/json/").mock(
            return_value=Response(200, json=us_payload)
        )

        geo = await geo_client.lookup("8.8.8.8")

        assert geo is not None
        assert geo.country_code == "US"
        assert geo.city == "Mountain View"
        assert route.calls.last.request.headers["User-Agent"] == "ipcheck-api/1.0"

    @pytest.mark.asyncio
    @respx.mock
    async def test_shared_client_is_used(self, us_payload):
        """An injected httpx client is used instead of a per-call one."""
        respx.get("https://ipapi.co/8.8.8.8/json/").mock(return_value=Response(200, json=us_payload))

        async with httpx.AsyncClient() as http_client:
            geo_client = GeoReputationClient(http_client=http_client)
            geo = await geo_client.lookup("8.8.8.8")
            assert http_client.is_closed is False

        assert geo.country_code == "US"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_returns_none(self, geo_client):
        """Rate limited or failing providers yield None."""
        respx.get("https://ipapi.co/8.8.8.8/json/").mock(return_value=Response(429, text="Too many"))

        assert await geo_client.lookup("8.8.8.8") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_returns_none(self, geo_client):
        respx.get("https://ipapi.co/8.8.8.8/json/").mock(side_effect=httpx.ReadTimeout("timed out"))

        assert await geo_client.lookup("8.8.8.8") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_returns_none(self, geo_client):
        respx.get("https://ipapi.co/8.8.8.8/json/").mock(return_value=Response(200, text="<html>"))

        assert await geo_client.lookup("8.8.8.8") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_object_json_returns_none(self, geo_client):
        respx.get("https://ipapi.co/8.8.8.8/json/").mock(return_value=Response(200, json=["US"]))

        assert await geo_client.lookup("8.8.8.8") is None

    def test_lookup_url_strips_trailing_slash(self):
        client = GeoReputationClient(base_url="https://geo.example.com/")
        assert client.lookup_url("1.2.3.4") == "https://geo.example.com/1.2.3.4/json/"
