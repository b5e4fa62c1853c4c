"""Route tests for the admission-gated endpoints."""

import pytest
import respx
from fastapi.testclient import TestClient
from httpx import Response

from edgeguard.app.core.config import settings
from edgeguard.app.main import create_app

GEO_8888 = "https://ipapi.co/8.8.8.8/json/"
GEO_1234 = "https://ipapi.co/1.2.3.4/json/"

US_CLIENT = {"X-Forwarded-For": "8.8.8.8"}
OTHER_CLIENT = {"X-Forwarded-For": "1.2.3.4"}


class TestIpCheck:
    """Tests for GET /api/ipCheck."""

    @respx.mock
    def test_allowed(self, client, us_payload):
        respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))

        resp = client.get("/api/ipCheck?ref=home", headers=US_CLIENT)

        assert resp.status_code == 200
        data = resp.json()
        assert data["method"] == "GET"
        assert data["ip"] == "8.8.8.8"
        assert data["timestamp"].endswith("Z")
        assert data["rateLimit"]["remaining"] == 2
        assert data["geoLocation"]["countryCode"] == "US"
        assert data["geoLocation"]["isp"] == "Comcast Cable Communications"
        assert data["securityAnalysis"]["riskScore"] == 0
        assert data["securityAnalysis"]["isDynamic"] is False
        assert data["queryParams"] == {"ref": "home"}
        assert resp.headers["X-RateLimit-Remaining"] == "2"
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "X-Request-ID" in resp.headers

    @respx.mock
    def test_rate_limited_then_blocked(self, client, us_payload):
        route = respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))
        for _ in range(3):
            assert client.get("/api/ipCheck", headers=US_CLIENT).status_code == 200

        limited = client.get("/api/ipCheck", headers=US_CLIENT)
        assert limited.status_code == 429
        body = limited.json()
        assert body["reason"] == "rate_limited"
        assert body["error"] == "Request rate limit exceeded"
        assert body["remaining"] == 0
        assert body["resetTime"].endswith("Z")
        assert "Retry-After" in limited.headers
        assert limited.headers["X-RateLimit-Remaining"] == "0"

        blocked = client.get("/api/ipCheck", headers=US_CLIENT)
        assert blocked.status_code == 429
        assert blocked.json()["reason"] == "blocked"
        assert blocked.json()["error"] == "IP temporarily blocked"

        # Denied requests never reach the geolocation provider
        assert route.call_count == 3

    @respx.mock
    def test_geo_failure(self, client):
        respx.get(GEO_8888).mock(return_value=Response(503))

        resp = client.get("/api/ipCheck", headers=US_CLIENT)

        assert resp.status_code == 500
        body = resp.json()
        assert body["reason"] == "geo_lookup_failed"
        assert body["ip"] == "8.8.8.8"

    @respx.mock
    def test_region_denied(self, client, us_payload):
        us_payload.update(country_code="CN", country_name="China", region="Beijing", city="Beijing")
        respx.get(GEO_1234).mock(return_value=Response(200, json=us_payload))

        resp = client.get("/api/ipCheck", headers=OTHER_CLIENT)

        assert resp.status_code == 403
        body = resp.json()
        assert body["reason"] == "region_denied"
        assert body["geoLocation"] == {
            "country": "China",
            "countryCode": "CN",
            "region": "Beijing",
            "city": "Beijing",
        }

    @respx.mock
    def test_high_risk(self, client, us_payload):
        us_payload.update(org="NordVPN S.A.", proxy=True, hosting=True)
        respx.get(GEO_1234).mock(return_value=Response(200, json=us_payload))

        resp = client.get("/api/ipCheck", headers=OTHER_CLIENT)

        assert resp.status_code == 403
        body = resp.json()
        assert body["reason"] == "high_risk"
        assert body["riskAnalysis"]["riskScore"] == 75
        assert body["riskAnalysis"]["isVPN"] is True

    def test_local_address_denied_without_lookup(self, client):
        with respx.mock(assert_all_called=False) as router:
            route = router.get(url__startswith="https://ipapi.co/")
            resp = client.get("/api/ipCheck")

        assert resp.status_code == 403
        assert resp.json()["reason"] == "region_denied"
        assert resp.json()["geoLocation"]["countryCode"] == "LOCAL"
        assert route.called is False

    def test_preflight(self, client):
        resp = client.options("/api/ipCheck")

        assert resp.status_code == 200
        assert resp.content == b""
        assert resp.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"


class TestOnlyAmerica:
    """Tests for /api/onlyAmerica."""

    @respx.mock
    def test_get_allowed(self, client, us_payload):
        respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))

        resp = client.get("/api/onlyAmerica?x=1", headers=US_CLIENT)

        assert resp.status_code == 200
        assert resp.json()["queryParams"] == {"x": "1"}
        assert resp.json()["ip"] == "8.8.8.8"

    @respx.mock
    def test_not_rate_limited(self, client, us_payload):
        respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))

        for _ in range(6):
            assert client.get("/api/onlyAmerica", headers=US_CLIENT).status_code == 200

    @respx.mock
    def test_post_echoes_body(self, client, us_payload):
        respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))

        resp = client.post("/api/onlyAmerica", json={"name": "test"}, headers=US_CLIENT)

        assert resp.status_code == 200
        assert resp.json()["method"] == "POST"
        assert resp.json()["receivedData"] == {"name": "test"}

    @respx.mock
    def test_post_invalid_json(self, client, us_payload):
        respx.get(GEO_8888).mock(return_value=Response(200, json=us_payload))

        resp = client.post(
            "/api/onlyAmerica",
            content=b"{not json",
            headers={**US_CLIENT, "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        body = resp.json()
        assert body["message"] == "Failed to parse request body"
        assert body["ip"] == "8.8.8.8"
        assert body["info"] == "Please send valid JSON data"

    @respx.mock
    def test_region_denied(self, client, us_payload):
        us_payload.update(country_code="DE", country_name="Germany")
        respx.get(GEO_1234).mock(return_value=Response(200, json=us_payload))

        resp = client.get("/api/onlyAmerica", headers=OTHER_CLIENT)

        assert resp.status_code == 403
        assert resp.json()["reason"] == "region_denied"
        assert resp.json()["geoLocation"]["countryCode"] == "DE"

    @respx.mock
    def test_geo_failure_is_server_error(self, client):
        respx.get(GEO_8888).mock(return_value=Response(200, text="not json"))

        resp = client.get("/api/onlyAmerica", headers=US_CLIENT)

        assert resp.status_code == 500
        assert resp.json()["reason"] == "geo_lookup_failed"


class TestOnlyFingerprint:
    """Tests for /api/onlyFingerprint."""

    @respx.mock
    def test_browser_allowed(self, client, browser_headers):
        resp = client.get(
            "/api/onlyFingerprint",
            headers={**browser_headers, "X-Forwarded-For": "203.0.113.7", "X-Forwarded-Proto": "https"},
        )

        assert resp.status_code == 200
        fingerprint = resp.json()["fingerprint"]
        assert fingerprint["score"] == 100
        assert fingerprint["browser"]["hasModernFeatures"] is True
        assert fingerprint["browser"]["acceptsGzip"] is True
        assert fingerprint["browser"]["hasLanguage"] is True
        assert fingerprint["network"] == {"ip": "203.0.113.7", "viaProxy": False, "protocol": "https"}
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["X-XSS-Protection"] == "1; mode=block"

    @respx.mock
    def test_network_defaults(self, client, browser_headers):
        resp = client.get("/api/onlyFingerprint", headers={**browser_headers, "Via": "1.1 cache"})

        network = resp.json()["fingerprint"]["network"]
        assert network["ip"] == "unknown"
        assert network["viaProxy"] is True
        assert network["protocol"] == "unknown"

    @respx.mock
    def test_automation_denied(self, client, browser_headers):
        resp = client.get("/api/onlyFingerprint", headers={**browser_headers, "User-Agent": "curl/8.4.0"})

        assert resp.status_code == 403
        body = resp.json()
        assert body["reason"] == "bot_detected"
        assert body["error"] == "Please use a regular browser"

    @respx.mock
    def test_default_client_headers_denied(self, client):
        """A bare HTTP client does not look like a browser."""
        resp = client.get("/api/onlyFingerprint")

        assert resp.status_code == 403
        assert resp.json()["reason"] == "bot_detected"

    @respx.mock
    def test_post_echoes_body(self, client, browser_headers):
        resp = client.post("/api/onlyFingerprint", json={"a": [1, 2]}, headers=browser_headers)

        assert resp.status_code == 200
        assert resp.json()["receivedData"] == {"a": [1, 2]}

    def test_preflight_allows_user_agent_header(self, client):
        resp = client.options("/api/onlyFingerprint")

        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"
        assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization, User-Agent"


class TestBrowserPreflight:
    """Preflights carrying Origin and Access-Control-Request-Method reach the route."""

    @pytest.mark.parametrize(
        ("path", "methods", "allowed_headers"),
        [
            ("/api/ipCheck", "GET, POST, PUT, DELETE, OPTIONS", "Content-Type, Authorization"),
            ("/api/onlyAmerica", "GET, POST, PUT, DELETE, OPTIONS", "Content-Type, Authorization"),
            ("/api/onlyFingerprint", "GET, POST, OPTIONS", "Content-Type, Authorization, User-Agent"),
        ],
    )
    def test_route_headers_are_returned(self, client, path, methods, allowed_headers):
        resp = client.options(
            path,
            headers={"Origin": "https://a.example", "Access-Control-Request-Method": "GET"},
        )

        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert resp.headers["Access-Control-Allow-Methods"] == methods
        assert resp.headers["Access-Control-Allow-Headers"] == allowed_headers

    def test_narrowed_origins_do_not_reject_gated_preflight(self, monkeypatch, rate_limiter):
        monkeypatch.setattr(settings, "cors_origins", ["https://allowed.example"])

        with TestClient(create_app(rate_limiter=rate_limiter)) as client:
            resp = client.options(
                "/api/onlyFingerprint",
                headers={"Origin": "https://other.example", "Access-Control-Request-Method": "POST"},
            )

        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_other_routes_keep_global_cors(self, client):
        resp = client.options(
            "/api/openId",
            headers={"Origin": "https://a.example", "Access-Control-Request-Method": "POST"},
        )

        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert resp.headers["Access-Control-Max-Age"] == "600"
