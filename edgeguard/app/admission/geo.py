"""IP geolocation lookups against an ipapi.co compatible provider."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from edgeguard.app.admission.models import LOCAL_GEO_INFO, GeoLocationInfo
from edgeguard.app.core.http_client import create_http_client
from edgeguard.app.core.logging import get_log_context, get_logger

logger = get_logger(__name__)

UNKNOWN = "Unknown"

LOCAL_ADDRESSES = frozenset({"127.0.0.1", "::1"})
LOCAL_PREFIXES = ("192.168.", "10.")


def is_local_ip(ip: str) -> bool:
    """Loopback and the private ranges served without an upstream lookup."""
    return ip in LOCAL_ADDRESSES or ip.startswith(LOCAL_PREFIXES)


def parse_geo_payload(data: Dict[str, Any]) -> GeoLocationInfo:
    """Map a provider JSON payload onto GeoLocationInfo.

    Missing display fields become "Unknown" and missing flags become False.
    The provider reports the network operator only as ``org``, which is used
    for both the ISP and the organisation.
    """
    def text(key: str) -> str:
        value = data.get(key)
        return str(value) if value else UNKNOWN

    return GeoLocationInfo(
        country=text("country_name"),
        country_code=text("country_code"),
        region=text("region"),
        region_code=text("region_code"),
        city=text("city"),
        timezone=text("timezone"),
        isp=text("org"),
        org=text("org"),
        as_=text("asn"),
        proxy=bool(data.get("proxy") or False),
        hosting=bool(data.get("hosting") or False),
        mobile=bool(data.get("mobile") or False),
    )


class GeoReputationClient:
    """Looks up country, network operator and proxy/hosting/mobile flags of an IP.

    Private and loopback addresses resolve to a synthetic "Local" record
    without calling the provider. Any failure (transport error, timeout,
    non-2xx status, undecodable body) yields None, which callers must treat
    as "could not verify" rather than as low risk.
    """

    def __init__(
        self,
        base_url: str = "https://ipapi.co",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 3.0,
        user_agent: str = "ipcheck-api/1.0",
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self._http_client = http_client

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with create_http_client(timeout=self.timeout) as client:
            yield client

    def lookup_url(self, ip: str) -> str:
        return f"{self.base_url}/{ip}/json/"

    async def lookup(self, ip: str) -> Optional[GeoLocationInfo]:
        if is_local_ip(ip):
            return LOCAL_GEO_INFO

        logger.info(f"Looking up geolocation for {ip}", extra=get_log_context(client_ip=ip))

        try:
            async with self._client_context() as client:
                resp = await client.get(
                    self.lookup_url(ip),
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Geolocation lookup failed with HTTP {e.response.status_code}",
                extra=get_log_context(client_ip=ip),
            )
            return None
        except httpx.HTTPError as e:
            logger.error(
                f"Geolocation lookup failed: {type(e).__name__}: {e}",
                extra=get_log_context(client_ip=ip),
            )
            return None
        except ValueError as e:
            logger.error(
                f"Geolocation response is not valid JSON: {e}",
                extra=get_log_context(client_ip=ip),
            )
            return None

        if not isinstance(data, dict):
            logger.error(
                "Geolocation response is not a JSON object",
                extra=get_log_context(client_ip=ip),
            )
            return None

        geo = parse_geo_payload(data)
        logger.debug(f"Geolocation for {ip}: {geo}", extra=get_log_context(client_ip=ip))
        return geo
