"""IP reputation scoring from geolocation attributes."""

from typing import Tuple

from edgeguard.app.admission import patterns
from edgeguard.app.admission.models import GeoLocationInfo, IPPoolFeatures

PROXY_POINTS = 30
HOSTING_POINTS = 20
MOBILE_POINTS = 10
VPN_PROVIDER_POINTS = 25
CLOUD_PROVIDER_POINTS = 15
TOR_POINTS = 40

# Raw scores above this mark the address as part of a dynamic IP pool
DYNAMIC_POOL_THRESHOLD = 30

MAX_SCORE = 100


class RiskScorer:
    """Additive 0-100 risk score for a geolocated IP.

    Each signal contributes independently; the total is clamped to 100.
    Provider lists are lowercase substrings matched case-insensitively
    against the ISP and organisation names, the Tor markers against the AS
    descriptor.
    """

    def __init__(
        self,
        vpn_providers: Tuple[str, ...] = patterns.VPN_PROVIDERS,
        cloud_providers: Tuple[str, ...] = patterns.CLOUD_PROVIDERS,
        tor_markers: Tuple[str, ...] = patterns.TOR_AS_MARKERS,
    ):
        self.vpn_providers = tuple(vpn_providers)
        self.cloud_providers = tuple(cloud_providers)
        self.tor_markers = tuple(tor_markers)

    def score(self, ip: str, geo: GeoLocationInfo) -> IPPoolFeatures:
        operator = (geo.isp, geo.org)
        is_vpn = patterns.contains_any(operator, self.vpn_providers)
        is_cloud = patterns.contains_any(operator, self.cloud_providers)
        is_tor = patterns.contains_any((geo.as_,), self.tor_markers)

        raw = 0
        if geo.proxy:
            raw += PROXY_POINTS
        if geo.hosting:
            raw += HOSTING_POINTS
        if geo.mobile:
            raw += MOBILE_POINTS
        if is_vpn:
            raw += VPN_PROVIDER_POINTS
        if is_cloud:
            raw += CLOUD_PROVIDER_POINTS
        if is_tor:
            raw += TOR_POINTS

        return IPPoolFeatures(
            is_dynamic=raw > DYNAMIC_POOL_THRESHOLD,
            is_proxy=geo.proxy,
            is_vpn=is_vpn,
            is_tor=is_tor,
            is_hosting=geo.hosting,
            is_mobile=geo.mobile,
            risk_score=max(0, min(raw, MAX_SCORE)),
        )
