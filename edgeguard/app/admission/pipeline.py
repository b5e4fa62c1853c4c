"""Admission pipeline combining rate limiting, geolocation and scoring.

IP gate:          rate limit -> geo lookup -> country gate -> risk score
Region gate:      geo lookup -> country gate
Fingerprint gate: fingerprint score (no rate limiting, no geolocation)
"""

from typing import Iterable, Optional

from edgeguard.app.admission.fingerprint import FingerprintScorer
from edgeguard.app.admission.geo import GeoReputationClient
from edgeguard.app.admission.models import (
    BrowserFingerprint,
    GeoLocationInfo,
    Reason,
    Verdict,
)
from edgeguard.app.admission.rate_limiter import RateLimiter
from edgeguard.app.admission.risk import RiskScorer
from edgeguard.app.core.logging import get_log_context, get_logger

logger = get_logger(__name__)


class AccessDecisionPipeline:
    """Produces allow/deny verdicts for inbound requests.

    Args:
        rate_limiter: Per-IP rate limiter shared across requests
        geo_client: Geolocation lookup
        risk_scorer: IP reputation scorer
        fingerprint_scorer: Browser fingerprint scorer
        allowed_country_codes: Country codes admitted by the country gate
        high_risk_threshold: Risk scores strictly above this are denied
        fingerprint_min_score: Fingerprint scores strictly below this are denied
        allow_local_network: Admit private/loopback addresses through the
            country gate instead of denying their synthetic "LOCAL" country
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        geo_client: GeoReputationClient,
        risk_scorer: Optional[RiskScorer] = None,
        fingerprint_scorer: Optional[FingerprintScorer] = None,
        allowed_country_codes: Iterable[str] = ("US",),
        high_risk_threshold: int = 70,
        fingerprint_min_score: int = 50,
        allow_local_network: bool = False,
    ):
        self.rate_limiter = rate_limiter
        self.geo_client = geo_client
        self.risk_scorer = risk_scorer or RiskScorer()
        self.fingerprint_scorer = fingerprint_scorer or FingerprintScorer()
        self.allowed_country_codes = frozenset(c.upper() for c in allowed_country_codes)
        self.high_risk_threshold = high_risk_threshold
        self.fingerprint_min_score = fingerprint_min_score
        self.allow_local_network = allow_local_network

    def _country_allowed(self, geo: GeoLocationInfo) -> bool:
        if geo.is_local:
            return self.allow_local_network
        return geo.country_code.upper() in self.allowed_country_codes

    def _deny(self, verdict: Verdict) -> Verdict:
        logger.info(
            f"Request denied: {verdict.reason.value}",
            extra=get_log_context(
                client_ip=verdict.ip,
                reason=verdict.reason.value,
                risk_score=verdict.risk_score,
                fingerprint_score=verdict.fingerprint_score,
            ),
        )
        return verdict

    async def evaluate(self, ip: str) -> Verdict:
        """Run the full IP gate."""
        rate_limit = await self.rate_limiter.check(ip)
        if not rate_limit.allowed:
            reason = Reason.BLOCKED if rate_limit.blocked else Reason.RATE_LIMITED
            return self._deny(Verdict(
                allowed=False, status_code=429, reason=reason, ip=ip, rate_limit=rate_limit,
            ))

        geo = await self.geo_client.lookup(ip)
        if geo is None:
            return self._deny(Verdict(
                allowed=False, status_code=500, reason=Reason.GEO_LOOKUP_FAILED,
                ip=ip, rate_limit=rate_limit,
            ))

        if not self._country_allowed(geo):
            return self._deny(Verdict(
                allowed=False, status_code=403, reason=Reason.REGION_DENIED,
                ip=ip, rate_limit=rate_limit, geo=geo,
            ))

        features = self.risk_scorer.score(ip, geo)
        if features.risk_score > self.high_risk_threshold:
            return self._deny(Verdict(
                allowed=False, status_code=403, reason=Reason.HIGH_RISK,
                ip=ip, rate_limit=rate_limit, geo=geo, features=features,
            ))

        return Verdict(
            allowed=True, status_code=200, reason=Reason.OK,
            ip=ip, rate_limit=rate_limit, geo=geo, features=features,
        )

    async def evaluate_region(self, ip: str) -> Verdict:
        """Run only the country gate."""
        geo = await self.geo_client.lookup(ip)
        if geo is None:
            return self._deny(Verdict(
                allowed=False, status_code=500, reason=Reason.GEO_LOOKUP_FAILED, ip=ip,
            ))

        if not self._country_allowed(geo):
            return self._deny(Verdict(
                allowed=False, status_code=403, reason=Reason.REGION_DENIED, ip=ip, geo=geo,
            ))

        return Verdict(allowed=True, status_code=200, reason=Reason.OK, ip=ip, geo=geo)

    def evaluate_fingerprint(
        self, fingerprint: BrowserFingerprint, ip: Optional[str] = None
    ) -> Verdict:
        """Run only the fingerprint gate."""
        assessment = self.fingerprint_scorer.assess(fingerprint)
        if assessment.score < self.fingerprint_min_score:
            return self._deny(Verdict(
                allowed=False, status_code=403, reason=Reason.BOT_DETECTED,
                ip=ip, fingerprint=assessment,
            ))

        return Verdict(
            allowed=True, status_code=200, reason=Reason.OK, ip=ip, fingerprint=assessment,
        )
