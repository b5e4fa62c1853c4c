"""Admission data models.

Dataclasses for rate limit state, geolocation snapshots, derived risk
features, browser fingerprints and pipeline verdicts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class RateLimitEntry:
    """Per-IP fixed window state.

    Timestamps are epoch milliseconds. ``first_request_at`` marks the start of
    the current window and is the reference point of the block period.
    """
    count: int
    window_reset_at: int
    first_request_at: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_time: int  # epoch milliseconds
    blocked: bool = False


@dataclass(frozen=True)
class GeoLocationInfo:
    """Geolocation and network attributes of an IP address."""
    country: str
    country_code: str
    region: str
    region_code: str
    city: str
    timezone: str
    isp: str
    org: str
    as_: str
    proxy: bool = False
    hosting: bool = False
    mobile: bool = False

    @property
    def is_local(self) -> bool:
        return self.country_code == LOCAL_COUNTRY_CODE


LOCAL_COUNTRY_CODE = "LOCAL"

LOCAL_GEO_INFO = GeoLocationInfo(
    country="Local",
    country_code=LOCAL_COUNTRY_CODE,
    region="Local",
    region_code=LOCAL_COUNTRY_CODE,
    city="Local",
    timezone="Local",
    isp="Local Network",
    org="Local Network",
    as_="Local Network",
)


@dataclass(frozen=True)
class IPPoolFeatures:
    """Risk features derived from a GeoLocationInfo."""
    is_dynamic: bool
    is_proxy: bool
    is_vpn: bool
    is_tor: bool
    is_hosting: bool
    is_mobile: bool
    risk_score: int


@dataclass(frozen=True)
class BrowserFingerprint:
    """Browser-identifying request headers; any of them may be missing."""
    user_agent: Optional[str] = None
    accept_language: Optional[str] = None
    accept_encoding: Optional[str] = None
    accept: Optional[str] = None
    sec_fetch_dest: Optional[str] = None
    sec_fetch_mode: Optional[str] = None
    sec_fetch_site: Optional[str] = None
    referer: Optional[str] = None
    dnt: Optional[str] = None

    @property
    def has_sec_fetch(self) -> bool:
        return bool(self.sec_fetch_dest or self.sec_fetch_mode or self.sec_fetch_site)


@dataclass(frozen=True)
class NetworkFingerprint:
    """Connection-level attributes reported alongside a browser fingerprint."""
    ip: str
    via_proxy: bool
    protocol: str
    connection_type: Optional[str] = None


class UserAgentOutcome(str, Enum):
    """How the user agent was classified by the fingerprint rules."""
    MISSING = "missing"
    AUTOMATION = "automation"
    SUSPICIOUS = "suspicious"
    PLAUSIBLE = "plausible"


@dataclass(frozen=True)
class FingerprintAssessment:
    """Score of a fingerprint plus the user agent rule that decided it.

    ``outcome`` is AUTOMATION when a known automation signature matched; the
    score is then 0 regardless of the other headers.
    """
    score: int
    outcome: UserAgentOutcome
    matched_rule: Optional[str] = None

    @property
    def hard_deny(self) -> bool:
        return self.outcome is UserAgentOutcome.AUTOMATION


class Reason(str, Enum):
    """Machine-readable reason codes of a verdict."""
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    BLOCKED = "blocked"
    GEO_LOOKUP_FAILED = "geo_lookup_failed"
    REGION_DENIED = "region_denied"
    HIGH_RISK = "high_risk"
    BOT_DETECTED = "bot_detected"


@dataclass
class Verdict:
    """Outcome of an admission pipeline run.

    Diagnostics that were not computed (because an earlier gate denied the
    request) are left as None.
    """
    allowed: bool
    status_code: int
    reason: Reason
    ip: Optional[str] = None
    rate_limit: Optional[RateLimitDecision] = None
    geo: Optional[GeoLocationInfo] = None
    features: Optional[IPPoolFeatures] = None
    fingerprint: Optional[FingerprintAssessment] = None

    @property
    def risk_score(self) -> Optional[int]:
        return self.features.risk_score if self.features else None

    @property
    def fingerprint_score(self) -> Optional[int]:
        return self.fingerprint.score if self.fingerprint else None
