"""Request admission: rate limiting, geolocation risk and fingerprint gates."""

from edgeguard.app.admission.fingerprint import FingerprintScorer
from edgeguard.app.admission.geo import GeoReputationClient, is_local_ip
from edgeguard.app.admission.models import (
    BrowserFingerprint,
    FingerprintAssessment,
    GeoLocationInfo,
    IPPoolFeatures,
    NetworkFingerprint,
    RateLimitDecision,
    RateLimitEntry,
    Reason,
    UserAgentOutcome,
    Verdict,
)
from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.admission.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitBackend,
    RateLimiter,
    RedisRateLimiter,
)
from edgeguard.app.admission.request_info import (
    extract_browser_fingerprint,
    extract_network_fingerprint,
    get_client_ip,
)
from edgeguard.app.admission.risk import RiskScorer

__all__ = [
    # Models
    "BrowserFingerprint",
    "FingerprintAssessment",
    "GeoLocationInfo",
    "IPPoolFeatures",
    "NetworkFingerprint",
    "RateLimitDecision",
    "RateLimitEntry",
    "Reason",
    "UserAgentOutcome",
    "Verdict",
    # Rate limiting
    "RateLimitBackend",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "RateLimiter",
    # Scoring
    "GeoReputationClient",
    "is_local_ip",
    "RiskScorer",
    "FingerprintScorer",
    # Orchestration
    "AccessDecisionPipeline",
    "get_client_ip",
    "extract_browser_fingerprint",
    "extract_network_fingerprint",
]
