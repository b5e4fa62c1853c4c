"""Custom exceptions for edgeguard."""

from typing import Any, Dict, Optional

from edgeguard.app.admission.models import Reason, Verdict


class EdgeGuardException(Exception):
    """Base class for edgeguard exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class AccessDeniedError(EdgeGuardException):
    """Raised when an admission gate denies a request.

    Carries the verdict plus the response details the handler renders:
    ``details`` are merged into the JSON body, ``headers`` are added to the
    response.
    """
    reason: Reason = Reason.OK
    error: str = "Access denied"

    def __init__(
        self,
        verdict: Verdict,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.verdict = verdict
        self.status_code = verdict.status_code
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(message)

    def to_response(self, timestamp: str) -> Dict[str, Any]:
        return {
            "message": self.message,
            "error": self.error,
            "reason": self.verdict.reason.value,
            "ip": self.verdict.ip,
            **self.details,
            "timestamp": timestamp,
        }


class RateLimitExceededError(AccessDeniedError):
    """Quota for the current window exceeded. Maps to HTTP 429."""
    status_code = 429
    reason = Reason.RATE_LIMITED
    error = "Request rate limit exceeded"


class IPBlockedError(RateLimitExceededError):
    """IP is serving a block period after exceeding its quota. Maps to HTTP 429."""
    reason = Reason.BLOCKED
    error = "IP temporarily blocked"


class GeoLookupFailedError(AccessDeniedError):
    """Geolocation could not be verified. Maps to HTTP 500.

    Raised instead of guessing when the upstream provider fails.
    """
    status_code = 500
    reason = Reason.GEO_LOOKUP_FAILED
    error = "Unable to determine IP geolocation"


class RegionDeniedError(AccessDeniedError):
    """Request comes from a country outside the allow-list. Maps to HTTP 403."""
    status_code = 403
    reason = Reason.REGION_DENIED
    error = "This service is only available in supported regions"


class HighRiskDeniedError(AccessDeniedError):
    """Risk score above the threshold. Maps to HTTP 403."""
    status_code = 403
    reason = Reason.HIGH_RISK
    error = "High-risk IP characteristics detected"


class BotDetectedError(AccessDeniedError):
    """Fingerprint score below the threshold. Maps to HTTP 403."""
    status_code = 403
    reason = Reason.BOT_DETECTED
    error = "Please use a regular browser"


ACCESS_DENIED_ERRORS: Dict[Reason, type[AccessDeniedError]] = {
    cls.reason: cls
    for cls in (
        RateLimitExceededError,
        IPBlockedError,
        GeoLookupFailedError,
        RegionDeniedError,
        HighRiskDeniedError,
        BotDetectedError,
    )
}


class MalformedRequestBodyError(EdgeGuardException):
    """Raised when a POST body is not valid JSON.

    Maps to HTTP 400 Bad Request with the parser's message.
    """
    status_code = 400

    def __init__(self, detail: str, ip: Optional[str] = None):
        self.detail = detail
        self.ip = ip
        super().__init__("Failed to parse request body")


class UpstreamServiceError(EdgeGuardException):
    """Raised when an upstream API (chat completion, WeChat) fails.

    Maps to HTTP 500.
    """
    status_code = 500

    def __init__(self, service: str, detail: str, payload: Optional[Dict[str, Any]] = None):
        self.service = service
        self.detail = detail
        self.payload = payload
        super().__init__(f"{service} request failed: {detail}")
