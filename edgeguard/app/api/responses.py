"""Response helpers shared by the API routes."""

import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response

from edgeguard.app.admission.models import (
    GeoLocationInfo,
    IPPoolFeatures,
    RateLimitDecision,
    Reason,
    Verdict,
)
from edgeguard.app.exceptions import ACCESS_DENIED_ERRORS, AccessDeniedError, MalformedRequestBodyError


def cors_headers(
    methods: str = "GET, POST, PUT, DELETE, OPTIONS",
    allow_headers: str = "Content-Type, Authorization",
) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": allow_headers,
    }


DEFAULT_CORS_HEADERS = cors_headers()


def preflight_response(headers: Dict[str, str]) -> Response:
    """Empty 200 answer to an OPTIONS request."""
    return Response(status_code=200, headers=headers)


def iso_timestamp(epoch_ms: Optional[int] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T00:00:00.000Z."""
    if epoch_ms is None:
        moment = datetime.now(timezone.utc)
    else:
        moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def read_json_body(request: Request, ip: Optional[str] = None) -> Any:
    """Parse the request body as JSON.

    Raises:
        MalformedRequestBodyError: If the body is empty or not valid JSON
    """
    try:
        return await request.json()
    except ValueError as e:
        raise MalformedRequestBodyError(str(e), ip=ip) from e


def rate_limit_headers(decision: RateLimitDecision, limit: Optional[int] = None) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": iso_timestamp(decision.reset_time),
    }
    if limit is not None:
        headers["X-RateLimit-Limit"] = str(limit)
    if not decision.allowed:
        wait_ms = decision.reset_time - int(time.time() * 1000)
        headers["Retry-After"] = str(max(0, math.ceil(wait_ms / 1000)))
    return headers


def rate_limit_block(decision: RateLimitDecision) -> Dict[str, Any]:
    return {
        "remaining": decision.remaining,
        "resetTime": iso_timestamp(decision.reset_time),
    }


def geo_summary(geo: GeoLocationInfo) -> Dict[str, Any]:
    return {
        "country": geo.country,
        "countryCode": geo.country_code,
        "region": geo.region,
        "city": geo.city,
    }


def geo_block(geo: GeoLocationInfo) -> Dict[str, Any]:
    return {
        **geo_summary(geo),
        "regionCode": geo.region_code,
        "timezone": geo.timezone,
        "isp": geo.isp,
        "org": geo.org,
    }


def risk_analysis_block(features: IPPoolFeatures) -> Dict[str, Any]:
    return {
        "riskScore": features.risk_score,
        "isProxy": features.is_proxy,
        "isVPN": features.is_vpn,
        "isTor": features.is_tor,
        "isHosting": features.is_hosting,
    }


def security_analysis_block(features: IPPoolFeatures) -> Dict[str, Any]:
    return {
        **risk_analysis_block(features),
        "isDynamic": features.is_dynamic,
        "isMobile": features.is_mobile,
    }


_DENIAL_MESSAGES = {
    Reason.RATE_LIMITED: "Too many requests",
    Reason.BLOCKED: "Too many requests",
    Reason.GEO_LOOKUP_FAILED: "Geolocation verification failed",
    Reason.REGION_DENIED: "Access unavailable",
    Reason.HIGH_RISK: "Access denied",
    Reason.BOT_DETECTED: "Access denied",
}


def access_denied(
    verdict: Verdict,
    cors: Optional[Dict[str, str]] = None,
    rate_limit: Optional[int] = None,
) -> AccessDeniedError:
    """Build the exception that renders a denied verdict."""
    details: Dict[str, Any] = {}
    headers: Dict[str, str] = dict(cors if cors is not None else DEFAULT_CORS_HEADERS)

    if verdict.rate_limit is not None and verdict.reason in (Reason.RATE_LIMITED, Reason.BLOCKED):
        details.update(rate_limit_block(verdict.rate_limit))
        headers.update(rate_limit_headers(verdict.rate_limit, limit=rate_limit))
    if verdict.reason is Reason.REGION_DENIED and verdict.geo is not None:
        details["geoLocation"] = geo_summary(verdict.geo)
    if verdict.reason is Reason.HIGH_RISK and verdict.features is not None:
        details["riskAnalysis"] = risk_analysis_block(verdict.features)

    error_cls = ACCESS_DENIED_ERRORS[verdict.reason]
    return error_cls(
        verdict,
        message=_DENIAL_MESSAGES[verdict.reason],
        details=details,
        headers=headers,
    )
