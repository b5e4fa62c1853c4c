"""IP check endpoint: rate limit, country gate and IP risk scoring."""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.admission.request_info import get_client_ip
from edgeguard.app.api.dependencies import get_pipeline
from edgeguard.app.api.responses import (
    access_denied,
    cors_headers,
    geo_block,
    iso_timestamp,
    preflight_response,
    rate_limit_block,
    rate_limit_headers,
    security_analysis_block,
)
from edgeguard.app.core.logging import get_log_context, get_logger

router = APIRouter(tags=["admission"])
logger = get_logger(__name__)

CORS_HEADERS = cors_headers()


@router.options("/api/ipCheck")
async def ip_check_preflight() -> Response:
    return preflight_response(CORS_HEADERS)


@router.get("/api/ipCheck")
async def ip_check(
    request: Request,
    pipeline: AccessDecisionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Admit the request only if it passes every IP gate.

    Returns 429 when rate limited or blocked, 500 when geolocation fails,
    403 for a disallowed country or a high risk score, 200 with the
    diagnostics otherwise.
    """
    ip = get_client_ip(request.headers)
    verdict = await pipeline.evaluate(ip)
    limit = pipeline.rate_limiter.max_requests

    if not verdict.allowed:
        raise access_denied(verdict, cors=CORS_HEADERS, rate_limit=limit)

    logger.info(
        "IP check passed",
        extra=get_log_context(client_ip=ip, reason=verdict.reason.value, risk_score=verdict.risk_score),
    )

    return JSONResponse(
        content={
            "method": "GET",
            "message": "Welcome! All checks passed",
            "timestamp": iso_timestamp(),
            "ip": ip,
            "rateLimit": rate_limit_block(verdict.rate_limit),
            "geoLocation": geo_block(verdict.geo),
            "securityAnalysis": security_analysis_block(verdict.features),
            "queryParams": dict(request.query_params),
        },
        headers={**CORS_HEADERS, **rate_limit_headers(verdict.rate_limit, limit=limit)},
    )
