"""Fingerprint-gated endpoint rejecting automated clients."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from edgeguard.app.admission.models import Verdict
from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.admission.request_info import (
    extract_browser_fingerprint,
    extract_network_fingerprint,
)
from edgeguard.app.api.dependencies import get_pipeline
from edgeguard.app.api.responses import (
    access_denied,
    cors_headers,
    iso_timestamp,
    preflight_response,
    read_json_body,
)
from edgeguard.app.core.logging import get_log_context, get_logger

router = APIRouter(tags=["admission"])
logger = get_logger(__name__)

CORS_HEADERS = cors_headers(
    methods="GET, POST, OPTIONS",
    allow_headers="Content-Type, Authorization, User-Agent",
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}

WELCOME_MESSAGE = "Welcome! Fingerprint check passed"


def _admit(request: Request, pipeline: AccessDecisionPipeline) -> Dict[str, Any]:
    """Score the request fingerprint and return the diagnostics block."""
    browser = extract_browser_fingerprint(request.headers)
    network = extract_network_fingerprint(request.headers)
    verdict: Verdict = pipeline.evaluate_fingerprint(browser, ip=network.ip)

    if not verdict.allowed:
        assessment = verdict.fingerprint
        logger.info(
            "Automated client rejected: "
            + ("known automation signature" if assessment.hard_deny else "fingerprint score too low"),
            extra=get_log_context(
                client_ip=network.ip,
                reason=verdict.reason.value,
                fingerprint_score=assessment.score,
                matched_rule=assessment.matched_rule,
                user_agent=browser.user_agent,
            ),
        )
        raise access_denied(verdict, cors=CORS_HEADERS)

    return {
        "score": verdict.fingerprint_score,
        "browser": {
            "userAgent": browser.user_agent,
            "hasModernFeatures": bool(browser.sec_fetch_dest or browser.sec_fetch_mode),
            "acceptsGzip": bool(browser.accept_encoding and "gzip" in browser.accept_encoding),
            "hasLanguage": bool(browser.accept_language),
        },
        "network": {
            "ip": network.ip,
            "viaProxy": network.via_proxy,
            "protocol": network.protocol,
        },
    }


@router.options("/api/onlyFingerprint")
async def only_fingerprint_preflight() -> Response:
    return preflight_response(CORS_HEADERS)


@router.get("/api/onlyFingerprint")
async def only_fingerprint(
    request: Request,
    pipeline: AccessDecisionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    fingerprint = _admit(request, pipeline)
    return JSONResponse(
        content={
            "method": "GET",
            "message": WELCOME_MESSAGE,
            "timestamp": iso_timestamp(),
            "fingerprint": fingerprint,
            "queryParams": dict(request.query_params),
        },
        headers={**CORS_HEADERS, **SECURITY_HEADERS},
    )


@router.post("/api/onlyFingerprint")
async def only_fingerprint_post(
    request: Request,
    pipeline: AccessDecisionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    fingerprint = _admit(request, pipeline)
    body = await read_json_body(request, ip=fingerprint["network"]["ip"])
    return JSONResponse(
        content={
            "method": "POST",
            "message": WELCOME_MESSAGE,
            "timestamp": iso_timestamp(),
            "fingerprint": fingerprint,
            "receivedData": body,
        },
        headers={**CORS_HEADERS, **SECURITY_HEADERS},
    )
