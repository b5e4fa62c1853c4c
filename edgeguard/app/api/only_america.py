"""Country-gated endpoint; only requests geolocated to an allowed country pass."""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.admission.request_info import get_client_ip
from edgeguard.app.api.dependencies import get_pipeline
from edgeguard.app.api.responses import (
    access_denied,
    cors_headers,
    iso_timestamp,
    preflight_response,
    read_json_body,
)
from edgeguard.app.core.logging import get_logger

router = APIRouter(tags=["admission"])
logger = get_logger(__name__)

CORS_HEADERS = cors_headers()

WELCOME_MESSAGE = "Welcome! Region check passed"


async def _admit(request: Request, pipeline: AccessDecisionPipeline) -> str:
    ip = get_client_ip(request.headers)
    verdict = await pipeline.evaluate_region(ip)
    if not verdict.allowed:
        raise access_denied(verdict, cors=CORS_HEADERS)
    return ip


@router.options("/api/onlyAmerica")
async def only_america_preflight() -> Response:
    return preflight_response(CORS_HEADERS)


@router.get("/api/onlyAmerica")
async def only_america(
    request: Request,
    pipeline: AccessDecisionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    ip = await _admit(request, pipeline)
    return JSONResponse(
        content={
            "method": "GET",
            "message": WELCOME_MESSAGE,
            "timestamp": iso_timestamp(),
            "ip": ip,
            "queryParams": dict(request.query_params),
        },
        headers=CORS_HEADERS,
    )


@router.post("/api/onlyAmerica")
async def only_america_post(
    request: Request,
    pipeline: AccessDecisionPipeline = Depends(get_pipeline),
) -> JSONResponse:
    ip = await _admit(request, pipeline)
    body = await read_json_body(request, ip=ip)
    logger.debug(f"Received body: {body}")
    return JSONResponse(
        content={
            "method": "POST",
            "message": WELCOME_MESSAGE,
            "timestamp": iso_timestamp(),
            "ip": ip,
            "receivedData": body,
        },
        headers=CORS_HEADERS,
    )
