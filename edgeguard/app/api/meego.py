"""Echo endpoint returning what the client sent."""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from edgeguard.app.admission.request_info import get_client_ip
from edgeguard.app.api.responses import cors_headers, iso_timestamp, preflight_response, read_json_body
from edgeguard.app.core.logging import get_logger

router = APIRouter(tags=["echo"])
logger = get_logger(__name__)

CORS_HEADERS = cors_headers()

ECHO_MESSAGE = "Hello from MEEGO API!"


@router.options("/api/meego")
async def meego_preflight() -> Response:
    return preflight_response(CORS_HEADERS)


@router.get("/api/meego")
async def meego(request: Request) -> JSONResponse:
    query_params = dict(request.query_params)
    logger.debug(f"Echo GET {request.url}: {query_params}")
    return JSONResponse(
        content={
            "method": "GET",
            "message": ECHO_MESSAGE,
            "timestamp": iso_timestamp(),
            "queryParams": query_params,
            "headers": dict(request.headers),
            "info": "Test endpoint accepting GET and POST requests",
        },
        headers=CORS_HEADERS,
    )


@router.post("/api/meego")
async def meego_post(request: Request) -> JSONResponse:
    body = await read_json_body(request, ip=get_client_ip(request.headers))
    logger.debug(f"Echo POST {request.url}: {body}")
    return JSONResponse(
        content={
            "method": "POST",
            "message": ECHO_MESSAGE,
            "timestamp": iso_timestamp(),
            "receivedData": body,
            "headers": dict(request.headers),
            "info": "POST data received",
        },
        headers=CORS_HEADERS,
    )
