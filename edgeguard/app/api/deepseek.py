"""Fortune-telling proxy streaming DeepSeek chat completions to the client."""

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from edgeguard.app.admission.request_info import get_client_ip
from edgeguard.app.api.dependencies import get_deepseek_provider
from edgeguard.app.api.responses import read_json_body
from edgeguard.app.core.logging import get_log_context, get_logger
from edgeguard.app.providers.deepseek import DeepSeekProvider
from edgeguard.app.services.fortune import FortuneRequest, build_fortune_payload

router = APIRouter(tags=["fortune"])
logger = get_logger(__name__)


@router.post("/api/deepseek")
async def fortune(
    request: Request,
    provider: DeepSeekProvider = Depends(get_deepseek_provider),
) -> Response:
    """Stream a fortune reading for the posted birth data.

    The upstream body is relayed as-is. Upstream failures answer 500 with a
    plain ``end:<error>`` body so streaming clients see a terminal marker.
    """
    ip = get_client_ip(request.headers)
    body = await read_json_body(request, ip=ip)
    try:
        fortune_request = FortuneRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid request", "details": e.errors(include_url=False)},
        )

    try:
        upstream = await provider.open_chat_stream(build_fortune_payload(fortune_request))
    except httpx.HTTPError as e:
        logger.error(
            f"DeepSeek request failed: {type(e).__name__}: {e}",
            extra=get_log_context(client_ip=ip),
        )
        return PlainTextResponse(f"end:{e}", status_code=500)

    return StreamingResponse(
        upstream.aiter_raw(),
        media_type="application/json",
        background=BackgroundTask(upstream.aclose),
    )
