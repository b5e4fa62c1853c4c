"""WeChat mini-program login: exchange a ``wx.login`` code for an openid."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from edgeguard.app.admission.request_info import get_client_ip
from edgeguard.app.api.dependencies import get_wechat_client
from edgeguard.app.api.responses import read_json_body
from edgeguard.app.services.wechat import WeChatClient

router = APIRouter(tags=["wechat"])


@router.post("/api/openId")
async def open_id(
    request: Request,
    client: WeChatClient = Depends(get_wechat_client),
) -> JSONResponse:
    body = await read_json_body(request, ip=get_client_ip(request.headers))
    code = body.get("code") if isinstance(body, dict) else None
    if not code:
        return JSONResponse(status_code=400, content={"error": "Missing code in request body"})

    session = await client.code_to_session(code)
    return JSONResponse(content={"openid": session["openid"]})
