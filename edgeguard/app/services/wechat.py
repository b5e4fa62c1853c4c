"""WeChat mini-program login code exchange."""

from typing import Any, Dict

import httpx

from edgeguard.app.core.logging import get_logger
from edgeguard.app.exceptions import UpstreamServiceError

logger = get_logger(__name__)


class WeChatClient:
    """Exchanges a ``wx.login`` code for the user's openid via jscode2session."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.weixin.qq.com",
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client

    async def code_to_session(self, code: str) -> Dict[str, Any]:
        """Call jscode2session and return its JSON payload.

        Raises:
            UpstreamServiceError: On transport failure, a non-2xx status or a
                payload without ``openid``
        """
        params = {
            "appid": self.app_id,
            "secret": self.app_secret,
            "js_code": code,
            "grant_type": "authorization_code",
        }
        try:
            resp = await self._http_client.get(f"{self.base_url}/sns/jscode2session", params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"WeChat jscode2session request failed: {type(e).__name__}: {e}")
            raise UpstreamServiceError("wechat", "Internal Server Error") from e

        if not isinstance(data, dict) or not data.get("openid"):
            logger.warning(f"WeChat jscode2session returned no openid: {data}")
            raise UpstreamServiceError("wechat", "Failed to get openid", payload=data)

        return data
