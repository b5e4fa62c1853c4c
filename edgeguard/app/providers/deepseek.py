from typing import Any, Dict

import httpx


class DeepSeekProvider:
    """DeepSeek chat completion API client on top of the shared HTTP client."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_client: httpx.AsyncClient,
        timeout: float = 120.0,
    ):
        """Initialize DeepSeek provider.

        Args:
            base_url: The DeepSeek API base URL
            api_key: The DeepSeek API key
            http_client: Shared HTTP client
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    async def open_chat_stream(self, payload: Dict[str, Any]) -> httpx.Response:
        """Send a streaming chat completion request.

        The response is returned once the upstream status is known and its
        body has not been read yet; the caller must iterate it and then call
        ``aclose()``.

        Raises:
            httpx.HTTPStatusError: If the API returns an error status
            httpx.HTTPError: On transport failures
        """
        payload = {**payload, "stream": True}
        request = self._http_client.build_request(
            "POST",
            self._get_endpoint_url("/chat/completions"),
            headers=self.headers,
            json=payload,
            timeout=self.timeout,
        )
        resp = await self._http_client.send(request, stream=True)
        if resp.is_error:
            await resp.aread()
            await resp.aclose()
            resp.raise_for_status()
        return resp
