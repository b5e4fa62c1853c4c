"""Shared HTTP client management for connection pooling.

One ``httpx.AsyncClient`` is opened in the application lifespan and shared by
the geolocation lookup, the WeChat login exchange and the chat-completion
proxy.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from edgeguard.app.core.config import settings


_shared_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client instance.

    Raises:
        RuntimeError: If the HTTP client has not been initialized.
    """
    if _shared_http_client is None:
        raise RuntimeError(
            "HTTP client not initialized. Ensure lifespan context is active."
        )
    return _shared_http_client


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def _default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    Used in the FastAPI lifespan:

        async with init_http_client() as http_client:
            yield
    """
    global _shared_http_client

    _shared_http_client = httpx.AsyncClient(
        timeout=_default_timeout(), limits=_default_limits()
    )

    try:
        yield _shared_http_client
    finally:
        if _shared_http_client is not None:
            await _shared_http_client.aclose()
            _shared_http_client = None


def create_http_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Create a standalone HTTP client with the default pool settings.

    The caller owns the client and must close it:

        async with create_http_client(timeout=3.0) as client:
            ...
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout) if timeout is not None else _default_timeout(),
        limits=_default_limits(),
    )
