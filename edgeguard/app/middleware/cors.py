"""CORS middleware that defers to routes answering their own preflights."""

from typing import Iterable

from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


class RouteScopedCORSMiddleware(CORSMiddleware):
    """CORSMiddleware skipped for paths that set their own CORS headers.

    Requests to ``exclude_paths`` go straight to the application, so the
    route's OPTIONS handler builds the preflight response and its other
    handlers keep their own ``Access-Control-*`` headers.
    """

    def __init__(self, app: ASGIApp, exclude_paths: Iterable[str] = (), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exclude_paths = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.exclude_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)
