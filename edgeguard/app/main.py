import asyncio
import contextlib
import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from edgeguard.app.admission.geo import GeoReputationClient
from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.admission.rate_limiter import RateLimiter
from edgeguard.app.api import ROUTERS
from edgeguard.app.api.responses import DEFAULT_CORS_HEADERS, iso_timestamp
from edgeguard.app.core.config import settings
from edgeguard.app.core.http_client import init_http_client
from edgeguard.app.core.logging import get_logger, setup_logging
from edgeguard.app.exceptions import (
    AccessDeniedError,
    MalformedRequestBodyError,
    UpstreamServiceError,
)
from edgeguard.app.middleware.cors import RouteScopedCORSMiddleware
from edgeguard.app.middleware.request_id import RequestIdMiddleware
from edgeguard.app.providers.deepseek import DeepSeekProvider
from edgeguard.app.services.wechat import WeChatClient


def create_app(rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        rate_limiter: Rate limiter to share across requests; built from
            settings when omitted

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the admission services on startup and release them on shutdown."""
        limiter = rate_limiter or RateLimiter.from_settings()

        async with init_http_client() as http_client:
            geo_client = GeoReputationClient(
                base_url=settings.geo_api_base_url,
                http_client=http_client,
                timeout=settings.geo_timeout_seconds,
                user_agent=settings.geo_user_agent,
            )
            app.state.rate_limiter = limiter
            app.state.pipeline = AccessDecisionPipeline(
                rate_limiter=limiter,
                geo_client=geo_client,
                allowed_country_codes=settings.allowed_country_codes,
                high_risk_threshold=settings.high_risk_threshold,
                fingerprint_min_score=settings.fingerprint_min_score,
                allow_local_network=settings.geo_allow_local_network,
            )
            app.state.deepseek_provider = DeepSeekProvider(
                base_url=settings.deepseek_base_url,
                api_key=settings.deepseek_api_key,
                http_client=http_client,
                timeout=settings.deepseek_timeout,
            )
            app.state.wechat_client = WeChatClient(
                app_id=settings.wechat_app_id,
                app_secret=settings.wechat_app_secret,
                http_client=http_client,
                base_url=settings.wechat_api_base_url,
            )

            cleanup_task = asyncio.create_task(
                limiter.run_cleanup(settings.rate_limit_cleanup_interval_seconds)
            )

            logger.info(
                "Application startup complete",
                extra={
                    "rate_limit_backend": limiter.backend_name,
                    "allowed_country_codes": settings.allowed_country_codes,
                    "debug_mode": settings.debug,
                },
            )

            try:
                yield
            finally:
                cleanup_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cleanup_task
                await limiter.close()

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="EdgeGuard",
        description="Admission gates for HTTP APIs: rate limiting, geolocation and fingerprint checks",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routes with an OPTIONS handler answer their own preflights
    own_preflight = [
        route.path
        for router in ROUTERS
        for route in router.routes
        if isinstance(route, APIRoute) and "OPTIONS" in route.methods
    ]

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        RouteScopedCORSMiddleware,
        exclude_paths=own_preflight,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Liveness probe with the rate limiter backend in use."""
        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        components: dict[str, Any] = {}
        if limiter is not None:
            rate_limit: dict[str, Any] = {"status": "ok", "backend": limiter.backend_name}
            if limiter.backend_name == "memory":
                rate_limit["tracked_ips"] = len(limiter.backend)
            components["rate_limiter"] = rate_limit
        return {"status": "ok", "components": components}

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
        """Render a denied admission verdict."""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(iso_timestamp()),
            headers=exc.headers,
        )

    @app.exception_handler(MalformedRequestBodyError)
    async def malformed_body_handler(request: Request, exc: MalformedRequestBodyError) -> JSONResponse:
        """Handle MalformedRequestBodyError and return HTTP 400 response."""
        content: dict[str, Any] = {
            "method": request.method,
            "message": exc.message,
            "error": exc.detail,
        }
        if exc.ip:
            content["ip"] = exc.ip
        content["timestamp"] = iso_timestamp()
        content["info"] = "Please send valid JSON data"
        return JSONResponse(status_code=400, content=content, headers=DEFAULT_CORS_HEADERS)

    @app.exception_handler(UpstreamServiceError)
    async def upstream_error_handler(request: Request, exc: UpstreamServiceError) -> JSONResponse:
        """Handle UpstreamServiceError and return HTTP 500 response."""
        content: dict[str, Any] = {"error": exc.detail}
        if exc.payload is not None:
            content["details"] = exc.payload
        return JSONResponse(status_code=exc.status_code, content=content, headers=DEFAULT_CORS_HEADERS)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns the traceback to the client; debug mode adds the
        exception message and type.
        """
        request_id = getattr(request.state, "request_id", "unknown")

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc(),
            },
        )

        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(exc),
                    "exception_type": type(exc).__name__,
                    "request_id": request_id,
                },
            )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "Internal server error",
                "request_id": request_id,
            },
        )

    return app


# Create the application instance
app = create_app()
