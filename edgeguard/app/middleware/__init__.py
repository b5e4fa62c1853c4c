"""Middleware package for edgeguard."""

from edgeguard.app.middleware.cors import RouteScopedCORSMiddleware
from edgeguard.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = ["RequestIdMiddleware", "RouteScopedCORSMiddleware", "get_request_id"]
