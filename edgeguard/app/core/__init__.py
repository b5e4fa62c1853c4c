"""Core utilities for edgeguard."""

from edgeguard.app.core.config import Settings, settings
from edgeguard.app.core.http_client import create_http_client, get_http_client, init_http_client
from edgeguard.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "get_http_client",
    "init_http_client",
    "get_logger",
    "setup_logging",
]
