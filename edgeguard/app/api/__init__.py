"""HTTP routes."""

from edgeguard.app.api.deepseek import router as deepseek_router
from edgeguard.app.api.ip_check import router as ip_check_router
from edgeguard.app.api.media import router as media_router
from edgeguard.app.api.meego import router as meego_router
from edgeguard.app.api.only_america import router as only_america_router
from edgeguard.app.api.only_fingerprint import router as only_fingerprint_router
from edgeguard.app.api.openid import router as openid_router

ROUTERS = [
    ip_check_router,
    only_america_router,
    only_fingerprint_router,
    meego_router,
    deepseek_router,
    openid_router,
    media_router,
]

__all__ = [
    "ROUTERS",
    "deepseek_router",
    "ip_check_router",
    "media_router",
    "meego_router",
    "only_america_router",
    "only_fingerprint_router",
    "openid_router",
]
