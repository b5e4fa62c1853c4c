"""FastAPI dependencies resolving the services built in the application lifespan."""

from pathlib import Path
from typing import Any

from fastapi import Request

from edgeguard.app.admission.pipeline import AccessDecisionPipeline
from edgeguard.app.core.config import settings
from edgeguard.app.providers.deepseek import DeepSeekProvider
from edgeguard.app.services.wechat import WeChatClient


def _from_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Ensure lifespan context is active.")
    return value


def get_pipeline(request: Request) -> AccessDecisionPipeline:
    return _from_state(request, "pipeline")


def get_deepseek_provider(request: Request) -> DeepSeekProvider:
    return _from_state(request, "deepseek_provider")


def get_wechat_client(request: Request) -> WeChatClient:
    return _from_state(request, "wechat_client")


def get_media_root() -> Path:
    return Path(settings.media_root)
