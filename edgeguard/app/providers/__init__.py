"""Upstream API providers."""

from edgeguard.app.providers.deepseek import DeepSeekProvider

__all__ = ["DeepSeekProvider"]
