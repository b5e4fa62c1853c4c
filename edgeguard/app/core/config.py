import json
import re
from typing import Annotated, Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_list(raw: Any) -> list[str]:
    """Parse a list setting from JSON, a comma/space separated string or a list."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []

    # JSON is the documented format, but a bare "a,b" value should not crash
    # the app at startup.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    return [p for p in re.split(r"[,\s]+", raw) if p]


def _parse_cors_origins(raw: Any) -> list[str]:
    parts = _parse_list(raw)
    if "*" in parts:
        return ["*"]

    origins: list[str] = []
    for part in parts:
        if "://" in part:
            origins.append(part)
            continue
        # Browsers include the scheme in the Origin header.
        origins.append(f"http://{part}")
        origins.append(f"https://{part}")

    seen: set[str] = set()
    result: list[str] = []
    for origin in origins:
        if origin in seen:
            continue
        seen.add(origin)
        result.append(origin)
    return result


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    # Rate limiting (fixed window with a block period once the quota is exceeded)
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 10
    rate_limit_block_duration_ms: int = 300_000
    rate_limit_max_entries: int = 100_000  # LRU cap on tracked IPs
    rate_limit_cleanup_interval_seconds: float = 60.0
    rate_limit_backend: Literal["memory", "redis"] = "memory"
    rate_limit_fail_closed: bool = False  # Deny requests when Redis is unavailable

    # Redis settings (only used by the redis rate limit backend)
    redis_url: str = "redis://localhost:6379/0"

    # Geolocation provider
    geo_api_base_url: str = "https://ipapi.co"
    geo_timeout_seconds: float = 3.0
    geo_user_agent: str = "ipcheck-api/1.0"
    # Let private/loopback addresses through the country gate (development only)
    geo_allow_local_network: bool = False
    allowed_country_codes: Annotated[list[str], NoDecode] = ["US"]

    # Admission policy thresholds
    high_risk_threshold: int = 70  # risk score strictly above this is denied
    fingerprint_min_score: int = 50  # fingerprint score strictly below this is denied

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 5.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # DeepSeek chat completion settings
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_timeout: float = 120.0

    # WeChat mini-program login
    wechat_app_id: str = ""
    wechat_app_secret: str = ""
    wechat_api_base_url: str = "https://api.weixin.qq.com"

    # Static media (images/<name>.png, audio/<name>.mp3)
    media_root: str = "public"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("allowed_country_codes", mode="before")
    @classmethod
    def decode_country_codes(cls, v: Any) -> list[str]:
        return [code.upper() for code in _parse_list(v)]

    @field_validator(
        "rate_limit_window_ms",
        "rate_limit_max_requests",
        "rate_limit_block_duration_ms",
        "rate_limit_max_entries",
    )
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator(
        "geo_timeout_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "deepseek_timeout",
        "rate_limit_cleanup_interval_seconds",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("high_risk_threshold", "fingerprint_min_score")
    @classmethod
    def validate_score_range(cls, v: int) -> int:
        """Scores are 0-100, so thresholds must be too."""
        if not 0 <= v <= 100:
            raise ValueError("Score thresholds must be between 0 and 100")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
