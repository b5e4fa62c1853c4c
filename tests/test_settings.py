import pytest
from pydantic import ValidationError

from edgeguard.app.core.config import Settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.rate_limit_window_ms == 60_000
    assert settings.rate_limit_max_requests == 10
    assert settings.rate_limit_block_duration_ms == 300_000
    assert settings.rate_limit_backend == "memory"
    assert settings.allowed_country_codes == ["US"]
    assert settings.high_risk_threshold == 70
    assert settings.fingerprint_min_score == 50
    assert settings.geo_allow_local_network is False


def test_country_codes_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ALLOWED_COUNTRY_CODES", "us, ca")

    settings = Settings(_env_file=None)
    assert settings.allowed_country_codes == ["US", "CA"]


def test_country_codes_json_list(monkeypatch) -> None:
    monkeypatch.setenv("ALLOWED_COUNTRY_CODES", '["gb", "ie"]')

    settings = Settings(_env_file=None)
    assert settings.allowed_country_codes == ["GB", "IE"]


def test_cors_origins_accepts_host_without_json(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "app.example.com")

    settings = Settings(_env_file=None)
    assert settings.cors_origins == ["http://app.example.com", "https://app.example.com"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["http://localhost:5173"]', ["http://localhost:5173"]),
        ("*", ["*"]),
        ("[]", []),
        ("", []),
    ],
)
def test_cors_origins_parsing_variants(monkeypatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("CORS_ORIGINS", raw)

    settings = Settings(_env_file=None)
    assert settings.cors_origins == expected


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("rate_limit_max_requests", 0),
        ("rate_limit_window_ms", -1),
        ("high_risk_threshold", 101),
        ("fingerprint_min_score", -5),
        ("geo_timeout_seconds", 0),
        ("rate_limit_backend", "memcached"),
    ],
)
def test_invalid_values_rejected(field: str, value) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
