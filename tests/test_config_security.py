import pytest

from studybuddy.config import AppConfig, load_config, parse_cors_allowed_origins, safe_int_env


def _clear_env(monkeypatch):
    for name in ("APP_ENV", "FLASK_ENV", "ENV", "RENDER", "JWT_SECRET"):
        monkeypatch.delenv(name, raising=False)


def test_load_config_requires_jwt_secret_in_non_dev(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("RENDER", "true")

    with pytest.raises(RuntimeError):
        load_config()


def test_load_config_generates_ephemeral_secret_in_dev(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("FLASK_ENV", "development")

    cfg = load_config()
    assert cfg.is_dev is True
    assert len(cfg.jwt_secret) >= 32
    assert load_config().jwt_secret != cfg.jwt_secret


def test_load_config_reads_defaults_and_overrides(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("JWT_SECRET", "prod-secret")
    monkeypatch.setenv("STRIPE_PRICE_ID_PAID", "price_123")
    monkeypatch.setenv("API_RATE_LIMIT_MAX_REQUESTS", "not-a-number")
    monkeypatch.setenv("CLIENT_URL", "https://app.example.com/")
    monkeypatch.delenv("TRUSTED_PROXY_COUNT", raising=False)

    cfg = load_config()
    assert cfg.is_dev is False
    assert cfg.jwt_secret == "prod-secret"
    assert cfg.jwt_expires_days == 7
    assert cfg.openai_model == "gpt-4o"
    assert cfg.api_rate_limit_max_requests == 100
    assert cfg.api_rate_limit_window_seconds == 15 * 60
    assert cfg.stripe_price_ids == {"paid": "price_123"}
    assert cfg.client_url == "https://app.example.com"
    assert cfg.trusted_proxy_count == 0


def test_safe_int_env_clamps(monkeypatch):
    monkeypatch.setenv("SB_TEST_INT", "999999")
    assert safe_int_env("SB_TEST_INT", 5, minimum=1, maximum=50) == 50
    monkeypatch.setenv("SB_TEST_INT", "-3")
    assert safe_int_env("SB_TEST_INT", 5, minimum=1, maximum=50) == 1


def test_parse_cors_allowed_origins():
    assert parse_cors_allowed_origins(" https://A.example.com , https://b.example.com ") == frozenset({
        "https://a.example.com",
        "https://b.example.com",
    })
    assert "http://localhost:5173" in parse_cors_allowed_origins("")


def test_app_config_is_frozen():
    cfg = AppConfig()
    with pytest.raises(Exception):
        cfg.jwt_secret = "changed"


def test_trusted_proxy_count_is_read_and_clamped(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("FLASK_ENV", "development")
    monkeypatch.setenv("TRUSTED_PROXY_COUNT", "1")
    assert load_config().trusted_proxy_count == 1
    monkeypatch.setenv("TRUSTED_PROXY_COUNT", "40")
    assert load_config().trusted_proxy_count == 5
