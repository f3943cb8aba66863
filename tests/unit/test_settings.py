import pytest

from mediauth.config.settings import DEFAULT_ALLOWED_ORIGINS, Settings

ENV_NAMES = (
    "APP_ENV",
    "NODE_ENV",
    "PORT",
    "DB_URI",
    "CORS_ALLOWED_ORIGINS",
    "RATE_LIMIT_MAX",
    "DIAGNOSTICS_ENABLED",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.port == 5000
    assert settings.environment == "production"
    assert settings.db_uri is None
    assert settings.db_server_selection_timeout_ms == 15000
    assert settings.db_socket_timeout_ms == 45000
    assert settings.db_max_pool_size == 10
    assert settings.body_limit_bytes == 10 * 1024 * 1024
    assert settings.rate_limit_window_seconds == 900
    assert settings.rate_limit_ceiling == 100
    assert settings.allowed_origins == DEFAULT_ALLOWED_ORIGINS
    assert settings.diagnostics_exposed is False


def test_node_env_alias_and_development_ceiling(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "Development")
    settings = Settings(_env_file=None)
    assert settings.environment == "development"
    assert settings.is_development is True
    assert settings.rate_limit_ceiling == 1000
    assert settings.diagnostics_exposed is True


def test_app_env_wins_over_node_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("NODE_ENV", "development")
    assert Settings(_env_file=None).environment == "production"


def test_blank_db_uri_is_unset(monkeypatch):
    monkeypatch.setenv("DB_URI", "   ")
    assert Settings(_env_file=None).db_uri is None


def test_allowed_origins_override(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    settings = Settings(_env_file=None)
    assert settings.allowed_origins == ("https://a.example", "https://b.example")


def test_rate_limit_override(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_MAX", "7")
    assert Settings(_env_file=None).rate_limit_ceiling == 7
