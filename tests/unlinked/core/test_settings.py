import pytest

from unlinked.core.exceptions import ConfigurationError
from unlinked.core.settings import Settings


def test_settings_defaults_without_env():
    # Avoid reading any .env files during this test
    s = Settings(_env_file=None)

    assert s.mongo_uri.startswith("mongodb://")
    assert s.jwt_cookie_name == "jwt-linkedin"
    assert s.jwt_algorithm == "HS256"
    assert s.profile_visit_window_hours == 24
    assert s.typing_timeout_seconds == 8.0
    assert s.socket_origins == s.cors_allow_origins


def test_settings_read_env(monkeypatch):
    monkeypatch.setenv("MONGO_DATABASE", "unlinked_ci")
    monkeypatch.setenv("PROFILE_VISIT_WINDOW_HOURS", "6")
    monkeypatch.setenv("SOCKET_CORS_ALLOW_ORIGINS", '["https://app.example.com"]')

    s = Settings(_env_file=None)

    assert s.mongo_database == "unlinked_ci"
    assert s.profile_visit_window_hours == 6
    assert s.socket_origins == ["https://app.example.com"]


def test_jwt_key_falls_back_only_in_local_envs(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)

    assert Settings(_env_file=None, APP_ENV="test").jwt_signing_key() == "dev-secret"

    prod = Settings(_env_file=None, APP_ENV="production")
    with pytest.raises(ConfigurationError):
        prod.jwt_signing_key()


def test_jwt_key_rejects_local_secret_in_production(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "dev-secret")
    with pytest.raises(ConfigurationError):
        Settings(_env_file=None, APP_ENV="production").jwt_signing_key()

    monkeypatch.setenv("JWT_SECRET", "s3cr3t-from-vault")
    assert Settings(_env_file=None, APP_ENV="production").jwt_signing_key() == "s3cr3t-from-vault"
