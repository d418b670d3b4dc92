from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from unlinked.core.exceptions import ConfigurationError

# Environments allowed to sign and verify tokens without JWT_SECRET.
_LOCAL_ENVS = {"dev", "development", "local", "test", "ci"}
_LOCAL_JWT_SECRET = "dev-secret"


class Settings(BaseSettings):
    """Unified application settings for the UnLinked realtime service.

    Loads from env with support for repo ".env" files. Avoids manual load_dotenv().
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/unlinked/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    # Load env vars from apps/unlinked/.env first, then repo root .env
    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="unlinked", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="UNLINKED_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    python_dont_write_bytecode: bool = Field(default=True, alias="PYTHONDONTWRITEBYTECODE")

    cors_allow_origins: list[str] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:5174",
            "http://localhost:5175",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    socket_cors_allow_origins: list[str] | None = Field(
        default=None,
        alias="SOCKET_CORS_ALLOW_ORIGINS",
        description="Defaults to CORS_ALLOW_ORIGINS when unset.",
    )

    # --- MongoDB ---
    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGO_URI")
    mongo_database: str = Field(default="unlinked", alias="MONGO_DATABASE")
    mongo_app_name: str = Field(default="unlinked-realtime", alias="MONGO_APP_NAME")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS", ge=100)

    # --- Auth (JWT issued by the account service) ---
    jwt_secret: SecretStr | None = Field(default=None, alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_cookie_name: str = Field(default="jwt-linkedin", alias="JWT_COOKIE_NAME")
    jwt_expires_days: int = Field(default=3, alias="JWT_EXPIRES_DAYS", ge=1, le=365)

    # --- Chat / notifications ---
    profile_visit_window_hours: int = Field(
        default=24,
        alias="PROFILE_VISIT_WINDOW_HOURS",
        ge=0,
        le=24 * 30,
        description="0 disables profile-visit deduplication.",
    )
    typing_timeout_seconds: float = Field(
        default=8.0,
        alias="TYPING_TIMEOUT_SECONDS",
        ge=0,
        le=120,
        description="0 keeps typing indicators until stop_typing or disconnect.",
    )
    message_page_limit: int = Field(default=500, alias="MESSAGE_PAGE_LIMIT", ge=1, le=5000)

    # Collections
    users_collection: str = Field(default="users", alias="USERS_COLLECTION")
    chats_collection: str = Field(default="chats", alias="CHATS_COLLECTION")
    messages_collection: str = Field(default="messages", alias="MESSAGES_COLLECTION")
    notifications_collection: str = Field(
        default="notifications",
        alias="NOTIFICATIONS_COLLECTION",
    )
    projects_collection: str = Field(default="projects", alias="PROJECTS_COLLECTION")
    posts_collection: str = Field(default="posts", alias="POSTS_COLLECTION")

    @property
    def socket_origins(self) -> list[str]:
        if self.socket_cors_allow_origins is None:
            return list(self.cors_allow_origins)
        return list(self.socket_cors_allow_origins)

    @property
    def is_local(self) -> bool:
        return self.app_env.strip().lower() in _LOCAL_ENVS

    def jwt_signing_key(self) -> str:
        """Return the HS256 key, refusing to fall back outside local environments."""
        secret = self.jwt_secret.get_secret_value().strip() if self.jwt_secret else ""
        if secret and (secret != _LOCAL_JWT_SECRET or self.is_local):
            return secret
        if self.is_local:
            return _LOCAL_JWT_SECRET
        raise ConfigurationError(
            "JWT_SECRET must be set to a non-default value",
            details={"app_env": self.app_env},
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules expecting a module-level "settings"
settings = get_settings()
