from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Literal

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="GhostCord Relay", env="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", env="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=False, env="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        env="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    cors_allow_origin_regex: str | None = Field(
        default=r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$",
        env="CORS_ALLOW_ORIGIN_REGEX",
        description="Optional regular expression that matches allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "database_url_override"),
        description="Full SQLAlchemy URL; takes precedence over the DB_* parts",
    )
    database_user: str = Field(default="ghostcord", validation_alias=AliasChoices("DB_USER", "database_user"))
    database_password: str = Field(
        default="ghostcord", validation_alias=AliasChoices("DB_PASSWORD", "database_password")
    )
    database_host: str = Field(default="db", validation_alias=AliasChoices("DB_HOST", "database_host"))
    database_port: int = Field(default=3306, validation_alias=AliasChoices("DB_PORT", "database_port"))
    database_name: str = Field(default="ghostcord", validation_alias=AliasChoices("DB_NAME", "database_name"))
    database_auto_create: bool = Field(
        default=True,
        env="DATABASE_AUTO_CREATE",
        description="Create missing tables on startup instead of relying on migrations.",
    )

    chat_history_limit: int = Field(default=100, env="CHAT_HISTORY_LIMIT")
    chat_message_max_length: int = Field(default=2000, env="CHAT_MESSAGE_MAX_LENGTH")
    default_channel_name: str = Field(default="general", env="DEFAULT_CHANNEL_NAME")
    channel_delivery_scope: Literal["all", "members"] = Field(
        default="all",
        env="CHANNEL_DELIVERY_SCOPE",
        description="Deliver channel messages to every connection or only to server members.",
    )

    websocket_keepalive_timeout_seconds: float = Field(
        default=30.0,
        env="WEBSOCKET_KEEPALIVE_TIMEOUT_SECONDS",
        description="Idle time after which the server pings a websocket client.",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=25.0,
        env="WEBSOCKET_KEEPALIVE_PING_INTERVAL_SECONDS",
        description="Minimum spacing between two keepalive pings.",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("chat_history_limit")
    @classmethod
    def ensure_positive_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("chat_history_limit must be positive")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
