"""Application settings and configuration.

This module defines all configuration options for the modgate service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEY = "your_moderation_api_key_here"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="modgate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    # Users listed here are treated as moderators regardless of stored role.
    moderator_ids: list[str] = Field(default_factory=list, alias="MODERATOR_IDS")

    # Database configuration
    database_url: str = Field(default="sqlite:///./modgate.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # External toxicity provider
    moderation_api_key: str | None = Field(default=None, alias="MODERATION_API_KEY")
    moderation_api_url: str = Field(
        default="https://commentanalyzer.googleapis.com/v1alpha1/comments:analyze",
        alias="MODERATION_API_URL",
    )
    moderation_provider_timeout_seconds: float = Field(
        default=5.0,
        alias="MODERATION_PROVIDER_TIMEOUT_SECONDS",
    )
    moderation_toxicity_threshold: float = Field(
        default=0.7,
        alias="MODERATION_TOXICITY_THRESHOLD",
    )
    moderation_breaker_failure_threshold: int = Field(
        default=5,
        alias="MODERATION_BREAKER_FAILURE_THRESHOLD",
    )
    moderation_breaker_recovery_seconds: float = Field(
        default=60.0,
        alias="MODERATION_BREAKER_RECOVERY_SECONDS",
    )

    # Moderation policy
    moderation_policy_path: str | None = Field(default=None, alias="MODERATION_POLICY_PATH")
    moderation_hold_policy: Literal["soft", "hard"] = Field(
        default="soft",
        alias="MODERATION_HOLD_POLICY",
    )
    soft_visibility_during_review: bool = Field(
        default=False,
        alias="SOFT_VISIBILITY_DURING_REVIEW",
    )

    # Content limits
    post_max_length: int = Field(default=2000, alias="POST_MAX_LENGTH")
    comment_max_length: int = Field(default=500, alias="COMMENT_MAX_LENGTH")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def provider_configured(self) -> bool:
        """Return True when a real provider API key is present."""
        key = (self.moderation_api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


settings = Settings()  # type: ignore[call-arg]
