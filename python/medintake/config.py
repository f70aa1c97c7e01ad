"""Runtime configuration from environment variables.

Environment Configuration:
    MEDINTAKE_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)

Connection Pool:
    DB_POOL_SIZE: Connections kept open in the pool
    DB_MAX_OVERFLOW: Extra connections allowed above DB_POOL_SIZE
    DB_POOL_TIMEOUT_S: Max seconds to wait for a free connection
    DB_POOL_RECYCLE_S: Connections older than this are recycled
    DB_STATEMENT_TIMEOUT_MS: Server-side statement timeout (PostgreSQL only)

Auth (required in every environment):
    AUTH_JWKS_URL: Full URL to the identity provider's JWKS endpoint
    AUTH_ISSUER: Expected JWT issuer (trailing slash stripped)
    AUTH_AUDIENCES: Comma-separated list of allowed audiences

Storage / Worker:
    SUPABASE_URL, SUPABASE_SERVICE_KEY, STORAGE_BUCKET
    MAX_UPLOAD_BYTES, UPLOAD_CHUNK_BYTES: upload size limit and TUS chunk size
    REDIS_URL, CELERY_BROKER_URL, CELERY_RESULT_BACKEND
    ANALYSIS_ENGINE: "module:attr" import path of the analysis engine

Logging:
    LOG_LEVEL: Root log level name (DEBUG, INFO, WARNING, ...)
    LOG_JSON: JSON lines when true, console rendering otherwise
"""

import logging
from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment named by MEDINTAKE_ENV."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Settings read from the environment (and .env).

    DATABASE_URL and the three AUTH_* values are required everywhere; pool
    sizes, timeouts and the upload chunk size must be positive.
    """

    medintake_env: Environment = Field(default=Environment.LOCAL, alias="MEDINTAKE_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # Connection pool (bounded, fail fast when exhausted)
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=15, alias="DB_MAX_OVERFLOW")
    db_pool_timeout_s: int = Field(default=30, alias="DB_POOL_TIMEOUT_S")
    db_pool_recycle_s: int = Field(default=60, alias="DB_POOL_RECYCLE_S")
    db_statement_timeout_ms: int = Field(default=30_000, alias="DB_STATEMENT_TIMEOUT_MS")

    # Identity provider (JWKS-verified bearer tokens)
    auth_jwks_url: str | None = Field(default=None, alias="AUTH_JWKS_URL")
    auth_issuer: str | None = Field(default=None, alias="AUTH_ISSUER")
    auth_audiences: str | None = Field(default=None, alias="AUTH_AUDIENCES")

    # Object storage
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field(default="documents", alias="STORAGE_BUCKET")

    # Upload limits
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")  # 10 MB
    upload_chunk_bytes: int = Field(default=6 * 1024 * 1024, alias="UPLOAD_CHUNK_BYTES")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    analysis_engine: str | None = Field(default=None, alias="ANALYSIS_ENGINE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def check_auth_and_limits(self) -> "Settings":
        auth = {
            "AUTH_JWKS_URL": self.auth_jwks_url,
            "AUTH_ISSUER": self.auth_issuer,
            "AUTH_AUDIENCES": self.auth_audiences,
        }
        missing = [name for name, value in auth.items() if not value]
        if missing:
            raise ValueError(f"Missing required auth settings: {', '.join(missing)}.")

        positive = ("db_pool_size", "db_pool_timeout_s", "db_pool_recycle_s", "upload_chunk_bytes")
        for name in positive:
            if getattr(self, name) < 1:
                raise ValueError(f"{name.upper()} must be >= 1")
        if self.db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be >= 0")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown LOG_LEVEL: {self.log_level}")
        return self

    @property
    def audience_list(self) -> list[str]:
        return [aud.strip() for aud in (self.auth_audiences or "").split(",") if aud.strip()]

    @property
    def normalized_issuer(self) -> str | None:
        return self.auth_issuer.rstrip("/") if self.auth_issuer else None

    # Celery falls back to REDIS_URL for both broker and results.
    @property
    def effective_celery_broker_url(self) -> str | None:
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Settings from the environment, built once per process.

    Raises:
        pydantic.ValidationError: Required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached Settings so the next get_settings() rereads the environment."""
    get_settings.cache_clear()
