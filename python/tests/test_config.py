"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from medintake.config import Environment, Settings, get_settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "postgresql+psycopg://localhost/test",
        "MEDINTAKE_ENV": "test",
        "AUTH_JWKS_URL": "https://project.supabase.co/auth/v1/.well-known/jwks.json",
        "AUTH_ISSUER": "https://project.supabase.co/auth/v1/",
        "AUTH_AUDIENCES": "authenticated, dashboard ,",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettings:
    def test_defaults(self):
        s = _make_settings()
        assert s.medintake_env == Environment.TEST
        assert s.db_pool_size == 5
        assert s.db_max_overflow == 15
        assert s.max_upload_bytes == 10 * 1024 * 1024
        assert s.storage_bucket == "documents"
        assert s.analysis_engine is None

    def test_issuer_trailing_slash_stripped(self):
        assert _make_settings().normalized_issuer == "https://project.supabase.co/auth/v1"

    def test_audiences_parsed(self):
        assert _make_settings().audience_list == ["authenticated", "dashboard"]

    def test_missing_auth_settings_rejected(self, monkeypatch):
        monkeypatch.delenv("AUTH_JWKS_URL", raising=False)
        monkeypatch.delenv("AUTH_ISSUER", raising=False)
        monkeypatch.delenv("AUTH_AUDIENCES", raising=False)

        with pytest.raises(ValidationError, match="AUTH_JWKS_URL"):
            Settings(DATABASE_URL="sqlite://")

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValidationError, match="DB_POOL_SIZE"):
            _make_settings(DB_POOL_SIZE=0)

    def test_negative_overflow_rejected(self):
        with pytest.raises(ValidationError, match="DB_MAX_OVERFLOW"):
            _make_settings(DB_MAX_OVERFLOW=-1)

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            _make_settings(LOG_LEVEL="chatty")

    def test_log_level_case_insensitive(self):
        assert _make_settings(LOG_LEVEL="debug").log_level == "debug"

    def test_celery_urls_fall_back_to_redis(self):
        s = _make_settings(REDIS_URL="redis://localhost:6379/0")
        assert s.effective_celery_broker_url == "redis://localhost:6379/0"
        assert s.effective_celery_result_backend == "redis://localhost:6379/0"

    def test_explicit_celery_broker_wins(self):
        s = _make_settings(
            REDIS_URL="redis://localhost:6379/0",
            CELERY_BROKER_URL="redis://broker:6379/1",
        )
        assert s.effective_celery_broker_url == "redis://broker:6379/1"

    def test_get_settings_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_ENGINE", "tests.engines:StaticEngine")

        assert get_settings().analysis_engine == "tests.engines:StaticEngine"
