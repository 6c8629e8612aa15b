"""
Tests for the configuration module.
"""

import pytest
from pydantic import ValidationError


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self, monkeypatch):
        """Test that defaults apply when nothing is set in the environment."""
        from config.settings import Settings

        for name in ("HOST", "PORT", "STORAGE_BACKEND", "KEY_PREFIX", "RECIPROCAL_THRESHOLD"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.storage_backend == "auto"
        assert settings.key_prefix == ""
        assert settings.reciprocal_threshold == 0.01
        assert settings.default_cardinality == 10
        assert settings.max_cardinality == 200

    def test_environment_variables(self, monkeypatch):
        from config.settings import Settings

        monkeypatch.setenv("STORAGE_BACKEND", "Redis")
        monkeypatch.setenv("KEY_PREFIX", "recon:")
        monkeypatch.setenv("RECIPROCAL_THRESHOLD", "0.05")
        settings = Settings(_env_file=None)

        assert settings.storage_backend == "redis"
        assert settings.key_prefix == "recon:"
        assert settings.reciprocal_threshold == 0.05

    def test_is_development_property(self):
        from config.settings import Settings

        for env in ["development", "dev", "local"]:
            assert Settings(_env_file=None, environment=env).is_development is True
        assert Settings(_env_file=None, environment="production").is_development is False

    def test_is_production_property(self):
        from config.settings import Settings

        for env in ["production", "prod"]:
            assert Settings(_env_file=None, environment=env).is_production is True
        assert Settings(_env_file=None, environment="development").is_production is False

    def test_json_logs_follow_environment(self):
        """Test that JSON logs default on in production and can be forced."""
        from config.settings import Settings

        assert Settings(_env_file=None, environment="production").use_json_logs is True
        assert Settings(_env_file=None, environment="development").use_json_logs is False
        assert Settings(_env_file=None, environment="development", json_logs=True).use_json_logs is True

    def test_debug_forces_debug_level(self):
        from config.settings import Settings

        assert Settings(_env_file=None, debug=True, log_level="warning").effective_log_level == "DEBUG"
        assert Settings(_env_file=None, debug=False, log_level="warning").effective_log_level == "WARNING"

    def test_cors_origins_parsing(self):
        """Test that CORS origins can be parsed from comma-separated string."""
        from config.settings import Settings

        settings = Settings(_env_file=None, cors_origins="http://localhost:3000, http://localhost:5173")
        assert settings.cors_origins == ["http://localhost:3000", "http://localhost:5173"]

    @pytest.mark.parametrize("field,value", [
        ("storage_backend", "postgres"),
        ("reciprocal_threshold", -0.1),
        ("max_cardinality", 0),
        ("scratch_ttl_seconds", 0),
    ])
    def test_invalid_values(self, field, value):
        from config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_settings_for_testing(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing(max_cardinality=5)

        assert settings.environment == "testing"
        assert settings.debug is True
        assert settings.storage_backend == "memory"
        assert settings.max_cardinality == 5

    def test_get_settings_is_cached(self):
        from config.settings import get_settings

        assert get_settings() is get_settings()


class TestConstants:
    """Tests for constants module."""

    def test_key_layout(self):
        from config.constants import DEFAULT_KEY_SPACE

        assert DEFAULT_KEY_SPACE.member_attributes("5") == "hma:5"
        assert DEFAULT_KEY_SPACE.presence("gender:f") == "zma:gender:f"
        assert DEFAULT_KEY_SPACE.raw_interest("5") == "hmi:5"
        assert DEFAULT_KEY_SPACE.normalized_interest("5") == "hmn:5"
        assert DEFAULT_KEY_SPACE.interest("gender:f") == "zmi:gender:f"
        assert DEFAULT_KEY_SPACE.scratch("q1", "pool") == "scratch:q1:pool"

    def test_prefixed_key_layout(self):
        from config.constants import KeySpace

        keys = KeySpace(prefix="recon:")
        assert keys.presence("a") == "recon:zma:a"
        assert keys.scratch("q1", "given") == "recon:scratch:q1:given"


class TestDatabase:
    """Tests for store selection."""

    def test_memory_backend(self):
        from config.database import create_store
        from config.settings import get_settings_for_testing
        from storage import InMemoryPostingStore

        assert isinstance(create_store(get_settings_for_testing()), InMemoryPostingStore)

    def test_auto_without_redis_uses_memory(self, monkeypatch):
        from config.database import create_store
        from config.settings import get_settings_for_testing
        from storage import InMemoryPostingStore

        monkeypatch.delenv("REDIS_URL", raising=False)
        settings = get_settings_for_testing(storage_backend="auto", redis_enabled=False)
        assert isinstance(create_store(settings), InMemoryPostingStore)

    def test_auto_falls_back_when_redis_unreachable(self):
        from config.database import create_store
        from config.settings import get_settings_for_testing
        from storage import InMemoryPostingStore

        settings = get_settings_for_testing(
            storage_backend="auto",
            redis_enabled=True,
            redis_url="redis://127.0.0.1:1/0",
            redis_socket_timeout_seconds=0.2,
        )
        assert isinstance(create_store(settings), InMemoryPostingStore)

    def test_redis_backend_fails_loudly(self):
        from config.database import create_store
        from config.settings import get_settings_for_testing
        from core.errors import StorageUnavailable

        settings = get_settings_for_testing(
            storage_backend="redis",
            redis_url="redis://127.0.0.1:1/0",
            redis_socket_timeout_seconds=0.2,
        )
        with pytest.raises(StorageUnavailable):
            create_store(settings)
