"""Unit tests for Courier configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from courier.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Defaults should match the delivery policy."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()
        assert settings.env == "development"
        assert settings.qdrant_url == "http://localhost:6333"
        assert settings.collection_prefix == "courier"
        assert settings.webhook_timeout_seconds == 30.0
        assert settings.secret_length == 64
        assert settings.worker_count == 4
        assert settings.sweep_interval_seconds == 60.0
        assert settings.log_format == "json"
        assert not settings.uses_memory_storage

    def test_env_prefix(self):
        """COURIER_* environment variables should override defaults."""
        env = {
            "COURIER_QDRANT_URL": ":memory:",
            "COURIER_WORKER_COUNT": "8",
            "COURIER_WEBHOOK_TIMEOUT_SECONDS": "5",
            "COURIER_LOG_FORMAT": "text",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()
        assert settings.uses_memory_storage
        assert settings.worker_count == 8
        assert settings.webhook_timeout_seconds == 5.0
        assert settings.log_format == "text"

    def test_unprefixed_variables_ignored(self):
        with patch.dict(os.environ, {"WORKER_COUNT": "99"}, clear=True):
            settings = Settings()
        assert settings.worker_count == 4

    def test_production_rejects_memory_storage(self):
        with pytest.raises(ValidationError, match="production"):
            Settings(env="production", qdrant_url=":memory:")

    def test_production_with_server(self):
        settings = Settings(env="production", qdrant_url="http://qdrant:6333")
        assert settings.env == "production"

    def test_memory_storage_allowed_in_test(self):
        settings = Settings(env="test", qdrant_url=":memory:")
        assert settings.uses_memory_storage

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("worker_count", 0),
            ("webhook_timeout_seconds", 0),
            ("secret_length", 8),
            ("sweep_batch_size", 0),
        ],
    )
    def test_bounds(self, field: str, value: int):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            Settings(log_format="xml")
