"""Tests for engine configuration management."""

import os
import tempfile
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fire_engine.config import EngineSettings, get_settings


class TestEngineSettings:
    """Test cases for EngineSettings class."""

    def test_defaults(self):
        """Test default batch and logging settings."""
        with patch.dict(os.environ, {}, clear=True):
            settings = EngineSettings(_env_file=None)

            assert settings.log_level == "INFO"
            assert settings.max_batch_size == 10
            assert settings.max_concurrency == 5
            assert settings.default_concurrency == 2
            assert settings.calculation_timeout_seconds == 30.0
            assert settings.monte_carlo_workers == 1

    def test_environment_override(self):
        """Test that environment variables override defaults."""
        with patch.dict(
            os.environ,
            {
                "FIRE_ENGINE_MAX_BATCH_SIZE": "50",
                "FIRE_ENGINE_MAX_CONCURRENCY": "8",
                "FIRE_ENGINE_MONTE_CARLO_WORKERS": "4",
                "FIRE_ENGINE_LOG_LEVEL": "debug",
            },
            clear=True,
        ):
            settings = EngineSettings(_env_file=None)

            assert settings.max_batch_size == 50
            assert settings.max_concurrency == 8
            assert settings.monte_carlo_workers == 4
            assert settings.log_level == "DEBUG"

    def test_log_level_validation(self):
        """Test FIRE_ENGINE_LOG_LEVEL validation."""
        with patch.dict(os.environ, {"FIRE_ENGINE_LOG_LEVEL": "verbose"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                EngineSettings(_env_file=None)

            assert "FIRE_ENGINE_LOG_LEVEL must be one of" in str(exc_info.value)

    def test_batch_size_bounds(self):
        """Test that the batch size cap stays within 1..100."""
        with patch.dict(os.environ, {"FIRE_ENGINE_MAX_BATCH_SIZE": "101"}, clear=True):
            with pytest.raises(ValidationError):
                EngineSettings(_env_file=None)

    def test_default_concurrency_cannot_exceed_max(self):
        """Test the cross-field concurrency check."""
        with patch.dict(
            os.environ,
            {
                "FIRE_ENGINE_DEFAULT_CONCURRENCY": "6",
                "FIRE_ENGINE_MAX_CONCURRENCY": "5",
            },
            clear=True,
        ):
            with pytest.raises(ValidationError) as exc_info:
                EngineSettings(_env_file=None)

            assert "cannot exceed" in str(exc_info.value)


class TestGetSettings:
    """Test cases for get_settings."""

    def test_loads_env_file(self):
        """Test that settings can be loaded from a .env file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("FIRE_ENGINE_LOG_LEVEL=WARNING\n")
            f.write("FIRE_ENGINE_CALCULATION_TIMEOUT_SECONDS=2.5\n")
            temp_env_file = f.name

        try:
            with patch.dict(os.environ, {}, clear=True):
                settings = get_settings(temp_env_file)

                assert settings.log_level == "WARNING"
                assert settings.calculation_timeout_seconds == 2.5
        finally:
            os.unlink(temp_env_file)

    def test_environment_wins_over_env_file(self):
        """Test that process environment takes precedence over the file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("FIRE_ENGINE_MAX_BATCH_SIZE=20\n")
            temp_env_file = f.name

        try:
            with patch.dict(os.environ, {"FIRE_ENGINE_MAX_BATCH_SIZE": "30"}, clear=True):
                assert get_settings(temp_env_file).max_batch_size == 30
        finally:
            os.unlink(temp_env_file)
