"""Engine configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="FIRE_ENGINE_LOG_LEVEL")

    # Batch Configuration
    max_batch_size: int = Field(
        default=10, ge=1, le=100, alias="FIRE_ENGINE_MAX_BATCH_SIZE"
    )
    max_concurrency: int = Field(
        default=5, ge=1, le=32, alias="FIRE_ENGINE_MAX_CONCURRENCY"
    )
    default_concurrency: int = Field(
        default=2, ge=1, alias="FIRE_ENGINE_DEFAULT_CONCURRENCY"
    )
    calculation_timeout_seconds: Optional[float] = Field(
        default=30.0, gt=0, alias="FIRE_ENGINE_CALCULATION_TIMEOUT_SECONDS"
    )

    # Monte Carlo Configuration
    monte_carlo_workers: int = Field(
        default=1, ge=1, le=32, alias="FIRE_ENGINE_MONTE_CARLO_WORKERS"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"FIRE_ENGINE_LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_concurrency(self) -> "EngineSettings":
        """Ensure the default concurrency fits under the configured bound."""
        if self.default_concurrency > self.max_concurrency:
            raise ValueError(
                f"FIRE_ENGINE_DEFAULT_CONCURRENCY ({self.default_concurrency}) "
                f"cannot exceed FIRE_ENGINE_MAX_CONCURRENCY ({self.max_concurrency})"
            )
        return self


def get_settings(env_file: Optional[str] = None) -> EngineSettings:
    """Build a settings instance from the environment (and optional env file)."""
    if env_file is not None:
        return EngineSettings(_env_file=env_file)
    return EngineSettings()
