"""Configuration management for benchtrack.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHTRACK_ prefix.

    Attributes:
        data_dir: Directory holding one history document per repository.
        group: Default tool-group key runs are stored under.
        regression_percent: Drop (in percent) beyond which a lane regresses.
        improvement_percent: Gain (in percent) beyond which a lane improved.
        window_size: Number of recent runs used for summary statistics.
        remote_url: Optional remote artifact store base URL.
        max_retries: Retries for remote store requests.
        retry_backoff_seconds: Initial backoff between remote retries.
        timeout_seconds: Timeout for remote store requests.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Example:
        >>> # export BENCHTRACK_REGRESSION_PERCENT=10
        >>> settings = Settings()
        >>> settings.regression_percent
        10.0

    Environment Variables:
        BENCHTRACK_DATA_DIR: History directory (default: .benchtrack)
        BENCHTRACK_GROUP: Tool-group key (default: Benchmark)
        BENCHTRACK_REGRESSION_PERCENT: Regression threshold (default: 20.0)
        BENCHTRACK_IMPROVEMENT_PERCENT: Improvement threshold (default: 10.0)
        BENCHTRACK_WINDOW_SIZE: Summary window (default: 10)
        BENCHTRACK_REMOTE_URL: Remote store URL (optional)
        BENCHTRACK_MAX_RETRIES: Remote retries (default: 3)
        BENCHTRACK_RETRY_BACKOFF_SECONDS: Initial backoff (default: 0.5)
        BENCHTRACK_TIMEOUT_SECONDS: Remote timeout (default: 30.0)
        BENCHTRACK_LOG_LEVEL: Logging level (default: INFO)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage settings
    data_dir: str = Field(
        default=".benchtrack",
        description="Directory holding one history document per repository",
    )
    group: str = Field(
        default="Benchmark",
        min_length=1,
        description="Default tool-group key",
    )

    # Comparison settings
    regression_percent: float = Field(
        default=20.0,
        ge=0,
        description="Drop in percent beyond which a lane is a regression",
    )
    improvement_percent: float = Field(
        default=10.0,
        ge=0,
        description="Gain in percent beyond which a lane counts as improved",
    )
    window_size: int = Field(
        default=10,
        ge=1,
        description="Number of recent runs used for summary statistics",
    )

    # Remote store settings
    remote_url: str | None = Field(
        default=None,
        description="Optional remote artifact store base URL",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for remote store requests",
    )
    retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Initial backoff between remote retries in seconds",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for remote store requests in seconds",
    )

    # General settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
