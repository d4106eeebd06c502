"""
Configuration management for bq-test-data.

This module provides environment-based configuration using Pydantic BaseSettings.
Connection details for the BigQuery test project and the load/retry limits of
the harness can be overridden through ``BQTD_`` prefixed environment variables
or a ``.env`` file.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import structlog
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("BQTD_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE

# BigQuery's hard limit on rows per insertAll request
MAX_ROWS_PER_REQUEST = 10000


class Settings(BaseSettings):
    """
    Harness settings with environment variable support.

    Environment variables are loaded with the BQTD_ prefix, for example
    BQTD_PROJECT_ID or BQTD_LOAD_TIMEOUT_SECONDS. LOG_LEVEL is read without
    prefix so it can be shared with the logging setup.
    """

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )

    # Connection details
    project_id: Optional[str] = Field(
        default=None,
        description="BigQuery project used for tests; defaults to the client's project",
    )
    service_account_json: Optional[str] = Field(
        default=None,
        description="Service account key JSON used to build the BigQuery client",
    )
    location: Optional[str] = Field(
        default=None, description="Location for newly created datasets"
    )

    # Dataset identity
    dataset_prefix: str = Field(
        default="v4",
        description="Version prefix for transient dataset names",
    )
    staleness_hours: float = Field(
        default=2.0,
        gt=0,
        description="Transient datasets older than this are deleted by the sweep",
    )

    # Load-and-verify limits
    max_rows_per_request: int = Field(
        default=MAX_ROWS_PER_REQUEST,
        ge=1,
        le=MAX_ROWS_PER_REQUEST,
        description="Rows per insertAll request",
    )
    load_timeout_seconds: float = Field(
        default=120.0,
        ge=0,
        description="How long to wait for inserted rows to become visible",
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Delay between row-count checks while waiting",
    )
    table_load_attempts: int = Field(
        default=5, ge=1, description="Attempts per table load"
    )
    dataset_load_attempts: int = Field(
        default=3, ge=1, description="Attempts per dataset create-and-load cycle"
    )

    @field_validator("dataset_prefix")
    @classmethod
    def _validate_dataset_prefix(cls, value: str) -> str:
        if not value or not value.replace("_", "").isalnum() or not value.isascii():
            raise ValueError(
                "dataset_prefix must contain only letters, digits and underscores"
            )
        return value

    @model_validator(mode="after")
    def _validate_timeouts(self) -> "Settings":
        """Polling must be able to run at least once inside the timeout."""
        if self.load_timeout_seconds and (
            self.poll_interval_seconds > self.load_timeout_seconds
        ):
            logger.warning(
                "configuration.poll_interval_exceeds_timeout",
                poll_interval_seconds=self.poll_interval_seconds,
                load_timeout_seconds=self.load_timeout_seconds,
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="BQTD_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()
