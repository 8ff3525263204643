"""Configuration loading for clearpage."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

WAYBACK_CDX_URL = "https://web.archive.org/cdx/search/cdx"
WAYBACK_BASE_URL = "https://web.archive.org/web"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="CLEARPAGE_")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    # Timeouts (seconds)
    request_timeout: float = Field(
        default=60.0, description="Upper bound for one whole retrieve_article call"
    )
    fetch_timeout: float = Field(default=10.0, description="Direct and referrer fetch timeout")
    archive_index_timeout: float = Field(default=10.0, description="Archive index query timeout")
    archive_fetch_timeout: float = Field(default=15.0, description="Archived snapshot fetch timeout")
    render_timeout: float = Field(default=20.0, description="Headless navigation timeout")
    render_settle_seconds: float = Field(
        default=5.0, description="Wait after navigation before sampling the DOM"
    )
    challenge_wait_seconds: float = Field(
        default=15.0, description="Single wait when a bot challenge is detected while rendering"
    )

    # Transport
    max_redirects: int = Field(default=5, description="Redirects followed per request")

    # Archive
    archive_snapshot_limit: int = Field(default=10, description="Snapshots requested from the index")
    archive_index_url: str = Field(default=WAYBACK_CDX_URL, description="CDX index endpoint")
    archive_base_url: str = Field(default=WAYBACK_BASE_URL, description="Snapshot URL prefix")

    # Extraction
    min_structured_length: int = Field(
        default=20, description="Characters required to accept structured extraction"
    )
    min_content_length: int = Field(
        default=20, description="Characters required to accept aggressive salvage"
    )

    # Diagnostics
    debug_dump_dir: Path | None = Field(
        default=None, description="Directory for raw HTML dumps; disabled when unset"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level is a standard library level name."""
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"CLEARPAGE_LOG_LEVEL '{v}' is not a valid logging level.")
        return v

    @field_validator(
        "request_timeout",
        "fetch_timeout",
        "archive_index_timeout",
        "archive_fetch_timeout",
        "render_timeout",
        "max_redirects",
        "archive_snapshot_limit",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Timeouts and limits must be positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("render_settle_seconds", "challenge_wait_seconds", "min_structured_length", "min_content_length")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Waits and thresholds may be zero but not negative."""
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("archive_index_url", "archive_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Archive endpoints are joined with '/', so drop a trailing one."""
        return v.strip().rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
