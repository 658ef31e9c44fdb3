"""Configuration management for the hrevu application."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Uses HREVU_ prefix for all environment variables.
    Supports loading from .env file.

    Examples:
        HREVU_DEBUG=true
        HREVU_PORT=8080
        HREVU_DIFF_CONTEXT_LINES=5
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HREVU_",
        case_sensitive=False,
        extra="ignore",
    )

    # Server configuration
    host: str = Field(
        default="127.0.0.1",
        description="Server host address",
    )
    port: Optional[int] = Field(
        default=None,
        description="Preferred server port (any free port if not specified)",
        ge=1,
        le=65535,
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level when debug mode is off",
    )

    # Review configuration
    diff_context_lines: int = Field(
        default=3,
        description="Number of context lines around each change",
        ge=0,
        le=100,
    )
    completion_grace_ms: int = Field(
        default=100,
        description="Delay after completion before the final session is read back",
        ge=0,
        le=10000,
    )
    include_untracked: bool = Field(
        default=True,
        description="Show untracked files as added in the working tree view",
    )
    watch_files: bool = Field(
        default=True,
        description="Notify the browser when files under review change",
    )
    long_poll_timeout: float = Field(
        default=25.0,
        description="Default long-polling timeout in seconds for change events",
        ge=0,
        le=60,
    )
    open_browser: bool = Field(
        default=True,
        description="Open the review page in a browser on start",
    )

    # Static files configuration
    static_dir: Optional[Path] = Field(
        default=None,
        description="Custom static files directory",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("static_dir", mode="before")
    @classmethod
    def validate_path(cls, v: Optional[str | Path]) -> Optional[Path]:
        """Convert string paths to Path objects."""
        if v is None or isinstance(v, Path):
            return v
        return Path(v)

    @property
    def completion_grace_seconds(self) -> float:
        return self.completion_grace_ms / 1000


# Global settings instance
settings = Settings()
