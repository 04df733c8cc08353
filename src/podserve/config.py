"""Central configuration management using pydantic-settings.

All configuration is loaded from environment variables with sensible defaults.
Create a .env file for local development (see .env.example).
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=8080, description="Port to listen on")


class UploadSettings(BaseSettings):
    """Upload limits for audio and artwork."""

    model_config = SettingsConfigDict(env_prefix="UPLOAD_")

    max_file_size_mb: int = Field(default=500, description="Max audio upload size in MB")
    max_artwork_size_mb: int = Field(default=5, description="Max artwork upload size in MB")
    allowed_extensions: list[str] = Field(
        default=[".mp3"], description="Accepted audio file extensions"
    )


class PathSettings(BaseSettings):
    """Filesystem locations for the feed and media files."""

    model_config = SettingsConfigDict(env_prefix="PATHS_")

    data_dir: Path = Field(default=Path("./data"), description="Root data directory")
    audio_dir: Path = Field(default=Path("./data/audio"), description="Uploaded audio files")
    artwork_dir: Path = Field(default=Path("./data/artwork"), description="Uploaded artwork")
    rss_file: Path = Field(default=Path("./data/podcast.xml"), description="Persisted feed")


class Settings(BaseSettings):
    """Main application settings aggregating all config sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(description="Public base URL used to build absolute feed links")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_json: bool = Field(default=False, description="Emit JSON logs instead of console output")

    # Sub-configurations
    server: ServerSettings = Field(default_factory=ServerSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) URL with a host and drop any trailing slash."""
        value = value.strip()
        if not value:
            raise ValueError("base_url is required")

        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"base_url must use http or https scheme, got: {parsed.scheme!r}")
        if not parsed.netloc:
            raise ValueError("base_url must include a host (e.g., http://example.com)")

        return value.rstrip("/")

    @property
    def feed_url(self) -> str:
        """Absolute URL of the served feed."""
        return f"{self.base_url}/feed.xml"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
