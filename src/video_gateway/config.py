"""Configuration settings for video gateway."""

import shlex
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"
    shutdown_grace_seconds: int = 10  # connection drain on SIGTERM/SIGINT

    # CORS (comma-separated)
    allowed_origins: str = (
        "https://yt-video-downloader-lilac.vercel.app,"
        "http://localhost:5173,"
        "http://localhost:3000"
    )
    cors_enforce: bool = True  # False grants disallowed origins but logs them

    # Rate limiting, per client address
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 900  # 15 minutes

    # Extractor
    extractor_command: str = "yt-dlp"
    cookies_path: Path | None = None
    metadata_timeout: float = 30.0  # seconds
    title_timeout: float = 15.0
    formats_timeout: float = 30.0
    stream_start_timeout: float = 60.0

    # Scratch directory
    temp_dir: Path = Path("temp")
    temp_retention_seconds: int = 3600
    cleanup_interval_seconds: int = 3600

    @field_validator("cookies_path", mode="before")
    @classmethod
    def _blank_cookies_path(cls, value):
        # COOKIES_PATH= in compose files and .env means unset
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def origin_allowlist(self) -> tuple[str, ...]:
        """Get allowed origins in configured order, without duplicates."""
        origins = [o.strip().rstrip("/") for o in self.allowed_origins.split(",")]
        return tuple(dict.fromkeys(o for o in origins if o))

    @property
    def extractor_argv(self) -> list[str]:
        """Get the extractor command as an argv prefix."""
        return shlex.split(self.extractor_command)

    @property
    def temp_directory(self) -> Path:
        """Get absolute scratch directory path."""
        return self.temp_dir.resolve()


settings = Settings()
