"""Core configuration and constants.

Uses environment variables for the backend location and client tuning. Follows PEP8 and Google style docstrings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal
import os

from pydantic import BaseModel, Field


def _env(name: str, default: str) -> str:
    return os.getenv(name, default).strip()


class Settings(BaseModel):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: App display name.
        environment: Runtime environment.
        api_host: Host of the posture backend.
        api_port: Port of the posture backend.
        api_scheme: URL scheme used to reach the backend.
        http_timeout: Per-request timeout in seconds.
        deviation_threshold_deg: Tilt angle above which an axis is flagged.
        import_selection_limit: Max images accepted by a gallery import.
        log_level: Logging level string.
        log_file: Optional path of a rotating log file.
    """

    app_name: str = "Posture Tracker"
    environment: Literal["dev", "prod", "test"] = Field(default_factory=lambda: _env("APP_ENV", "dev"))

    api_host: str = Field(default_factory=lambda: _env("API_HOST", "127.0.0.1"))
    api_port: int = Field(default_factory=lambda: int(_env("API_PORT", "3000")))
    api_scheme: str = Field(default_factory=lambda: _env("API_SCHEME", "http"))
    http_timeout: float = Field(default_factory=lambda: float(_env("HTTP_TIMEOUT", "30")))

    deviation_threshold_deg: float = Field(default_factory=lambda: float(_env("DEVIATION_THRESHOLD_DEG", "15")))
    import_selection_limit: int = Field(default_factory=lambda: int(_env("IMPORT_SELECTION_LIMIT", "50")))

    # Still capture
    camera_index: int = Field(default_factory=lambda: int(_env("CAMERA_INDEX", "0")))
    camera_width: int = Field(default_factory=lambda: int(_env("CAMERA_WIDTH", "1280")))
    camera_height: int = Field(default_factory=lambda: int(_env("CAMERA_HEIGHT", "720")))
    camera_jpeg_quality: int = Field(default_factory=lambda: int(_env("CAMERA_JPEG_QUALITY", "85")))

    log_level: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))
    log_file: str | None = Field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    @property
    def base_url(self) -> str:
        """Backend root, e.g. ``http://192.168.1.135:3000``."""

        return f"{self.api_scheme}://{self.api_host}:{self.api_port}"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
