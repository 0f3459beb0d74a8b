"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "Video Asset Service"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./videos.db"

    # Storage - primary assets are written under this folder, derived
    # assets under <folder>/<video id>/<resolution>p/
    VIDEO_STORAGE_PATH: str = "./storage/videos"

    # Transcoding engine binaries
    FFMPEG_PATH: str = "ffmpeg"
    FFPROBE_PATH: str = "ffprobe"

    # Transcoding
    TRANSCODE_RESOLUTIONS: list[int] = [720, 480]
    TRANSCODE_MAX_CONCURRENT_JOBS: int = 2  # per encode batch
    TRANSCODE_TIMEOUT_SECONDS: Optional[float] = None
    ENCODE_ON_UPLOAD: bool = True

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
