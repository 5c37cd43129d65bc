import json
from functools import lru_cache
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BEATCUT_",
        extra="ignore",
    )

    # Application
    app_name: str = "Beatcut API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via BEATCUT_GIT_HASH at build time
    debug: bool = True
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://127.0.0.1:5173"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Local storage
    data_dir: str = "./data"

    @property
    def uploads_dir(self) -> Path:
        return Path(self.data_dir) / "uploads"

    @property
    def temp_dir(self) -> Path:
        return Path(self.data_dir) / "temp"

    @property
    def output_dir(self) -> Path:
        return Path(self.data_dir) / "output"

    # File Upload
    max_upload_size_mb: int = 500

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Target format (what every segment is normalized to)
    target_frame_rate: int = 24
    target_video_codec: str = "h264"
    target_audio_codec: str = "aac"

    # Encoder settings
    video_encoder: str = "libx264"
    audio_encoder: str = "aac"
    video_crf: int = 0
    audio_sample_rate: int = 48000
    audio_channels: int = 2
    standardize_audio_bitrate: str = "140k"
    final_audio_bitrate: str = "192k"

    # Beat sync
    tail_interval_seconds: float = 2.0

    # Progress estimation (seconds per unit of work)
    validation_seconds_per_file: float = 5.0
    processing_seconds_per_clip: float = 10.0
    # Concat and audio mux together
    finishing_seconds: float = 30.0
    # Share of the overall 0-100 range given to the validation phase
    validation_overall_share: float = 50.0

    # Housekeeping
    file_max_age_seconds: int = 24 * 60 * 60
    cleanup_interval_seconds: int = 60 * 60


@lru_cache
def get_settings() -> Settings:
    return Settings()
