"""
Configuration module using Pydantic Settings for environment variable management.

Only deployment-specific values (credentials, endpoints, paths) are exposed as
environment variables. Rendering constants are hardcoded for consistency.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Instances are passed explicitly into the pipeline and its services; nothing
    reads a process-wide toggle while a render is in flight.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================
    # ENVIRONMENT VARIABLES
    # ============================================================

    # Application
    app_name: str = "highlight-renderer"
    log_level: str = "INFO"

    # Shared working directory (downloads, renders, font cache, captures)
    data_dir: str = "./data"

    # External binaries
    ffmpeg_path: str = Field(
        default="ffmpeg",
        validation_alias=AliasChoices("ffmpeg_bin_path", "ffmpeg_path"),
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        validation_alias=AliasChoices("ffprobe_bin_path", "ffprobe_path"),
    )

    # S3-compatible object storage (DigitalOcean Spaces or MinIO)
    do_spaces_endpoint: Optional[str] = None
    do_spaces_key: Optional[str] = None
    do_spaces_secret: Optional[str] = None
    do_spaces_bucket: Optional[str] = None
    do_spaces_region: str = "fra1"
    cdn_base_url: str = ""
    use_minio: bool = False

    # Mux video hosting
    mux_token_id: Optional[str] = None
    mux_token_secret: Optional[str] = None

    # Development payload capture
    capture_payloads: bool = False
    capture_task_types: str = "all"  # Comma-separated task types, or "all"
    payload_max_files_per_task: int = 10

    # Failure policy: keep rendering later parts after one fails
    continue_on_part_error: bool = True

    # Optional ceiling for a single ffmpeg run (None = wait indefinitely)
    render_timeout_seconds: Optional[float] = None

    # ============================================================
    # HARDCODED SETTINGS (not configurable via env vars)
    # ============================================================

    @property
    def utterance_gap_threshold_seconds(self) -> float:
        return 2.0

    @property
    def default_speaker_overlay_mode(self) -> Literal["always", "on_speaker_change"]:
        return "on_speaker_change"

    @property
    def fallback_dimensions(self) -> tuple[int, int]:
        return 1280, 720

    @property
    def caption_font_url(self) -> str:
        return "https://townhalls-gr.fra1.cdn.digitaloceanspaces.com/fonts/relative-book-pro.ttf"

    @property
    def caption_font_filename(self) -> str:
        return "relative-book-pro.ttf"

    @property
    def highlights_spaces_path(self) -> str:
        return "highlights"

    @property
    def download_timeout_seconds(self) -> int:
        return 300

    @property
    def mux_api_url(self) -> str:
        return "https://api.mux.com/video/v1/assets"

    @property
    def fonts_directory(self) -> str:
        return f"{self.data_dir.rstrip('/')}/fonts"

    @property
    def work_directory(self) -> str:
        return f"{self.data_dir.rstrip('/')}/work"

    @property
    def payload_capture_directory(self) -> str:
        return f"{self.data_dir.rstrip('/')}/dev-payloads"

    def get_capture_task_types(self) -> list[str] | Literal["all"]:
        """Parse the comma-separated capture task list."""
        raw = self.capture_task_types.strip()
        if not raw or raw == "all":
            return "all"
        return [t.strip() for t in raw.split(",") if t.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
