# core/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


# Project root: .../melody-midi
BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """
    melody-midi settings.

    Reads from:
    - environment variables
    - .env in project root

    The MIDI encoder itself is not configurable (fixed 120 BPM clock,
    128 ticks per quarter note); these settings only shape the HTTP
    service, the generators' defaults and the preview renderer.
    """

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ---- Environment / server ----
    app_env: str = Field(default="development", validation_alias="APP_ENV")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")

    # Comma-separated, only used outside development
    cors_allow_origins: Optional[str] = Field(
        default=None, validation_alias="CORS_ALLOW_ORIGINS"
    )

    # ---- Paths ----
    output_dir: Path = Field(
        default=Path("outputs"),
        validation_alias=AliasChoices("OUTPUT_DIR", "MIDI_OUTPUT_DIR"),
    )

    # ---- Generation ----
    default_bars: int = Field(default=16, validation_alias="DEFAULT_BARS")
    max_bars: int = Field(default=64, validation_alias="MAX_BARS")

    # ---- Preview rendering ----
    sample_rate: int = Field(default=44100, validation_alias="SAMPLE_RATE")
    max_render_seconds: float = Field(default=600.0, validation_alias="MAX_RENDER_SECONDS")

    def model_post_init(self, __context) -> None:
        # 1) Normalize paths to absolute, relative to BASE_DIR
        self.output_dir = self._abs_path(self.output_dir)

        # 2) Ensure runtime directories exist
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # 3) Clamps
        if self.max_bars <= 0:
            self.max_bars = 64
        if self.default_bars <= 0:
            self.default_bars = 16
        if self.default_bars > self.max_bars:
            self.default_bars = self.max_bars

        if self.sample_rate < 8000:
            self.sample_rate = 44100
        if self.max_render_seconds <= 0:
            self.max_render_seconds = 600.0

    @staticmethod
    def _abs_path(p: Path) -> Path:
        if p.is_absolute():
            return p
        return (BASE_DIR / p).resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
