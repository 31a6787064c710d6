from __future__ import annotations

from functools import lru_cache
from typing import Tuple, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Service identity
    # ─────────────────────────────────────────────
    SERVICE_NAME: str = Field(default="presence-guard")
    SERVICE_VERSION: str = Field(default="0.1.0")
    LOG_LEVEL: str = Field(default="INFO")

    HTTP_HOST: str = Field(default="127.0.0.1")
    HTTP_PORT: int = Field(default=7450)

    # Start monitoring as soon as the app is up
    AUTO_START: bool = Field(default=False)

    # ─────────────────────────────────────────────
    # Camera
    # ─────────────────────────────────────────────
    CAMERA_SOURCE: str = Field(
        default="0",
        description="Device index (e.g. 0) or stream URL",
    )
    CAMERA_WIDTH: int = Field(default=640)
    CAMERA_HEIGHT: int = Field(default=480)
    CAMERA_FPS: int = Field(default=15)

    # ─────────────────────────────────────────────
    # Face detector (OpenCV Haar cascade)
    # ─────────────────────────────────────────────
    FACE_CASCADE_PATH: str = Field(
        default="",
        description="Empty = cascade bundled with opencv",
    )
    FACE_SCALE_FACTOR: float = Field(default=1.1)
    FACE_MIN_NEIGHBORS: int = Field(default=5)
    FACE_MIN_SIZE: str = Field(default="60,60")

    # ─────────────────────────────────────────────
    # Timing + thresholds
    # ─────────────────────────────────────────────
    SAMPLE_INTERVAL_MS: int = Field(default=500)
    EVALUATE_INTERVAL_MS: int = Field(default=1000)
    ABSENCE_THRESHOLD_SEC: int = Field(default=5)
    LOCK_COOLDOWN_MS: int = Field(default=30_000)
    AUTO_LOCK_ENABLED: bool = Field(default=True)

    # ─────────────────────────────────────────────
    # Lock behavior
    # ─────────────────────────────────────────────
    LOCK_COMMAND: str = Field(
        default="",
        description="Overrides the per-platform lock commands when set",
    )
    LOCK_COMMAND_TIMEOUT_SEC: float = Field(default=10.0)

    EVENT_HISTORY_SIZE: int = Field(default=100)

    @field_validator(
        "SAMPLE_INTERVAL_MS",
        "EVALUATE_INTERVAL_MS",
        "ABSENCE_THRESHOLD_SEC",
        "LOCK_COMMAND_TIMEOUT_SEC",
        "EVENT_HISTORY_SIZE",
    )
    @classmethod
    def _ensure_positive(cls, v):
        if v <= 0:
            raise ValueError("Interval/threshold must be positive")
        return v

    @field_validator("LOCK_COOLDOWN_MS")
    @classmethod
    def _ensure_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("LOCK_COOLDOWN_MS must not be negative")
        return v

    @property
    def camera_source(self) -> Union[int, str]:
        # "0" means /dev/video0, anything else is handed to opencv as-is
        raw = self.CAMERA_SOURCE.strip()
        return int(raw) if raw.isdigit() else raw

    @property
    def face_min_size_tuple(self) -> Tuple[int, int]:
        x, y = self.FACE_MIN_SIZE.split(",")
        return int(x), int(y)


@lru_cache
def get_settings() -> Settings:
    return Settings()
