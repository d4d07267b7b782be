"""
Consolidated configuration system for telemorph.

This module provides a centralized Pydantic-based configuration system that groups
tool locations, supervision timing, scheduling constants, encoder defaults and the
Telegram upload limits into a single structure with environment variable support.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# TOOL SETTINGS
# =============================================================================

class ToolSettings(BaseModel):
    """Locations of the external executables."""

    ffmpeg_path: Annotated[str, Field(
        default="ffmpeg",
        min_length=1,
        description="Path or name of the ffmpeg executable"
    )] = "ffmpeg"

    magick_path: Annotated[str, Field(
        default="magick",
        min_length=1,
        description="Path or name of the ImageMagick 'magick' executable"
    )] = "magick"


# =============================================================================
# TIME SETTINGS
# =============================================================================

class TimeSettings(BaseModel):
    """Time interval configurations for process supervision."""

    poll_interval: Annotated[float, Field(
        default=0.05,
        gt=0.0,
        le=1.0,
        description="Interval in seconds between child liveness and cancellation checks"
    )] = 0.05

    kill_grace_period: Annotated[float, Field(
        default=2.0,
        gt=0.0,
        description="Seconds to wait for a killed process tree to disappear"
    )] = 2.0


# =============================================================================
# SCHEDULE SETTINGS
# =============================================================================

class ScheduleSettings(BaseModel):
    """Configuration for playback schedule construction."""

    min_frame_duration: Annotated[float, Field(
        default=0.001,
        ge=1e-8,
        description="Floor in seconds applied to every frame duration (smallest value an ffconcat duration can show)"
    )] = 0.001

    mismatch_warn_threshold: Annotated[int, Field(
        default=2,
        ge=0,
        description="Frame/delay count difference above which a warning is logged"
    )] = 2


# =============================================================================
# ENCODE SETTINGS
# =============================================================================

class EncodeSettings(BaseModel):
    """Encoder defaults."""

    default_crf: Annotated[int, Field(
        default=38,
        ge=0,
        le=51,
        description="VP9 constant rate factor (higher = smaller file, lower quality)"
    )] = 38

    default_threads: Annotated[int, Field(
        default=4,
        ge=1,
        description="Thread count handed to ffmpeg"
    )] = 4

    row_multithreading: Annotated[bool, Field(
        default=True,
        description="Enable libvpx row based multithreading (-row-mt 1)"
    )] = True


# =============================================================================
# TELEGRAM LIMITS
# =============================================================================

class TelegramLimits(BaseModel):
    """Upload limits of Telegram video stickers and custom emoji."""

    max_size_kb: Annotated[float, Field(default=256.0, gt=0.0)] = 256.0
    max_fps: Annotated[int, Field(default=30, gt=0)] = 30
    max_duration: Annotated[float, Field(default=3.0, gt=0.0)] = 3.0


# =============================================================================
# ENUMS
# =============================================================================

class TargetKind(str, Enum):
    """Output variant."""

    STICKER = "sticker"
    EMOJI = "emoji"


class DurationPolicy(str, Enum):
    """How a schedule longer than the maximum duration is brought under it."""

    CUT = "cut"
    FIT = "fit"


# =============================================================================
# CONVERSION PROFILE
# =============================================================================

STICKER_SIDE = 512
EMOJI_SIDE = 100


class ConversionProfile(BaseModel):
    """Target geometry and timing limits for one output variant."""

    model_config = ConfigDict(frozen=True)

    kind: TargetKind
    width: Annotated[int, Field(gt=0)]
    height: Annotated[int, Field(gt=0)]
    max_fps: Annotated[int, Field(gt=0)]
    max_duration: Annotated[float, Field(gt=0.0)]
    variable_height: bool = False

    @field_validator("variable_height")
    @classmethod
    def validate_variable_height(cls, v, info):
        """Adaptive height only applies to stickers."""
        if v and info.data.get("kind") == TargetKind.EMOJI:
            raise ValueError("variable_height is only supported for stickers")
        return v

    @property
    def is_adaptive(self) -> bool:
        """True for stickers scaled so only the longer side hits the canvas size."""
        return self.kind == TargetKind.STICKER and self.variable_height

    @classmethod
    def sticker(cls, max_fps: int, max_duration: float, variable_height: bool = False) -> ConversionProfile:
        """Telegram video sticker (512x512 canvas)."""
        return cls(
            kind=TargetKind.STICKER,
            width=STICKER_SIDE,
            height=STICKER_SIDE,
            max_fps=max_fps,
            max_duration=max_duration,
            variable_height=variable_height,
        )

    @classmethod
    def emoji(cls, max_fps: int, max_duration: float) -> ConversionProfile:
        """Telegram custom emoji (100x100 canvas)."""
        return cls(
            kind=TargetKind.EMOJI,
            width=EMOJI_SIDE,
            height=EMOJI_SIDE,
            max_fps=max_fps,
            max_duration=max_duration,
        )


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseSettings):
    """
    Main application configuration with environment variable support.

    All settings can be overridden via environment variables with TELEMORPH_ prefix.
    Example: TELEMORPH_TOOLS__FFMPEG_PATH=/opt/ffmpeg/bin/ffmpeg
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEMORPH_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    tools: ToolSettings = ToolSettings()
    time: TimeSettings = TimeSettings()
    schedule: ScheduleSettings = ScheduleSettings()
    encode: EncodeSettings = EncodeSettings()
    telegram: TelegramLimits = TelegramLimits()


# =============================================================================
# DEFAULT INSTANCE
# =============================================================================

app_config = AppConfig()

POLL_INTERVAL = app_config.time.poll_interval
KILL_GRACE_PERIOD = app_config.time.kill_grace_period
MIN_FRAME_DURATION = app_config.schedule.min_frame_duration
MISMATCH_WARN_THRESHOLD = app_config.schedule.mismatch_warn_threshold
DEFAULT_CRF = app_config.encode.default_crf
DEFAULT_THREADS = app_config.encode.default_threads
TELEGRAM_MAX_SIZE_KB = app_config.telegram.max_size_kb
TELEGRAM_MAX_FPS = app_config.telegram.max_fps
TELEGRAM_MAX_DURATION = app_config.telegram.max_duration


def create_config_from_env() -> AppConfig:
    """Create a new configuration instance from environment variables."""
    return AppConfig()
