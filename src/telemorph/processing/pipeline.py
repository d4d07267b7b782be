"""
Conversion pipeline: animated image -> Telegram WEBM sticker/emoji.

Steps run strictly in sequence inside a private temporary workspace:
extract frames, read delays, build and write the schedule, encode. The
workspace is removed however the conversion ends.
"""

from __future__ import annotations

import contextlib
import shutil
import tempfile
import threading
import uuid
from collections.abc import Iterator
from pathlib import Path

from ..config import (
    DEFAULT_THREADS,
    MIN_FRAME_DURATION,
    MISMATCH_WARN_THRESHOLD,
    ConversionProfile,
    DurationPolicy,
)
from ..core.exceptions import ConversionCancelled
from ..core.types import PlaybackSchedule
from ..output.logger import NullLogger, SimpleLogger
from .concat import write_concat_file
from .delays import read_frame_delays
from .ffmpeg import encode_webm
from .frames import extract_frames
from .schedule import build_schedule

WORKSPACE_PREFIX = "telemorph_"


@contextlib.contextmanager
def scoped_workspace(logger: SimpleLogger, base_dir: Path | None = None) -> Iterator[Path]:
    """Create a uniquely named temp directory and always try to delete it.

    A failed deletion is logged and never replaces the outcome of the body.
    """
    workspace = Path(tempfile.gettempdir() if base_dir is None else base_dir) / (
        WORKSPACE_PREFIX + uuid.uuid4().hex
    )
    workspace.mkdir(parents=True)
    try:
        yield workspace
    finally:
        try:
            shutil.rmtree(workspace)
        except OSError as e:
            logger.warning(f"Failed to delete temp dir '{workspace}': {e}")


def _check_cancelled(cancel_event: threading.Event | None, step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled(f"Cancelled before {step}")


class StickerConverter:
    """Converts animated images (gif/webp/...) to VP9 WEBM.

    ImageMagick extracts the frames and their delays; ffmpeg encodes them.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        magick_path: str = "magick",
        *,
        threads: int = DEFAULT_THREADS,
        row_mt: bool = True,
        min_frame_duration: float = MIN_FRAME_DURATION,
        mismatch_warn_threshold: int = MISMATCH_WARN_THRESHOLD,
        workspace_root: Path | None = None,
        logger: SimpleLogger | None = None,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.magick_path = magick_path
        self.threads = threads
        self.row_mt = row_mt
        self.min_frame_duration = min_frame_duration
        self.mismatch_warn_threshold = mismatch_warn_threshold
        self.workspace_root = workspace_root
        self.logger = logger or NullLogger()

    def convert(
        self,
        src: Path,
        out_path: Path,
        profile: ConversionProfile,
        crf: int,
        *,
        overwrite: bool = True,
        policy: DurationPolicy = DurationPolicy.CUT,
        cancel_event: threading.Event | None = None,
    ) -> Path:
        """Run the full conversion and return ``out_path``.

        Raises:
            FileNotFoundError: ``src`` does not exist.
            TelemorphError: A tool failed or the input was unusable.
            ConversionCancelled: ``cancel_event`` was set.
        """
        if not src.is_file():
            raise FileNotFoundError(f"Input file not found: {src}")
        out_path.parent.mkdir(parents=True, exist_ok=True)

        with scoped_workspace(self.logger, self.workspace_root) as workspace:
            self.logger.debug(f"Workspace: {workspace}")

            _check_cancelled(cancel_event, "frame extraction")
            frames = extract_frames(
                src, workspace, magick_path=self.magick_path, cancel_event=cancel_event, logger=self.logger
            )

            _check_cancelled(cancel_event, "reading frame delays")
            delays = read_frame_delays(
                src,
                magick_path=self.magick_path,
                cancel_event=cancel_event,
                min_duration=self.min_frame_duration,
                logger=self.logger,
            )

            _check_cancelled(cancel_event, "building the schedule")
            schedule = self.plan(frames, delays, profile, policy)
            list_file = write_concat_file(schedule, workspace)

            _check_cancelled(cancel_event, "encoding")
            return encode_webm(
                list_file,
                out_path,
                profile,
                crf,
                overwrite=overwrite,
                threads=self.threads,
                row_mt=self.row_mt,
                ffmpeg_path=self.ffmpeg_path,
                cancel_event=cancel_event,
                logger=self.logger,
            )

    def plan(
        self,
        frames: list[Path],
        delays: list[float],
        profile: ConversionProfile,
        policy: DurationPolicy,
    ) -> PlaybackSchedule:
        """Build the schedule and report anything suspicious about it."""
        mismatch = abs(len(frames) - len(delays))
        if mismatch > self.mismatch_warn_threshold:
            self.logger.warning(
                f"Frame count ({len(frames)}) and delay count ({len(delays)}) differ by {mismatch}; "
                "using the shorter sequence."
            )

        schedule = build_schedule(
            frames, delays, profile.max_duration, policy, min_duration=self.min_frame_duration
        )

        used = min(len(frames), len(delays))
        if len(schedule) < used:
            self.logger.info(
                f"Cut at {profile.max_duration:g}s: kept {len(schedule)} of {used} frame(s) "
                f"({schedule.total_duration:.3f}s)."
            )
        else:
            self.logger.info(f"Scheduled {len(schedule)} frame(s), {schedule.total_duration:.3f}s total.")

        min_interval = 1.0 / profile.max_fps
        too_short = sum(1 for e in schedule.entries if (e.duration or 0.0) < min_interval)
        if too_short:
            self.logger.warning(
                f"{too_short} frame(s) last less than 1/{profile.max_fps}s and exceed the target frame rate."
            )
        return schedule
