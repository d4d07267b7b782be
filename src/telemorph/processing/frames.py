"""
Frame extraction with ImageMagick.

The source is coalesced so every output file is a fully composited frame,
with alpha kept and a transparent background. Files are numbered with a
fixed-width index so name order equals frame order.
"""

from __future__ import annotations

import threading
from pathlib import Path

from ..core.exceptions import NoFramesProducedError
from ..output.logger import SimpleLogger
from ..utils.subprocess import run_process
from .image import has_alpha_channel, image_dimensions

FRAME_PREFIX = "frame-"
FRAME_EXT = ".png"
FRAME_PATTERN = f"{FRAME_PREFIX}%05d{FRAME_EXT}"
FRAME_GLOB = f"{FRAME_PREFIX}*{FRAME_EXT}"


def build_extract_cmd(magick_path: str, src: Path, frames_dir: Path) -> list[str]:
    """Command splitting ``src`` into coalesced RGBA PNG frames inside ``frames_dir``."""
    return [
        magick_path,
        str(src),
        "-coalesce",
        "-alpha", "set",
        "-background", "none",
        str(frames_dir / FRAME_PATTERN),
    ]


def list_frame_files(frames_dir: Path) -> list[Path]:
    """Extracted frames in playback order."""
    return sorted(frames_dir.glob(FRAME_GLOB), key=lambda p: p.name)


def extract_frames(
    src: Path,
    frames_dir: Path,
    *,
    magick_path: str = "magick",
    cancel_event: threading.Event | None = None,
    logger: SimpleLogger | None = None,
) -> list[Path]:
    """Decompose ``src`` into frame files and return them in order.

    Raises:
        NoFramesProducedError: The tool succeeded but wrote no frames.
    """
    frames_dir.mkdir(parents=True, exist_ok=True)
    run_process(
        build_extract_cmd(magick_path, src, frames_dir),
        display_name="magick",
        cancel_event=cancel_event,
        logger=logger,
    )

    frames = list_frame_files(frames_dir)
    if not frames:
        raise NoFramesProducedError("ImageMagick produced no frames. Input may be invalid.")

    if logger is not None:
        w, h = image_dimensions(frames[0])
        logger.info(f"Extracted {len(frames)} frame(s) at {w}x{h}")
        if not has_alpha_channel(frames[0]):
            logger.warning(f"{frames[0].name} has no alpha channel; transparency will be lost.")
    return frames
