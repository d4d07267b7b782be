"""
FFmpeg command building and VP9 WEBM encoding.

Consumes an ffconcat playlist and produces an alpha-preserving VP9 WEBM sized
for the target profile.
"""

from __future__ import annotations

import threading
from pathlib import Path

from ..config import ConversionProfile
from ..output.logger import SimpleLogger
from ..utils.subprocess import run_process

VIDEO_CODEC = "libvpx-vp9"
PIXEL_FORMAT = "yuva420p"
TRANSPARENT = "0x00000000"


def format_seconds(seconds: float) -> str:
    """Up to three fractional digits, no trailing zeros."""
    return f"{seconds:.3f}".rstrip("0").rstrip(".") or "0"


class FFmpegCommandBuilder:
    """Builder class for constructing FFmpeg commands."""

    @staticmethod
    def build_video_filter(profile: ConversionProfile) -> str:
        """Scale/pad/format chain for the profile.

        Adaptive stickers get their longer side scaled to the profile width and
        the other side scaled proportionally to an even size. Fixed canvases are
        fitted inside width x height and padded to it with transparent pixels.
        """
        if profile.is_adaptive:
            side = profile.width
            return (
                f"scale='if(gt(iw,ih),{side},-2)':'if(gt(iw,ih),-2,{side})':flags=lanczos,"
                f"format={PIXEL_FORMAT}"
            )

        w, h = profile.width, profile.height
        return (
            f"scale={w}:{h}:force_original_aspect_ratio=decrease:flags=lanczos,"
            f"pad={w}:{h}:({w}-iw)/2:({h}-ih)/2:color={TRANSPARENT},"
            f"format={PIXEL_FORMAT}"
        )

    @staticmethod
    def build_encode_cmd(
        list_file: Path,
        out_path: Path,
        profile: ConversionProfile,
        crf: int,
        *,
        overwrite: bool = True,
        threads: int = 4,
        row_mt: bool = True,
        ffmpeg_path: str = "ffmpeg",
    ) -> list[str]:
        """Create the ffmpeg command encoding an ffconcat playlist to WEBM."""
        cmd = [
            ffmpeg_path,
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y" if overwrite else "-n",
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_file),
            "-t", format_seconds(profile.max_duration),
            "-vf", FFmpegCommandBuilder.build_video_filter(profile),
            "-fps_mode", "vfr",
            "-c:v", VIDEO_CODEC,
            "-pix_fmt", PIXEL_FORMAT,
            "-b:v", "0",
            "-crf", str(crf),
            "-an",
        ]
        if row_mt:
            cmd += ["-row-mt", "1"]
        cmd += ["-threads", str(max(1, threads)), str(out_path)]
        return cmd


def encode_webm(
    list_file: Path,
    out_path: Path,
    profile: ConversionProfile,
    crf: int,
    *,
    overwrite: bool = True,
    threads: int = 4,
    row_mt: bool = True,
    ffmpeg_path: str = "ffmpeg",
    cancel_event: threading.Event | None = None,
    logger: SimpleLogger | None = None,
) -> Path:
    """Encode ``list_file`` into ``out_path``.

    Raises:
        ToolExecutionError: ffmpeg exited non-zero; carries its stderr.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = FFmpegCommandBuilder.build_encode_cmd(
        list_file,
        out_path,
        profile,
        crf,
        overwrite=overwrite,
        threads=threads,
        row_mt=row_mt,
        ffmpeg_path=ffmpeg_path,
    )
    run_process(cmd, display_name="ffmpeg", cancel_event=cancel_event, logger=logger)
    return out_path
