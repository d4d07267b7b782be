"""
External tool validation utilities for telemorph.

This module handles validation of the external executables required for
the conversion pipeline.
"""

from __future__ import annotations

from shutil import which


def check_tools(ffmpeg_path: str = "ffmpeg", magick_path: str = "magick") -> tuple[bool, list[str]]:
    """Check availability of required external tools.

    Args:
        ffmpeg_path: Name or path of the ffmpeg executable.
        magick_path: Name or path of the ImageMagick executable.

    Returns:
        Tuple[bool, List[str]]: (all_ok, problems). If `all_ok` is False, problems lists the issues.
    """
    problems: list[str] = []
    if which(ffmpeg_path) is None:
        problems.append(f"ffmpeg not found: {ffmpeg_path}")
    if which(magick_path) is None:
        problems.append(f"ImageMagick not found: {magick_path}")
    return (len(problems) == 0, problems)
