"""
ffconcat playlist reading and writing.

Format consumed by ffmpeg's concat demuxer::

    ffconcat version 1.0
    file '/tmp/x/frame-00000.png'
    duration 0.1
    ...
    file '/tmp/x/frame-00009.png'

The final ``file`` line has no duration; it marks where the previous entry ends.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from pathlib import Path

from ..core.types import PlaybackSchedule

CONCAT_HEADER = "ffconcat version 1.0"
CONCAT_FILENAME = "frames.ffconcat"
DURATION_DIGITS = 8


def escape_concat_path(path: Path | str) -> str:
    """Forward slashes only, single quotes escaped for a single-quoted token."""
    return str(path).replace("\\", "/").replace("'", "'\\''")


def format_duration(seconds: float) -> str:
    """Fixed-point seconds with up to 8 fractional digits and no trailing zeros."""
    text = f"{seconds:.{DURATION_DIGITS}f}".rstrip("0").rstrip(".")
    return text or "0"


def render_concat(schedule: PlaybackSchedule) -> str:
    """Serialize ``schedule`` to ffconcat text."""
    lines = [CONCAT_HEADER]
    for entry in schedule.entries:
        lines.append(f"file '{escape_concat_path(entry.frame)}'")
        lines.append(f"duration {format_duration(entry.duration)}")
    lines.append(f"file '{escape_concat_path(schedule.sentinel.frame)}'")
    return "\n".join(lines) + "\n"


def write_concat_file(schedule: PlaybackSchedule, target_dir: Path, name: str = CONCAT_FILENAME) -> Path:
    """Write ``schedule`` as an ffconcat file inside ``target_dir``.

    The file is written to a temporary sibling and renamed into place.

    Returns:
        Path to the created ffconcat file.
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    list_path = target_dir / name
    fd, tmp_name = tempfile.mkstemp(dir=target_dir, prefix=f".{name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(render_concat(schedule))
        os.replace(tmp_name, list_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return list_path


def parse_concat(text: str) -> list[tuple[str, float | None]]:
    """Parse ffconcat text back into ordered (path, duration) pairs.

    The last pair is the sentinel and has a duration of None.

    Raises:
        ValueError: Missing header, unknown directive or a duration without a file.
    """
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines or lines[0] != CONCAT_HEADER:
        raise ValueError("Missing ffconcat header")

    pairs: list[tuple[str, float | None]] = []
    for line in lines[1:]:
        directive, _, rest = line.partition(" ")
        if directive == "file":
            parts = shlex.split(rest)
            if len(parts) != 1:
                raise ValueError(f"Malformed file line: {line!r}")
            pairs.append((parts[0], None))
        elif directive == "duration":
            if not pairs or pairs[-1][1] is not None:
                raise ValueError(f"Duration without a preceding file: {line!r}")
            pairs[-1] = (pairs[-1][0], float(rest))
        else:
            raise ValueError(f"Unknown directive: {directive!r}")
    return pairs


def read_concat_file(path: Path) -> list[tuple[str, float | None]]:
    """Load and parse an ffconcat file."""
    return parse_concat(path.read_text(encoding="utf-8"))
