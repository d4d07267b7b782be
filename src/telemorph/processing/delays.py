"""
Per-frame delay reading.

ImageMagick's ``identify -format "%T\\n"`` prints one delay per frame in
centiseconds. Delays are returned in seconds, floored at the minimum frame
duration so no frame ends up with a zero or negative display time.
"""

from __future__ import annotations

import re
import threading
from pathlib import Path

from ..config import MIN_FRAME_DURATION
from ..core.exceptions import NoTimingDataError
from ..output.logger import SimpleLogger
from ..utils.subprocess import run_process

DELAY_FORMAT = "%T\\n"

# ASCII digits only; int() would also take "1_0" and non-ASCII digits
INTEGER_TOKEN = re.compile(r"[+-]?[0-9]+")


def build_identify_cmd(magick_path: str, src: Path) -> list[str]:
    """Command printing one centisecond delay per frame of ``src``."""
    return [magick_path, "identify", "-format", DELAY_FORMAT, str(src)]


def parse_frame_delays(output: str, min_duration: float = MIN_FRAME_DURATION) -> tuple[list[float], int]:
    """Parse identify output into delays in seconds.

    Lines that are not plain ASCII integers are skipped. Blank lines are ignored.

    Returns:
        (delays, skipped_line_count)
    """
    delays: list[float] = []
    skipped = 0
    for line in output.splitlines():
        token = line.strip()
        if not token:
            continue
        if INTEGER_TOKEN.fullmatch(token) is None:
            skipped += 1
            continue
        delays.append(max(int(token) / 100.0, min_duration))
    return delays, skipped


def read_frame_delays(
    src: Path,
    *,
    magick_path: str = "magick",
    cancel_event: threading.Event | None = None,
    min_duration: float = MIN_FRAME_DURATION,
    logger: SimpleLogger | None = None,
) -> list[float]:
    """Query ``src`` for its frame delays.

    Raises:
        NoTimingDataError: No line of the output could be parsed.
    """
    result = run_process(
        build_identify_cmd(magick_path, src),
        display_name="magick identify",
        cancel_event=cancel_event,
        capture_stdout=True,
        logger=logger,
    )
    delays, skipped = parse_frame_delays(result.stdout, min_duration)
    if not delays:
        raise NoTimingDataError(f"Failed to read frame delays from {src.name}; input may not be animated.")
    if skipped and logger is not None:
        logger.warning(f"{skipped} frame delay line(s) could not be parsed and were skipped.")
    return delays
