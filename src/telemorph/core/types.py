"""
Core data types for telemorph.

Plain immutable value types passed between the processing steps. Configuration
and profile models live in ``telemorph.config``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ScheduleEntry:
    """One frame of the output schedule.

    ``duration`` is None only for the terminal sentinel.
    """

    frame: Path
    duration: float | None


@dataclass(frozen=True)
class PlaybackSchedule:
    """Ordered frame entries followed by a sentinel repeating the last shown frame."""

    entries: tuple[ScheduleEntry, ...]
    sentinel: ScheduleEntry

    def __post_init__(self) -> None:
        if not self.entries:
            raise ValueError("PlaybackSchedule requires at least one timed entry")
        if self.sentinel.duration is not None:
            raise ValueError("Sentinel entry must not carry a duration")

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def total_duration(self) -> float:
        """Sum of the timed entries in seconds."""
        return sum(e.duration or 0.0 for e in self.entries)

    @property
    def frames(self) -> list[Path]:
        """Frames of the timed entries, in playback order."""
        return [e.frame for e in self.entries]


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of a finished external tool invocation."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
