"""
Playback schedule construction.

Combines the extracted frame files with their delays and brings the total
playback time under a maximum duration using one of two policies:

- ``DurationPolicy.CUT`` keeps the original timing and drops trailing frames.
- ``DurationPolicy.FIT`` keeps every frame and compresses time proportionally.
  Clips already shorter than the maximum are never slowed down.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ..config import MIN_FRAME_DURATION, DurationPolicy
from ..core.exceptions import EmptyFrameSetError
from ..core.types import PlaybackSchedule, ScheduleEntry

# Absorbs float accumulation error when frames add up to exactly the limit
DURATION_EPSILON = 1e-9


def _cut(frames: Sequence[Path], delays: Sequence[float], max_duration: float) -> list[ScheduleEntry]:
    entries: list[ScheduleEntry] = []
    acc = 0.0
    for frame, dur in zip(frames, delays):
        if acc + dur > max_duration + DURATION_EPSILON:
            break
        entries.append(ScheduleEntry(frame, dur))
        acc += dur
    if not entries:
        # First frame alone is longer than the limit: show it for the whole budget
        entries.append(ScheduleEntry(frames[0], max_duration))
    return entries


def fit_scale(delays: Sequence[float], max_duration: float, min_duration: float = MIN_FRAME_DURATION) -> float:
    """Factor applied to every delay so the total fits ``max_duration``; never above 1.0."""
    total = sum(delays)
    if total <= 0:
        total = len(delays) * min_duration
    return max_duration / total if total > max_duration else 1.0


def _fit(
    frames: Sequence[Path], delays: Sequence[float], max_duration: float, min_duration: float
) -> list[ScheduleEntry]:
    scale = fit_scale(delays, max_duration, min_duration)
    return [ScheduleEntry(frame, max(dur * scale, min_duration)) for frame, dur in zip(frames, delays)]


def build_schedule(
    frames: Sequence[Path],
    delays: Sequence[float],
    max_duration: float,
    policy: DurationPolicy = DurationPolicy.CUT,
    *,
    min_duration: float = MIN_FRAME_DURATION,
) -> PlaybackSchedule:
    """Build the playback schedule for ``frames``.

    Only the first ``min(len(frames), len(delays))`` frames are used.

    Args:
        frames: Frame files in playback order.
        delays: Display time of each frame in seconds.
        max_duration: Upper bound for the schedule length in seconds.
        policy: Cut trailing frames or fit all frames into the budget.
        min_duration: Floor for every scaled duration.

    Raises:
        EmptyFrameSetError: No frame has both a file and a delay.
        ValueError: ``max_duration`` is not positive.
    """
    if max_duration <= 0:
        raise ValueError(f"max_duration must be positive, got {max_duration}")

    count = min(len(frames), len(delays))
    if count == 0:
        raise EmptyFrameSetError(
            f"No frames to schedule ({len(frames)} frame file(s), {len(delays)} delay(s))."
        )

    usable_frames = list(frames[:count])
    usable_delays = [max(float(d), min_duration) for d in delays[:count]]

    if DurationPolicy(policy) is DurationPolicy.FIT:
        entries = _fit(usable_frames, usable_delays, max_duration, min_duration)
    else:
        entries = _cut(usable_frames, usable_delays, max_duration)

    return PlaybackSchedule(entries=tuple(entries), sentinel=ScheduleEntry(entries[-1].frame, None))
