from __future__ import annotations

from pathlib import Path

import pytest

from telemorph.config import DurationPolicy
from telemorph.core.types import PlaybackSchedule, ScheduleEntry
from telemorph.processing.concat import (
    CONCAT_HEADER,
    escape_concat_path,
    format_duration,
    parse_concat,
    read_concat_file,
    render_concat,
    write_concat_file,
)
from telemorph.processing.schedule import build_schedule


def test_escape_concat_path_quotes_and_backslashes():
    assert escape_concat_path("C:\\tmp\\frame-00001.png") == "C:/tmp/frame-00001.png"
    assert escape_concat_path("/tmp/it's/frame.png") == "/tmp/it'\\''s/frame.png"


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.1, "0.1"),
        (1.0, "1"),
        (0.001, "0.001"),
        (1 / 3, "0.33333333"),
        (0.123456789, "0.12345679"),
        (2.5, "2.5"),
        (1e-9, "0"),
        (12345.5, "12345.5"),
    ],
)
def test_format_duration_is_fixed_point(value, expected):
    assert format_duration(value) == expected


def test_render_concat_layout():
    a, b = Path("/w/frame-00000.png"), Path("/w/frame-00001.png")
    schedule = PlaybackSchedule(
        entries=(ScheduleEntry(a, 0.1), ScheduleEntry(b, 0.25)),
        sentinel=ScheduleEntry(b, None),
    )

    text = render_concat(schedule)

    assert text == (
        f"{CONCAT_HEADER}\n"
        "file '/w/frame-00000.png'\n"
        "duration 0.1\n"
        "file '/w/frame-00001.png'\n"
        "duration 0.25\n"
        "file '/w/frame-00001.png'\n"
    )


def test_write_concat_file_roundtrip(tmp_path: Path):
    frames = [tmp_path / f"it's frame-{i:05d}.png" for i in range(5)]
    delays = [0.3, 0.07, 0.5, 0.01, 0.2]
    schedule = build_schedule(frames, delays, 1.0, DurationPolicy.FIT)

    list_path = write_concat_file(schedule, tmp_path)

    raw = list_path.read_bytes()
    assert not raw.startswith(b"\xef\xbb\xbf")
    assert b"\r\n" not in raw
    assert raw.endswith(b"\n")
    # Only the final file remains, no temporary siblings
    assert [p.name for p in tmp_path.iterdir() if "ffconcat" in p.name] == [list_path.name]

    pairs = read_concat_file(list_path)
    assert [p for p, _ in pairs[:-1]] == [str(e.frame) for e in schedule.entries]
    for (_, parsed), entry in zip(pairs[:-1], schedule.entries):
        assert parsed == pytest.approx(entry.duration, abs=1e-8)
    assert pairs[-1] == (str(schedule.sentinel.frame), None)


def test_parse_concat_rejects_malformed_input():
    with pytest.raises(ValueError):
        parse_concat("file 'a.png'\n")
    with pytest.raises(ValueError):
        parse_concat(f"{CONCAT_HEADER}\nduration 0.1\n")
    with pytest.raises(ValueError):
        parse_concat(f"{CONCAT_HEADER}\nfile 'a.png'\nduration 0.1\nduration 0.2\n")
