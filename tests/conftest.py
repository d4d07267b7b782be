from __future__ import annotations

from pathlib import Path

import pytest

from telemorph.output.logger import SimpleLogger


class RecordingLogger(SimpleLogger):
    """Keeps (prefix, message) pairs instead of printing them."""

    def __init__(self) -> None:
        super().__init__(verbose=True)
        self.records: list[tuple[str, str]] = []

    def log(self, message: str, prefix: str = "", error: bool = False) -> None:
        self.records.append((prefix, message))

    def messages(self, prefix: str) -> list[str]:
        return [m for p, m in self.records if p == prefix]


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def frame_files(tmp_path: Path) -> list[Path]:
    """Ten (empty) frame files named the way extraction names them."""
    frames = []
    for i in range(10):
        p = tmp_path / f"frame-{i:05d}.png"
        p.write_bytes(b"")
        frames.append(p)
    return frames
