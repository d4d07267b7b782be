from __future__ import annotations

import threading
from pathlib import Path

import pytest

from telemorph.config import ConversionProfile, DurationPolicy
from telemorph.core.exceptions import ConversionCancelled, NoTimingDataError, ToolExecutionError
from telemorph.processing import pipeline as pipeline_mod
from telemorph.processing.concat import read_concat_file
from telemorph.processing.pipeline import StickerConverter, scoped_workspace


@pytest.fixture
def source(tmp_path: Path) -> Path:
    src = tmp_path / "in.gif"
    src.write_bytes(b"GIF89a")
    return src


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    return root


class FakeTools:
    """Replaces the tool-invoking steps of the pipeline and records what they saw."""

    def __init__(self, frame_count: int = 10, delays: list[float] | None = None):
        self.frame_count = frame_count
        self.delays = delays if delays is not None else [0.3] * frame_count
        self.steps: list[str] = []
        self.concat_pairs = None
        self.workspace: Path | None = None

    def extract_frames(self, src, frames_dir, **kwargs):
        self.steps.append("extract")
        self.workspace = frames_dir
        frames = []
        for i in range(self.frame_count):
            p = frames_dir / f"frame-{i:05d}.png"
            p.write_bytes(b"")
            frames.append(p)
        return frames

    def read_frame_delays(self, src, **kwargs):
        self.steps.append("delays")
        return list(self.delays)

    def encode_webm(self, list_file, out_path, profile, crf, **kwargs):
        self.steps.append("encode")
        self.concat_pairs = read_concat_file(list_file)
        out_path.write_bytes(b"webm")
        return out_path

    def install(self, monkeypatch):
        monkeypatch.setattr(pipeline_mod, "extract_frames", self.extract_frames)
        monkeypatch.setattr(pipeline_mod, "read_frame_delays", self.read_frame_delays)
        monkeypatch.setattr(pipeline_mod, "encode_webm", self.encode_webm)


def test_steps_run_in_order_and_workspace_is_removed(monkeypatch, source, workspace_root, tmp_path):
    tools = FakeTools()
    tools.install(monkeypatch)
    out = tmp_path / "out" / "in_sticker.webm"
    converter = StickerConverter(workspace_root=workspace_root)

    result = converter.convert(source, out, ConversionProfile.sticker(30, 1.0), 38)

    assert result == out and out.read_bytes() == b"webm"
    assert tools.steps == ["extract", "delays", "encode"]
    assert tools.workspace.name.startswith("telemorph_")
    assert not tools.workspace.exists()
    assert list(workspace_root.iterdir()) == []


def test_cut_and_fit_reach_the_encoder(monkeypatch, source, workspace_root, tmp_path):
    tools = FakeTools()
    tools.install(monkeypatch)
    converter = StickerConverter(workspace_root=workspace_root)
    profile = ConversionProfile.sticker(30, 1.0)

    converter.convert(source, tmp_path / "cut.webm", profile, 38, policy=DurationPolicy.CUT)
    cut = tools.concat_pairs
    converter.convert(source, tmp_path / "fit.webm", profile, 38, policy=DurationPolicy.FIT)
    fit = tools.concat_pairs

    assert [d for _, d in cut] == [0.3, 0.3, 0.3, None]
    assert Path(cut[-1][0]).name == "frame-00002.png"
    assert len(fit) == 11
    assert all(d == pytest.approx(0.1) for _, d in fit[:-1])
    assert Path(fit[-1][0]).name == "frame-00009.png"


def test_failure_still_removes_workspace(monkeypatch, source, workspace_root, tmp_path):
    tools = FakeTools()
    tools.install(monkeypatch)

    def failing_encode(*args, **kwargs):
        raise ToolExecutionError("ffmpeg", ["ffmpeg"], 1, "Invalid data")

    monkeypatch.setattr(pipeline_mod, "encode_webm", failing_encode)

    with pytest.raises(ToolExecutionError):
        StickerConverter(workspace_root=workspace_root).convert(
            source, tmp_path / "o.webm", ConversionProfile.emoji(30, 3.0), 38
        )
    assert list(workspace_root.iterdir()) == []


def test_semantic_error_propagates(monkeypatch, source, workspace_root, tmp_path):
    tools = FakeTools()
    tools.install(monkeypatch)

    def no_delays(*args, **kwargs):
        raise NoTimingDataError("not animated")

    monkeypatch.setattr(pipeline_mod, "read_frame_delays", no_delays)

    with pytest.raises(NoTimingDataError):
        StickerConverter(workspace_root=workspace_root).convert(
            source, tmp_path / "o.webm", ConversionProfile.emoji(30, 3.0), 38
        )
    assert tools.steps == ["extract"]


def test_cleanup_failure_is_logged_not_raised(monkeypatch, source, workspace_root, tmp_path, logger):
    tools = FakeTools()
    tools.install(monkeypatch)

    def broken_rmtree(path, *args, **kwargs):
        raise PermissionError("locked")

    monkeypatch.setattr(pipeline_mod.shutil, "rmtree", broken_rmtree)

    out = StickerConverter(workspace_root=workspace_root, logger=logger).convert(
        source, tmp_path / "o.webm", ConversionProfile.emoji(30, 3.0), 38
    )

    assert out.exists()
    assert any("Failed to delete temp dir" in m for m in logger.messages("[WARNING]"))


def test_cleanup_failure_does_not_mask_primary_error(monkeypatch, workspace_root, logger):
    def broken_rmtree(path, *args, **kwargs):
        raise OSError("busy")

    monkeypatch.setattr(pipeline_mod.shutil, "rmtree", broken_rmtree)

    with pytest.raises(RuntimeError, match="primary"):
        with scoped_workspace(logger, workspace_root):
            raise RuntimeError("primary")
    assert logger.messages("[WARNING]")


def test_cancelled_before_start(monkeypatch, source, workspace_root, tmp_path):
    tools = FakeTools()
    tools.install(monkeypatch)
    ev = threading.Event()
    ev.set()

    with pytest.raises(ConversionCancelled):
        StickerConverter(workspace_root=workspace_root).convert(
            source, tmp_path / "o.webm", ConversionProfile.emoji(30, 3.0), 38, cancel_event=ev
        )
    assert tools.steps == []
    assert list(workspace_root.iterdir()) == []


def test_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        StickerConverter().convert(tmp_path / "nope.gif", tmp_path / "o.webm", ConversionProfile.emoji(30, 3.0), 38)


def test_plan_warns_about_large_count_mismatch(logger, frame_files):
    converter = StickerConverter(mismatch_warn_threshold=2, logger=logger)

    schedule = converter.plan(frame_files, [0.1] * 5, ConversionProfile.sticker(30, 3.0), DurationPolicy.CUT)

    assert len(schedule) == 5
    assert any("differ by 5" in m for m in logger.messages("[WARNING]"))


def test_plan_flags_frames_faster_than_max_fps(logger, frame_files):
    converter = StickerConverter(logger=logger)

    converter.plan(frame_files, [0.01] * 10, ConversionProfile.sticker(30, 3.0), DurationPolicy.CUT)

    assert any("1/30s" in m for m in logger.messages("[WARNING]"))
