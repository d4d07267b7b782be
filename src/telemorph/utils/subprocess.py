"""Subprocess and external command utilities.

External tools run as supervised child processes: their output streams are
drained by background threads while the calling thread polls for exit and for
a cancellation request. On cancellation the whole process tree is killed.
"""

from __future__ import annotations

import contextlib
import shlex
import subprocess
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO

import psutil

from ..config import KILL_GRACE_PERIOD, POLL_INTERVAL
from ..core.exceptions import ConversionCancelled, ToolExecutionError, ToolStartError
from ..core.types import ProcessResult
from ..output.logger import SimpleLogger


def format_command(cmd: Sequence[str]) -> str:
    """Return a shell-quoted, copy-pasteable rendering of ``cmd``."""
    return " ".join(shlex.quote(str(c)) for c in cmd)


def _drain(stream: IO[str], sink: list[str]) -> None:
    """Read ``stream`` line by line into ``sink`` until EOF."""
    try:
        for line in stream:
            sink.append(line)
    except (OSError, ValueError):
        # Stream closed underneath us after a kill
        pass
    finally:
        with contextlib.suppress(OSError):
            stream.close()


def _start_drain(stream: IO[str] | None, sink: list[str], name: str) -> threading.Thread | None:
    if stream is None:
        return None
    t = threading.Thread(target=_drain, args=(stream, sink), name=name, daemon=True)
    t.start()
    return t


def terminate_process_tree(proc: subprocess.Popen, grace_period: float = KILL_GRACE_PERIOD) -> None:
    """Kill ``proc`` and every descendant. Best effort, never raises.

    Descendants are collected before the parent dies so that reparented
    grandchildren are still found.
    """
    children: list[psutil.Process] = []
    try:
        children = psutil.Process(proc.pid).children(recursive=True)
    except psutil.Error:
        pass

    for child in children:
        with contextlib.suppress(psutil.Error):
            child.kill()
    with contextlib.suppress(OSError):
        proc.kill()

    with contextlib.suppress(psutil.Error):
        psutil.wait_procs(children, timeout=grace_period)
    with contextlib.suppress(subprocess.TimeoutExpired, OSError):
        proc.wait(timeout=grace_period)


def run_process(
    cmd: Sequence[str | Path],
    *,
    display_name: str | None = None,
    cancel_event: threading.Event | None = None,
    capture_stdout: bool = False,
    poll_interval: float = POLL_INTERVAL,
    logger: SimpleLogger | None = None,
) -> ProcessResult:
    """Run an external tool under supervision.

    Args:
        cmd: Executable followed by its arguments.
        display_name: Tool name used in errors and logs (defaults to ``cmd[0]``).
        cancel_event: When set, the process tree is killed and
            ``ConversionCancelled`` raised within one poll interval.
        capture_stdout: Capture standard output; otherwise it is discarded.
        poll_interval: Seconds between liveness and cancellation checks.
        logger: Receives the command line at debug level.

    Returns:
        ProcessResult with the captured streams.

    Raises:
        ToolStartError: The executable could not be launched.
        ToolExecutionError: The tool exited with a non-zero status.
        ConversionCancelled: ``cancel_event`` was set before the tool exited.
    """
    args = [str(c) for c in cmd]
    name = display_name or Path(args[0]).name
    stop = cancel_event if cancel_event is not None else threading.Event()

    if stop.is_set():
        raise ConversionCancelled(f"Cancelled before starting {name}")

    if logger is not None:
        logger.debug(f"[{name}] {format_command(args)}")

    try:
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if capture_stdout else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise ToolStartError(name, args, str(e)) from e

    out_lines: list[str] = []
    err_lines: list[str] = []
    readers = [
        t
        for t in (
            _start_drain(proc.stdout, out_lines, f"{name}-stdout"),
            _start_drain(proc.stderr, err_lines, f"{name}-stderr"),
        )
        if t is not None
    ]

    try:
        while proc.poll() is None:
            if stop.wait(poll_interval):
                if logger is not None:
                    logger.warning(f"Cancellation requested, terminating {name} (pid {proc.pid})")
                terminate_process_tree(proc)
                raise ConversionCancelled(f"{name} was cancelled")
    finally:
        if proc.poll() is None:
            # Unexpected exit from the loop (e.g. KeyboardInterrupt)
            terminate_process_tree(proc)
        for t in readers:
            t.join(timeout=KILL_GRACE_PERIOD)

    result = ProcessResult(
        command=tuple(args),
        returncode=proc.returncode,
        stdout="".join(out_lines),
        stderr="".join(err_lines),
    )
    if result.returncode != 0:
        raise ToolExecutionError(name, args, result.returncode, result.stderr)
    return result
