"""
Simple diagnostics logger for the conversion core.

Writes timestamped, prefixed lines to a console stream and optionally appends
them to a log file. Core modules receive a logger instance instead of printing.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO


class SimpleLogger:
    """Simple logger that writes to console and file."""

    def __init__(self, log_file: Path | None = None, *, verbose: bool = False, stream: TextIO | None = None):
        self.log_file = log_file
        self.verbose = verbose
        self._stream = stream

        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"\n{'=' * 60}\n")
                f.write(f"Session started: {datetime.now().isoformat()}\n")
                f.write(f"{'=' * 60}\n")

    def log(self, message: str, prefix: str = "", error: bool = False) -> None:
        """Log a message to console and file.

        Args:
            message: The message to log
            prefix: Optional prefix like [INFO], [ERROR], etc.
            error: Whether to write to stderr instead of stdout
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        formatted = f"[{timestamp}] {prefix} {message}" if prefix else f"[{timestamp}] {message}"

        output = self._stream or (sys.stderr if error else sys.stdout)
        try:
            print(formatted, file=output, flush=True)
        except (OSError, ValueError):
            pass

        if self.log_file:
            try:
                with open(self.log_file, "a", encoding="utf-8") as f:
                    f.write(formatted + "\n")
            except OSError:
                pass  # Don't fail on logging errors

    def debug(self, message: str) -> None:
        """Log a debug message (only when verbose)."""
        if self.verbose:
            self.log(message, prefix="[DEBUG]")

    def info(self, message: str) -> None:
        """Log an info message."""
        self.log(message, prefix="[INFO]")

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.log(message, prefix="[WARNING]", error=True)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.log(message, prefix="[ERROR]", error=True)


class NullLogger(SimpleLogger):
    """Logger that discards everything."""

    def __init__(self) -> None:
        super().__init__()

    def log(self, message: str, prefix: str = "", error: bool = False) -> None:
        return None
