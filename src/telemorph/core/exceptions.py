"""
Exception types for telemorph.

``TelemorphError`` covers every failure of a conversion. Semantic input
problems ("the tool ran but produced nothing usable") derive from
``ConversionInputError`` so they can be told apart from tool failures.
``ConversionCancelled`` is not an error and deliberately sits outside the
hierarchy.
"""

from __future__ import annotations

from collections.abc import Sequence


class TelemorphError(Exception):
    """Base class for all conversion failures."""


class ToolStartError(TelemorphError):
    """The external executable could not be launched."""

    def __init__(self, tool: str, command: Sequence[str], reason: str) -> None:
        self.tool = tool
        self.command = tuple(command)
        super().__init__(f"Failed to start {tool} process: {reason}")


class ToolExecutionError(TelemorphError):
    """The external tool exited with a non-zero status."""

    def __init__(self, tool: str, command: Sequence[str], returncode: int, stderr: str) -> None:
        self.tool = tool
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{tool} failed with exit code {returncode}:\n{stderr}")


class ConversionInputError(TelemorphError):
    """The tools ran but the input could not be turned into a schedule."""


class NoFramesProducedError(ConversionInputError):
    """Frame extraction succeeded but left no frame files behind."""


class NoTimingDataError(ConversionInputError):
    """The timing query returned no parsable frame delays."""


class EmptyFrameSetError(ConversionInputError):
    """No frame has both a file and a delay."""


class ConversionCancelled(Exception):
    """The conversion was aborted on request."""
