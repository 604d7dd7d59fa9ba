"""Structured errors raised by the snapshot analysis engine.

Every error is fatal to the analysis call that raised it; the engine never
returns a partial result. Rendering errors for humans is left to the caller.
"""

from __future__ import annotations

from pathlib import Path


class MemwatchDiffError(ValueError):
    """Base class for every error surfaced by the engine."""

    def __init__(self, message: str, *, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.message = message
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)


class SnapshotError(MemwatchDiffError):
    """Base class for errors raised while loading a heap snapshot."""


class InvalidFormat(SnapshotError):
    """The file is not well-formed heap snapshot JSON."""


class MissingSection(SnapshotError):
    """A required table (layout, node data, edge data, strings) is absent."""


class CorruptData(SnapshotError):
    """A flat data array's length is not a multiple of its field count."""


class InconsistentAnalysis(MemwatchDiffError):
    """Assembly inputs contradict each other; indicates a defect upstream."""
