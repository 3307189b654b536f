"""Error taxonomy and exit code mapping for the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class RgsmError(Exception):
    """Base error with a deterministic CLI exit code."""

    exit_code: int = 1


class CorruptBundle(RgsmError):
    """The bundle bytes do not hold the expected object graph."""

    exit_code = 4


class PathConflict(RgsmError):
    """A section already exists at the requested path."""

    exit_code = 2

    def __init__(self, path: Path):
        super().__init__(f"path already exists: {path}")
        self.path = Path(path)


class InvalidName(RgsmError):
    """A section name matched the name blacklist."""

    exit_code = 2

    def __init__(self, name: str, matches: Iterable[str]):
        self.name = name
        self.matches = list(matches)
        shown = ", ".join(repr(m) for m in self.matches)
        super().__init__(f"invalid name {name!r}: contains {shown}")


class FilesystemFailure(RgsmError):
    """A filesystem call failed; the tree mutation was rolled back."""

    exit_code = 3


class CycleRejected(RgsmError):
    """A move would place a section inside itself."""

    exit_code = 2


def exit_code_for_exception(exc: BaseException) -> int:
    """Resolve a deterministic exit code for an exception."""
    if isinstance(exc, RgsmError):
        return exc.exit_code
    if isinstance(exc, OSError):
        return FilesystemFailure.exit_code
    return RgsmError.exit_code
