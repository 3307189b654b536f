"""Project workspace: the scripts folder on disk and the controller driving it."""

from __future__ import annotations

from .controller import ExtractionStatus, ScriptsController
from .events import FsEvent, FsEventKind
from .projector import FilesystemProjector, Placement

__all__ = [
    "ExtractionStatus",
    "FilesystemProjector",
    "FsEvent",
    "FsEventKind",
    "Placement",
    "ScriptsController",
]
