"""External filesystem change events.

Watching the scripts folder is left to the caller (an editor, `watchdog`,
...); it hands already-deduplicated events to
`ScriptsController.handle_event()`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


class FsEventKind(enum.Enum):
    CREATED = "created"
    DELETED = "deleted"


@dataclass(frozen=True)
class FsEvent:
    kind: FsEventKind
    path: Path

    @classmethod
    def created(cls, path: str | Path) -> FsEvent:
        return cls(FsEventKind.CREATED, Path(path))

    @classmethod
    def deleted(cls, path: str | Path) -> FsEvent:
        return cls(FsEventKind.DELETED, Path(path))
