"""Load order file (`load_order.txt`) read/write.

The file lists every section of the tree in load order, one per line, as a
path relative to the scripts folder:

    Core/Vocab.rb
    #Core/Debug.rb        <- disabled (skip character prefix)
    *separator*
    UI
    UI/button.rb

It is the persisted source of truth for ordering across restarts. Writes
always replace the whole file. Paths are written with `/`; both `/` and `\\`
are accepted on read.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from rgsm.core.constants import SKIP_CHARACTER
from rgsm.core.section import Section, SectionType, determine_type

logger = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[\\/]+")

# (type, absolute path, enabled) -> created or existing section
CreateSection = Callable[[SectionType, Path, bool], Optional[Section]]


class LoadOrderStatus(enum.Enum):
    OK = "ok"
    ABSENT = "absent"
    EMPTY = "empty"


@dataclass(frozen=True)
class LoadOrderLine:
    path: str
    enabled: bool = True

    def resolve(self, root: Path) -> Path:
        parts = [p for p in _SEPARATORS_RE.split(self.path) if p]
        return Path(root).joinpath(*parts)


@dataclass
class LoadOrderResult:
    status: LoadOrderStatus
    sections: list[Section] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is LoadOrderStatus.OK


def parse_load_order_text(text: str) -> list[LoadOrderLine]:
    """Parse load order text. Blank lines are ignored."""
    out: list[LoadOrderLine] = []
    for raw in text.splitlines():
        entry = raw.strip()
        if not entry:
            continue
        enabled = not entry.startswith(SKIP_CHARACTER)
        if not enabled:
            entry = entry[len(SKIP_CHARACTER):].strip()
        out.append(LoadOrderLine(entry, enabled))
    return out


def format_load_order(root: Section, *, eol: str = "\n", sections: Optional[list[Section]] = None) -> str:
    lines: list[str] = []
    for section in root.nested_children() if sections is None else sections:
        entry = root.relative(section.path).as_posix()
        if not section.is_loaded():
            entry = SKIP_CHARACTER + entry
        lines.append(entry + eol)
    return "".join(lines)


def write_load_order(
    path: str | Path,
    root: Section,
    *,
    eol: str = "\n",
    sections: Optional[list[Section]] = None,
) -> int:
    """Overwrite `path` with the tree's load order. Returns the line count."""
    if sections is None:
        sections = root.nested_children()
    text = format_load_order(root, eol=eol, sections=sections)
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the configured EOL untouched
    with p.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
    logger.debug("Wrote load order %s (%d lines)", p, len(sections))
    return len(sections)


def _create_in_tree(root: Section) -> CreateSection:
    def create(section_type: SectionType, path: Path, enabled: bool) -> Optional[Section]:
        section = root.create_child(section_type, path)
        if section is not None:
            section.enabled = enabled
        return section

    return create


def read_load_order(
    path: str | Path,
    root: Section,
    *,
    create: Optional[CreateSection] = None,
) -> LoadOrderResult:
    """Rebuild sections from the load order file, in file order.

    Folder and script lines whose file is gone are skipped; lines that name
    neither a folder, a script nor a separator are skipped as well. A missing
    file is not an error (`ABSENT`). A file without entries yields `EMPTY`:
    valid, but the game will not load anything.
    """
    p = Path(path)
    if not p.is_file():
        logger.info("No load order file at %s", p)
        return LoadOrderResult(LoadOrderStatus.ABSENT)

    lines = parse_load_order_text(p.read_text(encoding="utf-8", errors="replace"))
    if not lines:
        logger.warning("Load order file %s is empty; nothing will be loaded", p)
        return LoadOrderResult(LoadOrderStatus.EMPTY)

    create = create or _create_in_tree(root)
    result = LoadOrderResult(LoadOrderStatus.OK)
    for line in lines:
        section_path = line.resolve(root.path)
        section_type = determine_type(section_path)
        if section_type is None:
            logger.debug("Skipping load order entry %r: unknown section type", line.path)
            continue
        existing = section_path.parent if section_type is SectionType.SEPARATOR else section_path
        if not existing.exists():
            logger.debug("Skipping load order entry %r: %s does not exist", line.path, existing)
            continue
        section = create(section_type, section_path, line.enabled)
        if section is not None:
            result.sections.append(section)
    return result
