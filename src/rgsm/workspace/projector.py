"""Filesystem projector: keeps the scripts folder in lockstep with the tree.

Every operation performs the filesystem effect and the tree mutation as one
step. When the filesystem call fails (`OSError`) the tree is put back the way
it was and `FilesystemFailure` is raised, chained to the original error.
Directories created before the failing call may remain on disk.

Separators have no filesystem entry; they only live in the tree and in the
load order.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from rgsm.core.constants import ENCODING_COMMENT, SCRIPT_EXTENSION
from rgsm.core.names import check_name, split_script_name, unique_path
from rgsm.core.section import (
    EditorMode,
    Section,
    SectionType,
    collect_top_level,
    determine_type,
    resolve_placement,
)
from rgsm.errors import FilesystemFailure, PathConflict
from rgsm.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    """Where a new section goes: its parent, absolute path and position."""

    parent: Section
    path: Path
    position: Optional[int] = None


@dataclass(frozen=True)
class _MoveRecord:
    section: Section
    parent: Section
    position: int
    path: Path
    renamed: bool


def read_code(path: Path) -> str:
    """Read a script file as text, keeping its line endings."""
    with Path(path).open("r", encoding="utf-8", errors="replace", newline="") as f:
        return f.read()


class FilesystemProjector:
    def __init__(self, root: Section, settings: Optional[Settings] = None, *, mode: EditorMode = EditorMode.MERGE):
        self.root = root
        self.settings = settings or Settings()
        self.mode = mode
        self._clipboard: list[Section] = []

    # ----------------------------
    # Helpers
    # ----------------------------

    @property
    def clipboard(self) -> tuple[Section, ...]:
        return tuple(self._clipboard)

    def find(self, path: str | Path) -> Optional[Section]:
        return self.root.find_path(path)

    def format_code(self, code: str) -> str:
        """Prefix the encoding comment when enabled and missing."""
        if self.settings.insert_encoding_comment and not code.startswith(ENCODING_COMMENT):
            return f"{ENCODING_COMMENT}{self.settings.line_ending()}{code}"
        return code

    def _taken(self, path: Path) -> bool:
        return self.root.find_path(path) is not None

    def place(
        self,
        section_type: SectionType,
        name: str,
        target: Section,
        *,
        ignore_mode: bool = False,
        avoid_overwrite: bool = True,
        anchor: Optional[Section] = None,
    ) -> Placement:
        """Resolve where a section named `name` dropped on `target` goes.

        `anchor`, when given, is a section already placed by the same batch;
        the new one is put right after it so that batches keep their order.
        """
        parent, position = resolve_placement(target, root=self.root, mode=self.mode, ignore_mode=ignore_mode)
        if anchor is not None and position is not None and anchor.parent is parent:
            position = parent.child_position(anchor) + 1
        path = unique_path(
            parent.path,
            section_type,
            name,
            avoid_overwrite=avoid_overwrite,
            case_insensitive=self.settings.case_insensitive,
            taken=self._taken,
        )
        return Placement(parent, path, position)

    def _node_ids(self) -> set:
        return {s.id for s in self.root.nested_children()}

    def _discard_new(self, before: set, *, remove_entries: bool = False) -> None:
        """Detach every section created since `before` was taken."""
        for section in self.root.nested_children():
            if section.id in before:
                continue
            parent = section.parent
            if parent is None or (parent.id not in before and parent is not self.root):
                continue
            parent.delete_child(section)
            if remove_entries and section.has_entry:
                _remove_entry(section, missing_ok=True)

    def _write_script(self, path: Path, contents: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(self.format_code(contents))

    # ----------------------------
    # Operations
    # ----------------------------

    def create(
        self,
        parent: Section,
        section_type: SectionType,
        path: str | Path,
        *,
        position: Optional[int] = None,
        enabled: bool = True,
        collapsed: bool = False,
        contents: str = "",
        overwrite: bool = False,
    ) -> Optional[Section]:
        """Create a section and its file or directory.

        An existing script file is only rewritten with `overwrite`. Missing
        intermediate folders are created both in the tree and on disk.
        """
        before = self._node_ids()
        child = parent.create_child(section_type, Path(path), position)
        if child is None:
            return None
        previous = (child.enabled, child.collapsed)
        child.enabled = enabled
        child.set_collapsed(collapsed)

        try:
            for section in self.root.nested_children():
                if section.id not in before and section.is_type(SectionType.FOLDER):
                    section.path.mkdir(parents=True, exist_ok=True)
            if child.is_type(SectionType.SCRIPT) and (overwrite or not child.path.exists()):
                self._write_script(child.path, contents)
        except OSError as e:
            self._discard_new(before)
            child.enabled = previous[0]
            child.set_collapsed(previous[1])
            raise FilesystemFailure(f"cannot create {child.path}: {e}") from e

        if child.id not in before:
            logger.debug("Created %s", child)
        return child

    def delete(self, section: Section) -> Optional[Section]:
        """Remove a section, deleting its file or its whole directory."""
        parent = section.parent
        if parent is None:
            return None
        try:
            _remove_entry(section, missing_ok=True)
        except OSError as e:
            raise FilesystemFailure(f"cannot delete {section.path}: {e}") from e
        parent.delete_child(section)
        logger.debug("Deleted %s", section)
        return section

    def rename(self, section: Section, new_path: str | Path, *, overwrite: bool = False) -> bool:
        """Rename a folder or script inside its current folder.

        Raises `InvalidName` for blacklisted names and `PathConflict` when the
        new path is taken (unless `overwrite`). Separators cannot be renamed.
        """
        if section.is_type(SectionType.SEPARATOR):
            return False
        parent = section.parent
        if parent is None:
            raise ValueError(f"rename: {section.path} is not attached to the tree")

        new_path = Path(new_path)
        if section.is_type(SectionType.SCRIPT):
            stem, _ = split_script_name(new_path.name)
            check_name(stem, strict=self.settings.strict_names)
            new_path = new_path.with_name(stem.strip() + SCRIPT_EXTENSION)
        else:
            new_path = new_path.with_name(check_name(new_path.name, strict=self.settings.strict_names))
        if parent.relative(new_path.parent) != Path():
            raise ValueError(f"rename: {new_path} is not inside {parent.path}")
        if section.path == new_path:
            return False

        if not section.matches_path(new_path):
            existing = self.root.find_path(new_path)
            if existing is not None or new_path.exists():
                if not overwrite:
                    raise PathConflict(new_path)
                if existing is not None:
                    self.delete(existing)
                elif new_path.exists():
                    _remove_path(new_path)

        try:
            os.rename(section.path, new_path)
        except OSError as e:
            raise FilesystemFailure(f"cannot rename {section.path} to {new_path}: {e}") from e
        old = section.path
        section.rename(new_path)
        logger.info("Renamed %s -> %s", old, new_path)
        return True

    def move(self, sources: Iterable[Section], target: Section) -> bool:
        """Move sections next to or into `target` (editor mode decides).

        Returns False, leaving the tree untouched, when nothing would move or
        when `target` lies inside one of the sources.
        """
        sections = [s for s in collect_top_level(sources) if s is not target]
        if not sections:
            return False
        if any(s is self.root or s.parent is None for s in sections):
            raise ValueError("move: only attached sections below the root can be moved")
        if any(s.has_child(target, nested=True) for s in sections):
            return False

        journal: list[_MoveRecord] = []
        anchor: Optional[Section] = None
        try:
            for section in sections:
                old_parent = section.parent
                old_position = old_parent.child_position(section)
                parent, position = resolve_placement(target, root=self.root, mode=self.mode)
                if anchor is not None and position is not None and anchor.parent is parent:
                    position = parent.child_position(anchor) + 1

                if old_parent is parent:
                    if position is not None and old_position < position:
                        position -= 1
                    parent.add_child(section, position)
                    journal.append(_MoveRecord(section, old_parent, old_position, section.path, False))
                else:
                    new_path = unique_path(
                        parent.path,
                        section.type,
                        section.label,
                        case_insensitive=self.settings.case_insensitive,
                        taken=self._taken,
                    )
                    old_path = section.path
                    if section.has_entry:
                        new_path.parent.mkdir(parents=True, exist_ok=True)
                        os.rename(old_path, new_path)
                    journal.append(_MoveRecord(section, old_parent, old_position, old_path, section.has_entry))
                    parent.add_child(section, position)
                    section.rename(new_path)
                anchor = section
        except OSError as e:
            self._undo_moves(journal)
            raise FilesystemFailure(f"cannot move sections to {target.path}: {e}") from e

        logger.info("Moved %s to %s", [str(s) for s in sections], target)
        return True

    def _undo_moves(self, journal: list[_MoveRecord]) -> None:
        for record in reversed(journal):
            if record.renamed:
                os.rename(record.section.path, record.path)
            record.parent.add_child(record.section, record.position)
            record.section.rename(record.path)

    def copy(self, sections: Iterable[Section]) -> int:
        self._clipboard = collect_top_level(sections)
        return len(self._clipboard)

    def clear_clipboard(self) -> None:
        self._clipboard = []

    def paste(self, target: Section) -> bool:
        """Recreate the copied sections (with their subtrees) at `target`.

        The clipboard is emptied afterwards. Sections removed from the tree
        since they were copied are dropped. On failure (a copied script whose
        file is gone included) everything pasted so far is removed again.
        """
        clipboard, self._clipboard = self._clipboard, []
        clipboard = [s for s in clipboard if self.root.has_child(s, nested=True)]
        if not clipboard:
            return False
        entries = [(s, s.nested_children()) for s in clipboard]

        before = self._node_ids()
        anchor: Optional[Section] = None
        try:
            for section, nested in entries:
                placement = self.place(section.type, section.label, target, anchor=anchor)
                copy = self.create(
                    placement.parent,
                    section.type,
                    placement.path,
                    position=placement.position,
                    enabled=section.is_loaded(),
                    collapsed=section.collapsed,
                    contents=self._contents_of(section),
                )
                if copy is None:
                    continue
                for child in nested:
                    self.create(
                        copy,
                        child.type,
                        copy.path / section.relative(child.path),
                        enabled=child.is_loaded(),
                        collapsed=child.collapsed,
                        contents=self._contents_of(child),
                    )
                anchor = copy
        except (FilesystemFailure, OSError) as e:
            self._discard_new(before, remove_entries=True)
            if isinstance(e, FilesystemFailure):
                raise
            raise FilesystemFailure(f"cannot paste into {target.path}: {e}") from e
        return True

    def _contents_of(self, section: Section) -> str:
        if not section.is_type(SectionType.SCRIPT):
            return ""
        if not section.path.is_file():
            raise FilesystemFailure(f"cannot copy {section.path}: file is missing")
        return read_code(section.path)

    def alternate_load(self, section: Section, state: bool) -> None:
        if section.is_type(SectionType.SEPARATOR):
            return
        section.alternate_load(state)

    def alternate_collapse(self, section: Section, state: bool) -> None:
        section.set_collapsed(state)

    def scan(self) -> list[Section]:
        """Add sections for folders and scripts on disk that the tree lacks.

        Existing sections are left as they are.
        """
        created: list[Section] = []
        root_dir = self.root.path
        if not root_dir.is_dir():
            return created
        for dirpath, dirnames, filenames in os.walk(root_dir):
            dirnames.sort()
            base = Path(dirpath)
            entries = [base / d for d in dirnames]
            entries += [base / f for f in sorted(filenames) if f.lower().endswith(SCRIPT_EXTENSION)]
            for entry in entries:
                section_type = determine_type(entry)
                if section_type is None or section_type is SectionType.SEPARATOR:
                    continue
                if self.root.find_path(entry) is not None:
                    continue
                section = self.create(self.root, section_type, entry)
                if section is not None:
                    created.append(section)
        if created:
            logger.info("Scan found %d new section(s) under %s", len(created), root_dir)
        return created


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _remove_entry(section: Section, *, missing_ok: bool) -> None:
    if not section.has_entry:
        return
    if missing_ok and not section.path.exists():
        return
    _remove_path(section.path)
