"""In-memory section tree.

A `Section` is one node of the tree that mirrors the scripts folder:

- `SEPARATOR`: a visual divider; no file on disk, always loaded
- `FOLDER`: a directory; owns an ordered list of children
- `SCRIPT`: a `.rb` file

Children order is the load order. The three variants share one class; what
differs between them (can it own children, can it be toggled, can it be
collapsed, how its label is derived) is resolved through `_VARIANTS`.

Ownership goes one way: a folder's children list owns its nodes, and the
parent link is a weak back-reference used only for traversal. Nothing in this
module touches the filesystem; see `rgsm.workspace.projector`.
"""

from __future__ import annotations

import enum
import uuid
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from rgsm.core.constants import FOLDER_SENTINEL, SCRIPT_EXTENSION, SEPARATOR_NAME

PathLike = Union[str, Path]


class SectionType(enum.IntEnum):
    SEPARATOR = 1
    FOLDER = 2
    SCRIPT = 3


class EditorMode(enum.Enum):
    """Where drops and pastes land when the target is not a folder.

    MERGE: into the target when it is a folder, otherwise right after it.
    MOVE: always right after the target, at the target's own level.
    """

    MERGE = "merge"
    MOVE = "move"


@dataclass(frozen=True)
class _Variant:
    owns_children: bool
    toggles_load: bool
    collapsible: bool
    has_entry: bool  # backed by a file or a directory
    label: Callable[[Path], str]


_VARIANTS: dict[SectionType, _Variant] = {
    SectionType.SEPARATOR: _Variant(
        owns_children=False, toggles_load=False, collapsible=False, has_entry=False, label=lambda p: ""
    ),
    SectionType.FOLDER: _Variant(
        owns_children=True, toggles_load=True, collapsible=True, has_entry=True, label=lambda p: p.name
    ),
    SectionType.SCRIPT: _Variant(
        owns_children=False, toggles_load=True, collapsible=False, has_entry=True, label=lambda p: p.stem
    ),
}


def determine_type(path: PathLike, contents: Optional[str] = None) -> Optional[SectionType]:
    """Classify a section from its path and, when known, its code.

    With `contents` (bundle extraction): the folder sentinel means FOLDER, an
    empty body with an empty or separator name means SEPARATOR, anything else
    is a SCRIPT. Without `contents` (disk or load order): the separator name
    means SEPARATOR, `.rb` means SCRIPT, no extension means FOLDER, anything
    else is not a section (None).
    """
    name = Path(path).name if str(path) else ""
    if contents is not None:
        code = contents.strip()
        if code == FOLDER_SENTINEL:
            return SectionType.FOLDER
        if not code and (not name or name == SEPARATOR_NAME):
            return SectionType.SEPARATOR
        return SectionType.SCRIPT

    if not name or name == SEPARATOR_NAME:
        return SectionType.SEPARATOR
    suffix = Path(name).suffix
    if suffix.lower() == SCRIPT_EXTENSION:
        return SectionType.SCRIPT
    if suffix == "":
        return SectionType.FOLDER
    return None


def _fold(part: str, case_insensitive: bool) -> str:
    return part.casefold() if case_insensitive else part


def _relative_parts(base: Path, path: Path, *, case_insensitive: bool) -> Optional[tuple[str, ...]]:
    """Parts of `path` below `base`, or None when `path` is not under `base`."""
    bp, pp = base.parts, path.parts
    if len(pp) < len(bp):
        return None
    for a, b in zip(bp, pp):
        if _fold(a, case_insensitive) != _fold(b, case_insensitive):
            return None
    return pp[len(bp):]


class Section:
    def __init__(
        self,
        section_type: SectionType,
        path: PathLike,
        *,
        enabled: bool = True,
        collapsed: bool = False,
        case_insensitive: bool = True,
    ) -> None:
        self._type = SectionType(section_type)
        self._variant = _VARIANTS[self._type]
        self.id = uuid.uuid4()
        self.path = Path(path)
        self.case_insensitive = case_insensitive
        self._children: list[Section] = []
        self._parent: Optional[weakref.ref[Section]] = None
        self._enabled = True
        self._collapsed = False
        self.enabled = enabled
        self.set_collapsed(collapsed)

    # ----------------------------
    # Attributes
    # ----------------------------

    @property
    def type(self) -> SectionType:
        return self._type

    @property
    def parent(self) -> Optional[Section]:
        return self._parent() if self._parent is not None else None

    @property
    def children(self) -> tuple[Section, ...]:
        return tuple(self._children)

    @property
    def name(self) -> str:
        """Base name on disk (`button.rb`, `UI`, `*separator*`)."""
        return self.path.name

    @property
    def label(self) -> str:
        return self._variant.label(self.path)

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def has_entry(self) -> bool:
        return self._variant.has_entry

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, state: bool) -> None:
        if self._variant.toggles_load:
            self._enabled = bool(state)

    @property
    def collapsed(self) -> bool:
        return self._collapsed

    def set_collapsed(self, state: bool) -> None:
        if self._variant.collapsible:
            self._collapsed = bool(state)

    def is_type(self, section_type: SectionType) -> bool:
        return self._type is section_type

    def is_loaded(self) -> bool:
        """Whether the loader will run this section. Separators always are."""
        return self._enabled if self._variant.toggles_load else True

    def has_children(self) -> bool:
        return bool(self._children)

    def matches_path(self, path: PathLike) -> bool:
        p = Path(path)
        if self.case_insensitive:
            return str(self.path).casefold() == str(p).casefold()
        return self.path == p

    def relative(self, path: PathLike) -> Path:
        """Path of `path` relative to this section's path."""
        parts = _relative_parts(self.path, Path(path), case_insensitive=self.case_insensitive)
        if parts is None:
            raise ValueError(f"{path} is not under {self.path}")
        return Path(*parts) if parts else Path()

    def is_immediate(self, path: PathLike) -> bool:
        parts = _relative_parts(self.path, Path(path), case_insensitive=self.case_insensitive)
        return parts is not None and len(parts) <= 1

    # ----------------------------
    # Children
    # ----------------------------

    def add_child(self, section: Section, position: Optional[int] = None) -> None:
        """Attach `section` at `position` (appends when missing or out of range).

        A section owned elsewhere is detached from its old parent first.
        Separators and scripts never own children; the call is ignored.
        """
        if not self._variant.owns_children:
            return
        if section is self or section.has_child(self, nested=True):
            raise ValueError(f"add_child: {section.path} cannot contain itself")
        old_parent = section.parent
        if old_parent is not None:
            old_parent.delete_child(section)
        section._parent = weakref.ref(self)
        if position is None or position < 0 or position >= len(self._children):
            self._children.append(section)
        else:
            self._children.insert(position, section)

    def create_child(
        self,
        section_type: SectionType,
        path: PathLike,
        position: Optional[int] = None,
    ) -> Optional[Section]:
        """Create a section at `path`, creating missing intermediate folders.

        Folders and scripts are unique by path: when one already exists it is
        returned unchanged. Separators are always created. Returns None when
        this section cannot own children (or an intermediate path is taken by
        a script).
        """
        if not self._variant.owns_children:
            return None
        p = Path(path)
        parts = _relative_parts(self.path, p, case_insensitive=self.case_insensitive)
        if not parts:
            raise ValueError(f"create_child: {p} is not below {self.path}")

        if len(parts) > 1:
            parent = self.create_child(SectionType.FOLDER, p.parent)
            return parent.create_child(section_type, p, position) if parent is not None else None

        section_type = SectionType(section_type)
        if section_type is not SectionType.SEPARATOR:
            existing = self.find_child(lambda c: not c.is_type(SectionType.SEPARATOR) and c.matches_path(p))
            if existing is not None:
                return existing

        child = Section(section_type, self.path / parts[0], case_insensitive=self.case_insensitive)
        self.add_child(child, position)
        return child

    def delete_child(self, section: Section) -> Optional[Section]:
        """Detach an immediate child; returns it, or None when not a child."""
        for i, child in enumerate(self._children):
            if child is section:
                del self._children[i]
                child._parent = None
                return child
        return None

    def clear(self) -> None:
        for child in self._children:
            child._parent = None
        self._children = []

    def child_at(self, position: int) -> Optional[Section]:
        if 0 <= position < len(self._children):
            return self._children[position]
        return None

    def child_position(self, section: Section) -> int:
        for i, child in enumerate(self._children):
            if child is section:
                return i
        return -1

    def nested_children(self) -> list[Section]:
        """All descendants in depth-first pre-order (load order)."""
        out: list[Section] = []
        for child in self._children:
            out.append(child)
            out.extend(child.nested_children())
        return out

    def find_child(self, predicate: Callable[[Section], bool], nested: bool = False) -> Optional[Section]:
        pool = self.nested_children() if nested else self._children
        for child in pool:
            if predicate(child):
                return child
        return None

    def filter_children(self, predicate: Callable[[Section], bool], nested: bool = False) -> list[Section]:
        pool = self.nested_children() if nested else self._children
        return [child for child in pool if predicate(child)]

    def has_child(self, section: Section, nested: bool = False) -> bool:
        return self.find_child(lambda c: c is section, nested=nested) is not None

    def find_path(self, path: PathLike) -> Optional[Section]:
        """Descendant at `path` (separators excluded)."""
        return self.find_child(
            lambda c: not c.is_type(SectionType.SEPARATOR) and c.matches_path(path),
            nested=True,
        )

    # ----------------------------
    # Mutation
    # ----------------------------

    def rename(self, path: PathLike) -> None:
        """Move this section to `path` and rewrite every descendant path.

        Conflicts are not checked here; callers validate first.
        """
        self.path = Path(path)
        for child in self._children:
            child.rename(self.path / child.name)

    def alternate_load(self, state: bool) -> None:
        """Set the enabled flag here and on every descendant."""
        self.enabled = state
        for child in self._children:
            child.alternate_load(state)

    def __repr__(self) -> str:
        return f"Section({self._type.name}, {str(self.path)!r}, enabled={self.is_loaded()})"

    def __str__(self) -> str:
        return "Separator" if self._type is SectionType.SEPARATOR else self.label


def collect_top_level(sections: Iterable[Section]) -> list[Section]:
    """Drop every section that is a descendant of another section in the list."""
    sections = list(sections)
    nested_ids = {child.id for s in sections for child in s.nested_children()}
    seen: set[uuid.UUID] = set()
    out: list[Section] = []
    for s in sections:
        if s.id in nested_ids or s.id in seen:
            continue
        seen.add(s.id)
        out.append(s)
    return out


def resolve_placement(
    target: Section,
    *,
    root: Section,
    mode: EditorMode,
    ignore_mode: bool = False,
) -> tuple[Section, Optional[int]]:
    """Return `(parent, position)` for a node dropped or pasted on `target`.

    A root target always receives the node at its end, whatever the mode.
    """
    if ignore_mode or target is root:
        return target, None
    if mode is EditorMode.MERGE and target.is_type(SectionType.FOLDER):
        return target, None
    parent = target.parent
    if parent is None:
        raise ValueError(f"resolve_placement: {target.path} is not attached to the tree")
    return parent, parent.child_position(target) + 1
