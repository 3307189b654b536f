"""Scripts controller: one project's bundle, scripts folder and load order.

`ScriptsController` owns the section tree and the projector and runs every
mutation under one re-entrant lock, so user operations and external
filesystem events never interleave. After each structural change the load
order file is rewritten from the tree.

Typical flow for a fresh project:

    ctrl = ScriptsController(project)
    ctrl.open()
    if ctrl.check_scripts() is ExtractionStatus.NOT_EXTRACTED:
        ctrl.extract_scripts()
        ctrl.create_loader()
"""

from __future__ import annotations

import enum
import functools
import logging
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

from rgsm.bundle.load_order import LoadOrderResult, read_load_order, write_load_order
from rgsm.bundle.loader import LoaderConfig, loader_entry
from rgsm.codecs.rgss_bundle import (
    BundleEntry,
    BundleSource,
    build_entries,
    is_extraction_needed,
    read_bundle,
    write_bundle,
)
from rgsm.core.constants import (
    FOLDER_SENTINEL,
    LOAD_ORDER_FILE_NAME,
    SCRIPT_EXTENSION,
)
from rgsm.core.names import check_name, process_bundle_name, split_script_name
from rgsm.core.section import EditorMode, Section, SectionType, determine_type
from rgsm.errors import CycleRejected, FilesystemFailure
from rgsm.settings import Settings, find_bundle_file
from rgsm.workspace.events import FsEvent, FsEventKind
from rgsm.workspace.projector import FilesystemProjector, read_code

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ExtractionStatus(enum.Enum):
    # The bundle still holds scripts that are not on disk.
    NOT_EXTRACTED = "not_extracted"
    # Every script lives on disk; the bundle only holds the loader.
    EXTRACTED = "extracted"


def _serialized(method: F) -> F:
    @functools.wraps(method)
    def wrapper(self: ScriptsController, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _is_legacy_name(name: str) -> bool:
    """Flat section titles from the engine's own editor ("Main", "Game_Map")."""
    return bool(name) and "/" not in name and not name.lower().endswith(SCRIPT_EXTENSION)


def backup_file_name(path: Path, *, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H.%M.%S")
    return f"{path.name} - {stamp}.bak"


class ScriptsController:
    def __init__(
        self,
        project_folder: str | Path,
        settings: Optional[Settings] = None,
        *,
        mode: EditorMode = EditorMode.MERGE,
    ) -> None:
        self.project_folder = Path(project_folder)
        self.settings = settings or Settings()
        self._lock = threading.RLock()
        self.root = Section(
            SectionType.FOLDER,
            self.scripts_path,
            case_insensitive=self.settings.case_insensitive,
        )
        self.projector = FilesystemProjector(self.root, self.settings, mode=mode)

    # ----------------------------
    # Paths and state
    # ----------------------------

    @property
    def scripts_path(self) -> Path:
        return self.settings.scripts_path(self.project_folder)

    @property
    def load_order_path(self) -> Path:
        return self.scripts_path / LOAD_ORDER_FILE_NAME

    @property
    def editor_mode(self) -> EditorMode:
        return self.projector.mode

    @editor_mode.setter
    def editor_mode(self, mode: EditorMode) -> None:
        self.projector.mode = EditorMode(mode)

    def bundle_path(self, bundle_path: Optional[str | Path] = None) -> Path:
        if bundle_path is not None:
            return Path(bundle_path)
        found = find_bundle_file(self.project_folder)
        if found is None:
            raise FileNotFoundError(f"no scripts bundle under {self.project_folder / 'Data'}")
        return found

    def find(self, path: str | Path) -> Optional[Section]:
        return self.projector.find(path)

    # ----------------------------
    # Lifecycle
    # ----------------------------

    @_serialized
    def open(self) -> LoadOrderResult:
        """(Re)build the tree: load order first, then anything else on disk."""
        self.root.clear()
        self.root.rename(self.scripts_path)
        self.projector.clear_clipboard()
        try:
            self.scripts_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemFailure(f"cannot create {self.scripts_path}: {e}") from e

        result = read_load_order(self.load_order_path, self.root, create=self._create_listed)
        self.projector.scan()
        self._save_load_order()
        logger.info("Opened %s (%d sections)", self.scripts_path, len(self.root.nested_children()))
        return result

    def _create_listed(self, section_type: SectionType, path: Path, enabled: bool) -> Optional[Section]:
        return self.projector.create(self.root, section_type, path, enabled=enabled)

    def _save_load_order(self) -> int:
        try:
            return write_load_order(self.load_order_path, self.root, eol=self.settings.line_ending())
        except OSError as e:
            raise FilesystemFailure(f"cannot write {self.load_order_path}: {e}") from e

    @_serialized
    def update_load_order(self) -> int:
        return self._save_load_order()

    # ----------------------------
    # Bundle <-> folder
    # ----------------------------

    def check_scripts(self, bundle_path: Optional[str | Path] = None) -> ExtractionStatus:
        entries = read_bundle(self.bundle_path(bundle_path))
        if is_extraction_needed(entries):
            return ExtractionStatus.NOT_EXTRACTED
        return ExtractionStatus.EXTRACTED

    def _materialize(self, entries: Iterable[BundleEntry], parent: Section) -> int:
        created = 0
        for index, entry in enumerate(entries):
            if entry.is_loader:
                continue
            name = process_bundle_name(entry.name, strict=self.settings.strict_names)
            code = entry.source().strip()
            section_type = determine_type(name, code)
            if section_type is None:
                logger.warning("Skipping bundle entry %d (%r): unknown section type", index, entry.name)
                continue
            if section_type is SectionType.SCRIPT and _is_legacy_name(name):
                name = f"{index:04d} - {name}"
            placement = self.projector.place(section_type, name, parent, ignore_mode=True)
            section = self.projector.create(
                placement.parent,
                section_type,
                placement.path,
                position=placement.position,
                contents=code,
            )
            if section is not None:
                created += 1
        return created

    @_serialized
    def extract_scripts(self, bundle_path: Optional[str | Path] = None) -> ExtractionStatus:
        """Write every section of the bundle into the scripts folder.

        Returns NOT_EXTRACTED, without touching the disk, when the bundle
        only holds the loader. Existing files are never overwritten; clashing
        names get a numbered suffix.
        """
        path = self.bundle_path(bundle_path)
        entries = read_bundle(path)
        if not is_extraction_needed(entries):
            logger.info("Nothing to extract from %s", path)
            return ExtractionStatus.NOT_EXTRACTED
        created = self._materialize(entries, self.root)
        self._save_load_order()
        logger.info("Extracted %d section(s) from %s", created, path)
        return ExtractionStatus.EXTRACTED

    @_serialized
    def import_scripts(self, bundle_path: str | Path, *, overwrite: Optional[bool] = None) -> int:
        """Add the sections of another bundle to the tree.

        Unless `overwrite` (default from settings), they land in a new
        `Import from <bundle name>` folder at the end of the tree.
        """
        path = Path(bundle_path)
        entries = read_bundle(path)
        if overwrite is None:
            overwrite = self.settings.import_overwrite

        parent = self.root
        if not overwrite:
            placement = self.projector.place(SectionType.FOLDER, f"Import from {path.stem}", self.root, ignore_mode=True)
            folder = self.projector.create(placement.parent, SectionType.FOLDER, placement.path)
            assert folder is not None
            parent = folder
        created = self._materialize(entries, parent)
        self._save_load_order()
        logger.info("Imported %d section(s) from %s", created, path)
        return created

    @_serialized
    def create_bundle(self, destination: str | Path, sections: Optional[Iterable[Section]] = None) -> int:
        """Pack sections (default: the whole tree) into a bundle file.

        Names are paths relative to the scripts folder; folders carry the
        folder sentinel and separators an empty body. Returns the number of
        entries written.
        """
        chosen = self.root.nested_children() if sections is None else list(sections)
        sources: list[BundleSource] = []
        for section in chosen:
            name = self.root.relative(section.path).as_posix()
            if section.is_type(SectionType.SCRIPT):
                try:
                    code = read_code(section.path)
                except OSError as e:
                    raise FilesystemFailure(f"cannot read {section.path}: {e}") from e
            elif section.is_type(SectionType.FOLDER):
                code = FOLDER_SENTINEL
            else:
                code = ""
            sources.append(BundleSource(name, code))
        count = write_bundle(destination, build_entries(sources))
        logger.info("Created bundle %s with %d section(s)", destination, count)
        return count

    def backup_bundle(self, bundle_path: Path) -> Path:
        backups = self.settings.backups_path(self.project_folder)
        backups.mkdir(parents=True, exist_ok=True)
        base = backup_file_name(bundle_path)[: -len(".bak")]
        target = backups / f"{base}.bak"
        index = 1
        while target.exists():
            target = backups / f"{base} ({index}).bak"
            index += 1
        shutil.copy2(bundle_path, target)
        logger.info("Backed up %s to %s", bundle_path, target)
        return target

    @_serialized
    def create_loader(self, bundle_path: Optional[str | Path] = None) -> Optional[Path]:
        """Replace the project bundle with the loader-only bundle.

        A bundle that still holds scripts is backed up first; the backup
        path is returned (None when no backup was needed).
        """
        path = self.bundle_path(bundle_path)
        backup: Optional[Path] = None
        if path.exists() and is_extraction_needed(read_bundle(path)):
            backup = self.backup_bundle(path)
        else:
            logger.info("No backup needed for %s", path)
        write_bundle(path, [loader_entry(LoaderConfig.from_settings(self.settings))])
        return backup

    # ----------------------------
    # Section operations
    # ----------------------------

    def _check_new_name(self, section_type: SectionType, name: str) -> str:
        if section_type is SectionType.SEPARATOR:
            return ""
        tokens = [t for t in name.replace("\\", "/").split("/") if t.strip()]
        if not tokens:
            return ""
        if section_type is SectionType.SCRIPT:
            tokens[-1], _ = split_script_name(tokens[-1])
        strict = self.settings.strict_names
        return "/".join(check_name(t, strict=strict) for t in tokens)

    @_serialized
    def create_section(
        self,
        section_type: SectionType,
        name: str = "",
        target: Optional[Section] = None,
        *,
        contents: str = "",
        enabled: bool = True,
    ) -> Optional[Section]:
        """Create a section named `name` (may contain `/`) at `target`."""
        name = self._check_new_name(section_type, name)
        placement = self.projector.place(section_type, name, target or self.root)
        section = self.projector.create(
            placement.parent,
            section_type,
            placement.path,
            position=placement.position,
            enabled=enabled,
            contents=contents,
        )
        self._save_load_order()
        return section

    @_serialized
    def delete_section(self, section: Section) -> Optional[Section]:
        removed = self.projector.delete(section)
        self._save_load_order()
        return removed

    @_serialized
    def rename_section(self, section: Section, name: str, *, overwrite: bool = False) -> bool:
        parent = section.parent
        if parent is None:
            raise ValueError(f"rename: {section.path} is not attached to the tree")
        new_name = name.strip()
        if section.is_type(SectionType.SCRIPT) and not new_name.lower().endswith(SCRIPT_EXTENSION):
            new_name += SCRIPT_EXTENSION
        renamed = self.projector.rename(section, parent.path / new_name, overwrite=overwrite)
        if renamed:
            self._save_load_order()
        return renamed

    @_serialized
    def move_sections(self, sources: Iterable[Section], target: Section, *, strict: bool = False) -> bool:
        """Move sections to `target`. With `strict`, a rejected move raises `CycleRejected`."""
        sources = list(sources)
        moved = self.projector.move(sources, target)
        if moved:
            self._save_load_order()
        elif strict:
            raise CycleRejected(f"cannot move {[str(s) for s in sources]} to {target.path}")
        return moved

    @_serialized
    def copy_sections(self, sections: Iterable[Section]) -> int:
        return self.projector.copy(sections)

    @_serialized
    def paste_sections(self, target: Section) -> bool:
        pasted = self.projector.paste(target)
        if pasted:
            self._save_load_order()
        return pasted

    @_serialized
    def set_enabled(self, section: Section, state: bool) -> None:
        self.projector.alternate_load(section, state)
        self._save_load_order()

    @_serialized
    def set_collapsed(self, section: Section, state: bool) -> None:
        self.projector.alternate_collapse(section, state)

    # ----------------------------
    # External events
    # ----------------------------

    @_serialized
    def handle_event(self, event: FsEvent) -> bool:
        """Apply a change made outside rgsm. Returns True when the tree changed.

        Creations of paths the tree already knows (usually our own writes)
        and deletions of paths that still exist are ignored.
        """
        path = Path(event.path)
        try:
            relative = self.root.relative(path)
        except ValueError:
            return False
        if relative == Path() or path.name == LOAD_ORDER_FILE_NAME:
            return False

        if event.kind is FsEventKind.CREATED:
            if self.root.find_path(path) is not None:
                return False
            section_type = determine_type(path)
            if section_type is SectionType.SCRIPT and not path.is_file():
                return False
            if section_type is SectionType.FOLDER and not path.is_dir():
                return False
            if section_type not in (SectionType.SCRIPT, SectionType.FOLDER):
                return False
            self.projector.create(self.root, section_type, path)
            if section_type is SectionType.FOLDER:
                self.projector.scan()
        else:
            section = self.root.find_path(path)
            if section is None or path.exists():
                return False
            parent = section.parent
            if parent is not None:
                parent.delete_child(section)

        logger.debug("Applied %s event for %s", event.kind.value, path)
        self._save_load_order()
        return True
