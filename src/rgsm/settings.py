"""Project settings.

Settings are resolved once and passed explicitly to the codec, the section
tree, the projector and the load-order writer. Nothing reads them globally.

Priority order in `load_settings()`:
1. Environment variables (`RGSM_*`)
2. JSON config file
3. Defaults
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

from rgsm.core.constants import BUNDLE_CANDIDATES

_ALLOWED_EOL = {"lf", "crlf", "auto"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    # Scripts folder, relative to the project folder.
    scripts_folder: str = "Scripts"
    # Backups folder for bundle files, relative to the project folder.
    backups_folder: str = "Backups"
    # Crash log written by the loader, relative to the project folder.
    game_log_file: str = ".rgss-script-editor-game.log"
    eol: str = "auto"
    # Reject non printable ASCII in names (engines before Ruby 1.9).
    strict_names: bool = False
    insert_encoding_comment: bool = True
    # Import straight into the scripts root instead of a dedicated folder.
    import_overwrite: bool = False
    case_insensitive: bool = True

    def __post_init__(self) -> None:
        if self.eol not in _ALLOWED_EOL:
            raise ValueError(f"Settings.eol: expected one of {sorted(_ALLOWED_EOL)}, got {self.eol!r}")
        for name in ("scripts_folder", "backups_folder", "game_log_file"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Settings.{name}: must be a non-empty string")

    def line_ending(self) -> str:
        if self.eol == "lf":
            return "\n"
        if self.eol == "crlf":
            return "\r\n"
        return os.linesep

    def scripts_path(self, project_folder: Path) -> Path:
        return Path(project_folder) / self.scripts_folder

    def backups_path(self, project_folder: Path) -> Path:
        return Path(project_folder) / self.backups_folder

    def game_log_path(self, project_folder: Path) -> Path:
        return Path(project_folder) / self.game_log_file


def _coerce_bool(value: Any, *, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    raise ValueError(f"{where}: expected a boolean, got {value!r}")


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a JSON config file, with environment variable overrides.

    Unknown JSON keys are rejected so that typos do not silently fall back to
    defaults.
    """
    data: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        obj = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(obj, dict):
            raise ValueError(f"{path}: expected JSON object")
        data = dict(obj)

    known = {f.name: f for f in fields(Settings)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"{path}: unknown settings keys: {unknown}")

    for name in known:
        env = os.getenv(f"RGSM_{name.upper()}")
        if env is not None:
            data[name] = env

    for name, f in known.items():
        if name in data and f.type in ("bool", bool):
            data[name] = _coerce_bool(data[name], where=f"settings.{name}")

    return Settings(**data)


def default_config_path(project_folder: Path) -> Path:
    return Path(project_folder) / ".rgsm.json"


def find_bundle_file(project_folder: Path) -> Path | None:
    """Return the scripts bundle of an RPG Maker project, or None.

    When several engines' bundles coexist, the oldest engine wins, matching
    the order in which the game executable probes them.
    """
    root = Path(project_folder)
    for rel in BUNDLE_CANDIDATES:
        candidate = root / rel
        if candidate.is_file():
            return candidate
    return None
