"""Section name rules.

Names end up as file and folder names on every platform the engine runs on
and as lines in the load order, so a name is rejected when it contains:

- characters Windows refuses in paths, plus `#` (the load-order skip marker)
  and NUL
- the `.rb` token (the extension is added by the tree, never typed)
- reserved DOS device names (`CON`, `PRN`, `AUX`, `NUL`, `COM1-9`, `LPT1-9`)

Strict mode additionally rejects anything outside printable ASCII; engines
running Ruby older than 1.9 cannot load such paths.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Optional

from rgsm.core.constants import (
    DEFAULT_FOLDER_NAME,
    DEFAULT_SCRIPT_NAME,
    SCRIPT_EXTENSION,
    SEPARATOR_NAME,
)
from rgsm.core.section import SectionType
from rgsm.errors import InvalidName

BLACKLIST_RE = re.compile(
    r'[\\/:*?"<>|#\0]|\.rb|\b(?:CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])\b',
    re.IGNORECASE,
)
STRICT_BLACKLIST_RE = re.compile(r"[^\x20-\x7E]")

_SEPARATORS_RE = re.compile(r"[\\/]+")


def validate_name(name: str, *, strict: bool = False) -> list[str]:
    """Return the blacklisted substrings found in `name` (empty when valid)."""
    if not isinstance(name, str):
        raise TypeError(f"validate_name: expected str, got {type(name).__name__}")
    matches = [m.group(0) for m in BLACKLIST_RE.finditer(name)]
    if strict:
        matches.extend(m.group(0) for m in STRICT_BLACKLIST_RE.finditer(name))
    return matches


def check_name(name: str, *, strict: bool = False) -> str:
    """Raise `InvalidName` unless `name` is usable; return it stripped."""
    stripped = name.strip()
    if not stripped:
        raise InvalidName(name, ["<empty>"])
    matches = validate_name(stripped, strict=strict)
    if matches:
        raise InvalidName(name, matches)
    return stripped


def sanitize_name(name: str, *, strict: bool = False) -> str:
    """Drop every blacklisted substring and surrounding whitespace."""
    out = BLACKLIST_RE.sub("", name.strip())
    if strict:
        out = STRICT_BLACKLIST_RE.sub("", out)
    return out.strip()


def split_script_name(name: str) -> tuple[str, str]:
    """Split `name` into (stem, extension), recognizing only `.rb`.

    Section titles in old bundles routinely contain dots ("Window (v1.2)"),
    so any other suffix is kept as part of the stem.
    """
    if name.lower().endswith(SCRIPT_EXTENSION):
        return name[: -len(SCRIPT_EXTENSION)], name[-len(SCRIPT_EXTENSION):]
    return name, ""


def process_bundle_name(name: str, *, strict: bool = False) -> str:
    """Turn a bundle section title into a safe relative path (`/`-separated).

    Every folder token and the final stem are sanitized; the separator
    sentinel and a trailing `.rb` are preserved. Returns "" when nothing
    usable is left.
    """
    tokens = [t for t in _SEPARATORS_RE.split(name.strip()) if t.strip()]
    if not tokens:
        return ""
    *dirs, last = tokens

    parts = [sanitize_name(t, strict=strict) for t in dirs]
    parts = [p for p in parts if p]

    stem, ext = split_script_name(last.strip())
    if stem == SEPARATOR_NAME:
        parts.append(SEPARATOR_NAME)
    else:
        stem = sanitize_name(stem, strict=strict)
        if stem or ext:
            parts.append(stem + ext)
    return "/".join(parts)


def _exists_on_disk(path: Path, *, case_insensitive: bool) -> bool:
    if path.exists():
        return True
    if not case_insensitive or not path.parent.is_dir():
        return False
    wanted = path.name.casefold()
    return any(entry.name.casefold() == wanted for entry in path.parent.iterdir())


def unique_path(
    directory: Path,
    section_type: SectionType,
    name: str,
    *,
    avoid_overwrite: bool = True,
    case_insensitive: bool = True,
    taken: Optional[Callable[[Path], bool]] = None,
) -> Path:
    """Resolve the path of a new section named `name` under `directory`.

    `name` may contain `/`-separated folders. With `avoid_overwrite`, a
    numbered suffix (`Name (1)`, `Name (2)`, ...) is appended until the path
    is free on disk and, when given, `taken(path)` is false.
    """
    tokens = [t for t in _SEPARATORS_RE.split(name) if t]
    base = Path(directory).joinpath(*tokens[:-1]) if tokens else Path(directory)
    last = tokens[-1] if tokens else ""

    if section_type is SectionType.SEPARATOR:
        return base / SEPARATOR_NAME

    if section_type is SectionType.FOLDER:
        stem, suffix = (last or DEFAULT_FOLDER_NAME), ""
    else:
        stem, _ = split_script_name(last)
        stem, suffix = (stem or DEFAULT_SCRIPT_NAME), SCRIPT_EXTENSION

    def occupied(p: Path) -> bool:
        if _exists_on_disk(p, case_insensitive=case_insensitive):
            return True
        return bool(taken and taken(p))

    candidate = base / f"{stem}{suffix}"
    if not avoid_overwrite:
        return candidate
    index = 1
    while occupied(candidate):
        candidate = base / f"{stem} ({index}){suffix}"
        index += 1
    return candidate
