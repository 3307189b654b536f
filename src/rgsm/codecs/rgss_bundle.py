"""RGSS scripts bundle codec (`Scripts.rxdata`, `.rvdata`, `.rvdata2`).

A bundle is a Ruby Marshal 4.8 stream holding one Array of 3-element Arrays:

    [[Integer section_id, String name, String deflated_code], ...]

- `section_id` is an opaque number the engine's script editor uses to tell
  sections apart; it only has to be unique inside one bundle.
- `name` is the section title. It is decoded as UTF-8, permissively.
- `deflated_code` is the Ruby source compressed with zlib (level 9, finished
  stream). `BundleEntry.code` always holds these compressed bytes.

One id, `LOADER_SECTION_ID`, is reserved for the loader entry generated by
`rgsm.bundle.loader`; it is never materialized on disk and is re-created on
every bundle build.

Decoding and encoding are all-or-nothing: `decode()` either returns every
entry or raises `CorruptBundle`, and `write_bundle()` never leaves a partially
written file behind.
"""

from __future__ import annotations

import logging
import os
import random
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from rgsm.codecs._marshal_reader import MarshalFormatError, _load
from rgsm.codecs._marshal_writer import _dump
from rgsm.core.constants import LOADER_SCRIPT_NAME, LOADER_SECTION_ID, SECTION_ID_MAX
from rgsm.errors import CorruptBundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundleEntry:
    section_id: int
    name: str
    code: bytes  # zlib-deflated source

    @property
    def is_loader(self) -> bool:
        return self.section_id == LOADER_SECTION_ID

    def source(self) -> str:
        """Return the inflated source text."""
        return inflate_code(self.code)


@dataclass(frozen=True)
class BundleSource:
    """Uncompressed input for `build_entries()`.

    `section_id` is a request only: it is replaced with a fresh id when it is
    missing or collides with the reserved loader id or an earlier entry.
    """

    name: str
    source: str
    section_id: Optional[int] = None


# ----------------------------
# Code compression
# ----------------------------


def deflate_code(source: str) -> bytes:
    """Compress source text the way the engine expects (zlib level 9, finished)."""
    if not isinstance(source, str):
        raise TypeError(f"deflate_code: expected str, got {type(source).__name__}")
    compressor = zlib.compressobj(zlib.Z_BEST_COMPRESSION)
    return compressor.compress(source.encode("utf-8")) + compressor.flush(zlib.Z_FINISH)


def inflate_code(code: bytes) -> str:
    """Decompress a section's code. Invalid UTF-8 is replaced, never raised."""
    try:
        raw = zlib.decompress(code)
    except zlib.error as e:
        raise CorruptBundle(f"section code is not a zlib stream: {e}") from e
    return raw.decode("utf-8", errors="replace")


# ----------------------------
# Section ids
# ----------------------------


def generate_section_id(used_ids: Iterable[int] = (), *, rng: Optional[random.Random] = None) -> int:
    """Return a random id in [0, SECTION_ID_MAX) that is not in `used_ids`.

    Callers include `LOADER_SECTION_ID` in `used_ids`; it is outside the range
    anyway, so a generated id can never shadow the loader.
    """
    used = set(used_ids)
    r = rng or random
    while True:
        candidate = r.randrange(SECTION_ID_MAX)
        if candidate not in used:
            return candidate


def is_extraction_needed(entries: Iterable[BundleEntry]) -> bool:
    """True when the bundle still holds at least one section besides the loader."""
    return any(not entry.is_loader for entry in entries)


# ----------------------------
# Marshal graph <-> entries
# ----------------------------


def decode(data: bytes) -> list[BundleEntry]:
    """Decode bundle bytes into entries, in bundle order."""
    try:
        graph = _load(data)
    except MarshalFormatError as e:
        raise CorruptBundle(f"bundle is not a valid Marshal stream: {e}") from e

    if not isinstance(graph, list):
        raise CorruptBundle(f"bundle: expected top-level Array, got {type(graph).__name__}")

    entries: list[BundleEntry] = []
    for i, item in enumerate(graph):
        if not isinstance(item, list) or len(item) != 3:
            raise CorruptBundle(f"bundle[{i}]: expected a 3-element Array")
        section_id, name, code = item
        if isinstance(section_id, bool) or not isinstance(section_id, int):
            raise CorruptBundle(f"bundle[{i}][0]: expected Integer, got {type(section_id).__name__}")
        if not isinstance(name, bytes):
            raise CorruptBundle(f"bundle[{i}][1]: expected String, got {type(name).__name__}")
        if not isinstance(code, bytes):
            raise CorruptBundle(f"bundle[{i}][2]: expected String, got {type(code).__name__}")
        entries.append(BundleEntry(section_id, name.decode("utf-8", errors="replace"), code))
    return entries


def encode(entries: Iterable[BundleEntry]) -> bytes:
    """Encode entries (code already deflated) into bundle bytes."""
    graph: list[list[object]] = []
    for i, entry in enumerate(entries):
        if not isinstance(entry, BundleEntry):
            raise TypeError(f"entries[{i}]: expected BundleEntry, got {type(entry).__name__}")
        if isinstance(entry.section_id, bool) or not isinstance(entry.section_id, int):
            raise TypeError(f"entries[{i}].section_id: expected int")
        graph.append([entry.section_id, str(entry.name), bytes(entry.code)])
    return _dump(graph, hash_str_keys_as_symbols=True)


def build_entries(
    sources: Iterable[BundleSource],
    *,
    loader_code: Optional[str] = None,
    loader_name: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> list[BundleEntry]:
    """Compress `sources` into entries with unique section ids.

    When `loader_code` is given, the loader entry is appended exactly once,
    tagged with `LOADER_SECTION_ID`. Any source requesting that id (or an id
    already taken in this pass) receives a freshly generated one.
    """
    used: set[int] = {LOADER_SECTION_ID}
    entries: list[BundleEntry] = []
    for src in sources:
        sid = src.section_id
        if sid is None or isinstance(sid, bool) or sid < 0 or sid in used:
            sid = generate_section_id(used, rng=rng)
        used.add(sid)
        entries.append(BundleEntry(sid, src.name, deflate_code(src.source)))

    if loader_code is not None:
        entries.append(BundleEntry(LOADER_SECTION_ID, loader_name or LOADER_SCRIPT_NAME, deflate_code(loader_code)))
    return entries


# ----------------------------
# Files
# ----------------------------


def read_bundle(path: str | Path) -> list[BundleEntry]:
    """Read and decode a bundle file."""
    p = Path(path)
    logger.debug("Reading bundle file %s", p)
    return decode(p.read_bytes())


def write_bundle(path: str | Path, entries: Iterable[BundleEntry]) -> int:
    """Encode entries and atomically replace `path`. Returns the entry count."""
    entries = list(entries)
    data = encode(entries)

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, p)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote bundle %s (%d entries, %d bytes)", p, len(entries), len(data))
    return len(entries)
