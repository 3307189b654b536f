"""Codecs for the engine's binary formats.

- `rgss_bundle`: the scripts bundle (`Scripts.rxdata` / `.rvdata` / `.rvdata2`)
- `crash_report`: the crash log dumped by the loader script

Both sit on a private Ruby Marshal reader/writer that only understands the
object shapes these files use.
"""

from __future__ import annotations

from .rgss_bundle import (
    BundleEntry,
    BundleSource,
    build_entries,
    decode,
    deflate_code,
    encode,
    generate_section_id,
    inflate_code,
    is_extraction_needed,
    read_bundle,
    write_bundle,
)

__all__ = [
    "BundleEntry",
    "BundleSource",
    "build_entries",
    "decode",
    "deflate_code",
    "encode",
    "generate_section_id",
    "inflate_code",
    "is_extraction_needed",
    "read_bundle",
    "write_bundle",
]
