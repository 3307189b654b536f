"""Bundle entries as a pandas table, for inspection (`rgsm ls`).

One row per entry, in bundle order:

- `position`: index inside the bundle
- `section_id`, `name`: as stored
- `kind`: `separator` / `folder` / `script`, or `loader` for the loader
  entry, or `invalid` when the code is not a zlib stream
- `is_loader`: whether the entry carries the reserved loader id
- `code_bytes`: compressed size
- `source_chars`: inflated length (<NA> when invalid)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from rgsm.codecs.rgss_bundle import BundleEntry
from rgsm.core.section import determine_type
from rgsm.errors import CorruptBundle

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd


ENTRY_SCHEMA: dict[str, str] = {
    "position": "Int64",
    "section_id": "Int64",
    "name": "string",
    "kind": "string",
    "is_loader": "boolean",
    "code_bytes": "Int64",
    "source_chars": "Int64",
}

ENTRY_COLUMN_ORDER: list[str] = list(ENTRY_SCHEMA.keys())


def _entry_row(position: int, entry: BundleEntry) -> dict[str, Any]:
    kind: str
    chars: Any
    try:
        source = entry.source()
    except CorruptBundle:
        kind, chars = "invalid", None
    else:
        chars = len(source)
        if entry.is_loader:
            kind = "loader"
        else:
            section_type = determine_type(entry.name, source)
            kind = section_type.name.lower() if section_type is not None else "invalid"
    return {
        "position": position,
        "section_id": entry.section_id,
        "name": entry.name,
        "kind": kind,
        "is_loader": entry.is_loader,
        "code_bytes": len(entry.code),
        "source_chars": chars,
    }


def entries_frame(entries: Iterable[BundleEntry]) -> "pd.DataFrame":
    """Return the entries table with the dtypes of `ENTRY_SCHEMA`."""
    import pandas as pd

    rows = [_entry_row(i, e) for i, e in enumerate(entries)]
    df = pd.DataFrame(rows, columns=ENTRY_COLUMN_ORDER)
    for col, dtype in ENTRY_SCHEMA.items():
        df[col] = df[col].astype(dtype)
    return df


def kind_counts(df: "pd.DataFrame") -> dict[str, int]:
    """Number of entries per kind, sorted by kind."""
    counts = df["kind"].value_counts()
    return {str(k): int(v) for k, v in sorted(counts.items())}


def write_entries_csv(path: str | Path, df: "pd.DataFrame") -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(p, index=False, lineterminator="\n")
