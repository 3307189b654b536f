"""Pytest configuration.

This repo follows the `src/` layout. Some environments may invoke a `pytest`
entrypoint from a different Python install than the one used for
`python -m pip install -e ...`, which can cause `import rgsm` to fail.

To keep the suite robust, we ensure `src/` is on `sys.path` during tests.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


# =============================================================================
# Shared Test Helpers
# =============================================================================


def make_entries(items: Iterable[tuple[int, str, str]]) -> list:
    """Build bundle entries from (section_id, name, source) triples."""
    from rgsm.codecs.rgss_bundle import BundleEntry, deflate_code

    return [BundleEntry(sid, name, deflate_code(source)) for sid, name, source in items]


def make_project(
    root: Path,
    items: Iterable[tuple[int, str, str]] = (),
    *,
    bundle_name: str = "Scripts.rvdata2",
) -> Path:
    """Create an RPG Maker project folder with a scripts bundle; returns the bundle path."""
    from rgsm.codecs.rgss_bundle import write_bundle

    bundle = root / "Data" / bundle_name
    write_bundle(bundle, make_entries(items))
    return bundle


def lf_settings(**overrides: object):
    """Deterministic settings: LF line endings, no encoding comment."""
    from rgsm.settings import Settings

    values = {"eol": "lf", "insert_encoding_comment": False}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]
