"""Quickcheck workspace: bundle -> extract -> loader -> rebuild -> compare.

This workspace is self-contained (no repo-level assets required). It writes a
small synthetic `Scripts.rvdata2` into a throwaway project under
`workspaces/00_quickcheck_extract_rebuild/outputs/project/`, extracts it,
installs the loader, rebuilds a standalone bundle from the scripts folder,
re-extracts that bundle into a second project and writes a JSON report.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

import pandas as pd

from rgsm.bundle.table import entries_frame
from rgsm.codecs.rgss_bundle import BundleSource, build_entries, read_bundle, write_bundle
from rgsm.core.constants import FOLDER_SENTINEL
from rgsm.settings import Settings
from rgsm.workspace.controller import ScriptsController


def _fixture_sources() -> list[BundleSource]:
    return [
        BundleSource("Vocab", "module Vocab\n  Title = 'Demo'\nend\n"),
        BundleSource("UI", FOLDER_SENTINEL),
        BundleSource("UI/window_help.rb", "class Window_Help; end\n"),
        BundleSource("", ""),
        BundleSource("Main", "rgss_main { SceneManager.run }\n"),
    ]


def _write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def _extract(project: Path, settings: Settings) -> ScriptsController:
    ctrl = ScriptsController(project, settings)
    ctrl.open()
    ctrl.extract_scripts()
    return ctrl


def main() -> None:
    here = Path(__file__).resolve().parent
    outputs = here / "outputs"
    if outputs.exists():
        shutil.rmtree(outputs)
    outputs.mkdir(parents=True)

    settings = Settings(eol="lf", insert_encoding_comment=False)
    project = outputs / "project"
    bundle = project / "Data" / "Scripts.rvdata2"
    write_bundle(bundle, build_entries(_fixture_sources()))

    ctrl = _extract(project, settings)
    backup = ctrl.create_loader()
    loader_only = read_bundle(bundle)

    rebuilt = outputs / "rebuilt" / "Data" / "Scripts.rvdata2"
    ctrl.create_bundle(rebuilt)
    other = _extract(outputs / "rebuilt", settings)

    # Compare the rebuilt bundle with a second rebuild of its own extraction
    again = outputs / "again.rvdata2"
    other.create_bundle(again)
    cols = ["name", "kind", "source_chars"]
    df1 = entries_frame(read_bundle(rebuilt)).loc[:, cols]
    df2 = entries_frame(read_bundle(again)).loc[:, cols]
    ok_tables = True
    try:
        pd.testing.assert_frame_equal(df1, df2)
    except AssertionError:
        ok_tables = False

    order1 = ctrl.load_order_path.read_text(encoding="utf-8").splitlines()
    order2 = other.load_order_path.read_text(encoding="utf-8").splitlines()
    ok_loader = len(loader_only) == 1 and loader_only[0].is_loader

    report = {
        "project": str(project),
        "backup": str(backup) if backup else None,
        "loader_only_bundle": ok_loader,
        "load_order": order1,
        "load_order_equal": order1 == order2,
        "tables_equal": ok_tables,
    }
    _write_json(outputs / "roundtrip_report.json", report)

    if not (ok_loader and ok_tables and order1 == order2):
        raise SystemExit("roundtrip failed; see outputs/roundtrip_report.json")


if __name__ == "__main__":
    main()
