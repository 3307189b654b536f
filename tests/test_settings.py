from __future__ import annotations

import json
from pathlib import Path

import pytest

from rgsm.settings import Settings, default_config_path, find_bundle_file, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SCRIPTS_FOLDER",
        "BACKUPS_FOLDER",
        "GAME_LOG_FILE",
        "EOL",
        "STRICT_NAMES",
        "INSERT_ENCODING_COMMENT",
        "IMPORT_OVERWRITE",
        "CASE_INSENSITIVE",
    ):
        monkeypatch.delenv(f"RGSM_{name}", raising=False)


def test_defaults(tmp_path: Path) -> None:
    s = load_settings(None)
    assert s == Settings()
    assert s.scripts_path(tmp_path) == tmp_path / "Scripts"
    assert s.game_log_path(tmp_path) == tmp_path / ".rgss-script-editor-game.log"
    assert default_config_path(tmp_path) == tmp_path / ".rgsm.json"


def test_line_endings() -> None:
    assert Settings(eol="lf").line_ending() == "\n"
    assert Settings(eol="crlf").line_ending() == "\r\n"
    with pytest.raises(ValueError):
        Settings(eol="cr")


def test_json_file_and_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = tmp_path / ".rgsm.json"
    cfg.write_text(json.dumps({"scripts_folder": "Src", "eol": "crlf", "strict_names": "yes"}))
    monkeypatch.setenv("RGSM_EOL", "lf")
    monkeypatch.setenv("RGSM_CASE_INSENSITIVE", "false")

    s = load_settings(cfg)

    assert s.scripts_folder == "Src"
    assert s.eol == "lf"
    assert s.strict_names is True
    assert s.case_insensitive is False


def test_missing_config_file_uses_defaults(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "nope.json") == Settings()


@pytest.mark.parametrize(
    "payload",
    [
        [1, 2],
        {"scripts_foldr": "typo"},
        {"strict_names": "maybe"},
        {"scripts_folder": "   "},
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, payload: object) -> None:
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps(payload))
    with pytest.raises(ValueError):
        load_settings(cfg)


def test_find_bundle_file_prefers_oldest_engine(tmp_path: Path) -> None:
    assert find_bundle_file(tmp_path) is None
    data = tmp_path / "Data"
    data.mkdir()
    (data / "Scripts.rvdata2").write_bytes(b"")
    assert find_bundle_file(tmp_path) == data / "Scripts.rvdata2"
    (data / "Scripts.rxdata").write_bytes(b"")
    assert find_bundle_file(tmp_path) == data / "Scripts.rxdata"
