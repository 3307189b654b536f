from __future__ import annotations

import os
from pathlib import Path

import pytest

from conftest import lf_settings
from rgsm.core.section import EditorMode, Section, SectionType
from rgsm.errors import FilesystemFailure, InvalidName, PathConflict
from rgsm.settings import Settings
from rgsm.workspace.projector import FilesystemProjector, read_code


def _projector(tmp_path: Path, *, mode: EditorMode = EditorMode.MERGE, **settings: object) -> FilesystemProjector:
    scripts = tmp_path / "Scripts"
    scripts.mkdir()
    return FilesystemProjector(Section(SectionType.FOLDER, scripts), lf_settings(**settings), mode=mode)


def _names(section: Section) -> list[str]:
    return [c.name for c in section.children]


# ----------------------------
# create / delete
# ----------------------------


def test_create_script_writes_file_with_intermediate_folders(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    script = p.create(p.root, SectionType.SCRIPT, p.root.path / "UI" / "button.rb", contents="puts 1")

    assert script is not None
    assert (p.root.path / "UI").is_dir()
    assert read_code(script.path) == "puts 1"
    assert p.find(p.root.path / "UI") is script.parent


def test_create_inserts_encoding_comment_with_configured_eol(tmp_path: Path) -> None:
    scripts = tmp_path / "Scripts"
    scripts.mkdir()
    settings = Settings(eol="crlf", insert_encoding_comment=True)
    p = FilesystemProjector(Section(SectionType.FOLDER, scripts), settings)

    a = p.create(p.root, SectionType.SCRIPT, scripts / "a.rb", contents="puts 1")
    b = p.create(p.root, SectionType.SCRIPT, scripts / "b.rb", contents="# encoding: utf-8\nputs 2")

    assert a.path.read_bytes() == b"# encoding: utf-8\r\nputs 1"
    assert b.path.read_bytes() == b"# encoding: utf-8\nputs 2"


def test_create_keeps_existing_file_unless_overwrite(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    target = p.root.path / "keep.rb"
    target.write_text("original")

    section = p.create(p.root, SectionType.SCRIPT, target, contents="new")
    assert read_code(section.path) == "original"

    p.create(p.root, SectionType.SCRIPT, target, contents="new", overwrite=True)
    assert read_code(section.path) == "new"


def test_create_separator_touches_nothing(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    sep = p.create(p.root, SectionType.SEPARATOR, p.root.path / "*separator*")
    assert sep is not None
    assert list(p.root.path.iterdir()) == []


def test_create_rolls_back_tree_on_filesystem_error(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    # a plain file where a folder must be created
    (p.root.path / "UI").write_text("not a folder")

    with pytest.raises(FilesystemFailure) as exc:
        p.create(p.root, SectionType.SCRIPT, p.root.path / "UI" / "button.rb", contents="x")

    assert isinstance(exc.value.__cause__, OSError)
    assert p.root.nested_children() == []


def test_delete_removes_file_and_whole_folder(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    script = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb")
    p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "b.rb")
    folder = p.find(p.root.path / "F")

    assert p.delete(script) is script
    assert p.delete(folder) is folder

    assert not (p.root.path / "a.rb").exists()
    assert not (p.root.path / "F").exists()
    assert p.root.nested_children() == []


def test_delete_separator_only_detaches(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    sep = p.create(p.root, SectionType.SEPARATOR, p.root.path / "*separator*")
    assert p.delete(sep) is sep
    assert not p.root.has_children()


# ----------------------------
# rename
# ----------------------------


def test_rename_script_adds_extension_and_moves_file(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    script = p.create(p.root, SectionType.SCRIPT, p.root.path / "old.rb", contents="x")

    assert p.rename(script, p.root.path / "new") is True

    assert script.path == p.root.path / "new.rb"
    assert (p.root.path / "new.rb").is_file()
    assert not (p.root.path / "old.rb").exists()


def test_rename_folder_rewrites_children(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    child = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb")
    folder = child.parent

    p.rename(folder, p.root.path / "G")

    assert child.path == p.root.path / "G" / "s.rb"
    assert child.path.is_file()


def test_rename_conflict_and_overwrite(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="a")
    b = p.create(p.root, SectionType.SCRIPT, p.root.path / "b.rb", contents="b")

    with pytest.raises(PathConflict):
        p.rename(a, p.root.path / "B.rb")
    assert a.path.name == "a.rb"

    assert p.rename(a, p.root.path / "b.rb", overwrite=True)
    assert p.root.children == (a,)
    assert b.parent is None
    assert read_code(p.root.path / "b.rb") == "a"


def test_rename_rejects_invalid_names(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb")
    with pytest.raises(InvalidName):
        p.rename(a, p.root.path / "bad:name")
    with pytest.raises(InvalidName):
        p.rename(a, p.root.path / "#hidden")
    assert (p.root.path / "a.rb").is_file()


def test_rename_case_only_change(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "main.rb")
    assert p.rename(a, p.root.path / "Main")
    assert a.path.name == "Main.rb"
    assert sorted(x.name for x in p.root.path.iterdir()) == ["Main.rb"]


def test_rename_separator_is_refused(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    sep = p.create(p.root, SectionType.SEPARATOR, p.root.path / "*separator*")
    assert p.rename(sep, p.root.path / "x") is False


# ----------------------------
# move
# ----------------------------


def test_move_script_into_folder_merge_mode(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="a")
    ui = p.create(p.root, SectionType.FOLDER, p.root.path / "UI")

    assert p.move([a], ui) is True

    assert a.parent is ui
    assert a.path == p.root.path / "UI" / "a.rb"
    assert read_code(a.path) == "a"
    assert not (p.root.path / "a.rb").exists()
    assert p.root.children == (ui,)


def test_move_places_after_target_in_move_mode(tmp_path: Path) -> None:
    p = _projector(tmp_path, mode=EditorMode.MOVE)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb")
    b = p.create(p.root, SectionType.SCRIPT, p.root.path / "b.rb")
    c = p.create(p.root, SectionType.SCRIPT, p.root.path / "c.rb")

    assert p.move([a], c)
    assert p.root.children == (b, c, a)

    assert p.move([a], b)
    assert p.root.children == (b, a, c)


def test_move_batch_keeps_relative_order(tmp_path: Path) -> None:
    p = _projector(tmp_path, mode=EditorMode.MOVE)
    a, b, c, d = (p.create(p.root, SectionType.SCRIPT, p.root.path / f"{n}.rb") for n in "abcd")

    assert p.move([a, b], d)
    assert p.root.children == (c, d, a, b)


def test_move_into_own_descendant_is_rejected(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    inner = p.create(p.root, SectionType.FOLDER, p.root.path / "Outer" / "Inner")
    outer = inner.parent

    assert p.move([outer], inner) is False
    assert p.move([outer], outer) is False
    assert inner.parent is outer
    assert (p.root.path / "Outer" / "Inner").is_dir()


def test_move_renames_on_collision(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    top = p.create(p.root, SectionType.SCRIPT, p.root.path / "s.rb", contents="top")
    p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb", contents="nested")
    folder = p.find(p.root.path / "F")

    assert p.move([top], folder)
    assert top.path == p.root.path / "F" / "s (1).rb"
    assert read_code(top.path) == "top"


def test_move_rolls_back_when_rename_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb")
    b = p.create(p.root, SectionType.SCRIPT, p.root.path / "b.rb")
    folder = p.create(p.root, SectionType.FOLDER, p.root.path / "F")

    real_rename = os.rename
    calls = {"n": 0}

    def flaky_rename(src, dst):
        calls["n"] += 1
        if calls["n"] == 2:
            raise PermissionError("locked")
        return real_rename(src, dst)

    monkeypatch.setattr(os, "rename", flaky_rename)
    with pytest.raises(FilesystemFailure):
        p.move([a, b], folder)

    assert p.root.children == (a, b, folder)
    assert a.path == p.root.path / "a.rb"
    assert a.path.is_file()
    assert b.path.is_file()
    assert not folder.has_children()


# ----------------------------
# copy / paste
# ----------------------------


def test_paste_copies_subtree_and_clears_clipboard(tmp_path: Path) -> None:
    p = _projector(tmp_path, mode=EditorMode.MOVE)
    s = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb", contents="code")
    s.enabled = False
    folder = s.parent

    assert p.copy([folder, s]) == 1
    assert p.paste(folder) is True

    assert p.clipboard == ()
    assert _names(p.root) == ["F", "F (1)"]
    clone = p.root.child_at(1)
    (clone_s,) = clone.children
    assert clone_s.path == p.root.path / "F (1)" / "s.rb"
    assert read_code(clone_s.path) == "code"
    assert clone_s.is_loaded() is False


def test_paste_folder_into_itself(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    s = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb", contents="x")
    folder = s.parent

    p.copy([folder])
    assert p.paste(folder)

    assert [c.name for c in folder.children] == ["s.rb", "F"]
    assert (p.root.path / "F" / "F" / "s.rb").is_file()
    # the pasted copy does not recurse into itself
    assert not (p.root.path / "F" / "F" / "F").exists()


def test_paste_with_empty_clipboard(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    assert p.paste(p.root) is False


def test_paste_failure_removes_partial_copies(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="a")
    b = p.create(p.root, SectionType.SCRIPT, p.root.path / "b.rb", contents="b")
    p.copy([a, b])

    real_write = p._write_script

    def failing_write(path: Path, contents: str) -> None:
        if contents == "b":
            raise OSError("disk full")
        real_write(path, contents)

    monkeypatch.setattr(p, "_write_script", failing_write)
    with pytest.raises(FilesystemFailure):
        p.paste(p.root)

    assert p.root.children == (a, b)
    assert sorted(x.name for x in p.root.path.iterdir()) == ["a.rb", "b.rb"]
    assert p.clipboard == ()


def test_paste_snapshots_every_copied_subtree(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.FOLDER, p.root.path / "A")
    x = p.create(p.root, SectionType.SCRIPT, p.root.path / "B" / "x.rb", contents="x")
    b = x.parent

    p.copy([a, b])
    assert p.paste(b)

    assert _names(b) == ["x.rb", "A", "B"]
    assert _names(b.child_at(2)) == ["x.rb"]
    assert not (p.root.path / "B" / "B" / "A").exists()


def test_paste_drops_sections_deleted_since_copy(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    a = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="puts 1")
    p.copy([a])
    p.delete(a)

    assert p.paste(p.root) is False
    assert not p.root.has_children()
    assert list(p.root.path.iterdir()) == []


def test_paste_fails_when_copied_file_is_gone(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    s = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb", contents="s")
    folder = s.parent
    p.copy([folder])
    os.remove(s.path)

    with pytest.raises(FilesystemFailure):
        p.paste(p.root)

    assert p.root.children == (folder,)
    assert [x.name for x in p.root.path.iterdir()] == ["F"]


def test_move_and_paste_never_duplicate_names_ignoring_case(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    upper = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "A.rb", contents="upper")
    folder = upper.parent
    moved = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="moved")

    assert p.move([moved], folder)
    copied = p.create(p.root, SectionType.SCRIPT, p.root.path / "a.rb", contents="copied")
    p.copy([copied])
    assert p.paste(folder)

    assert _names(folder) == ["A.rb", "a (1).rb", "a (2).rb"]
    paths = [str(s.path).casefold() for s in p.root.nested_children()]
    assert len(paths) == len(set(paths))
    assert read_code(folder.path / "a (2).rb") == "copied"


# ----------------------------
# flags / scan
# ----------------------------


def test_alternate_load_and_collapse(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    s = p.create(p.root, SectionType.SCRIPT, p.root.path / "F" / "s.rb")
    folder = s.parent

    p.alternate_load(folder, False)
    p.alternate_collapse(folder, True)

    assert not s.is_loaded()
    assert folder.collapsed


def test_scan_adds_unknown_entries_once(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    (p.root.path / "Core").mkdir()
    (p.root.path / "Core" / "vocab.rb").write_text("module Vocab; end")
    (p.root.path / "main.rb").write_text("")
    (p.root.path / "notes.txt").write_text("")

    created = p.scan()
    assert [s.name for s in created] == ["Core", "main.rb", "vocab.rb"]
    assert p.scan() == []
    assert [s.name for s in p.root.nested_children()] == ["Core", "vocab.rb", "main.rb"]
    # scanning never rewrites existing files
    assert read_code(p.root.path / "Core" / "vocab.rb") == "module Vocab; end"


def test_scan_keeps_disabled_sections_disabled(tmp_path: Path) -> None:
    p = _projector(tmp_path)
    s = p.create(p.root, SectionType.SCRIPT, p.root.path / "s.rb")
    s.enabled = False
    p.scan()
    assert s.is_loaded() is False
