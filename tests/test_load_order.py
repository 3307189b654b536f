from __future__ import annotations

from pathlib import Path

from rgsm.bundle.load_order import (
    LoadOrderLine,
    LoadOrderStatus,
    format_load_order,
    parse_load_order_text,
    read_load_order,
    write_load_order,
)
from rgsm.core.section import Section, SectionType


def _tree(tmp_path: Path) -> Section:
    scripts = tmp_path / "Scripts"
    (scripts / "Core").mkdir(parents=True)
    (scripts / "Core" / "Vocab.rb").write_text("")
    (scripts / "Core" / "Debug.rb").write_text("")
    (scripts / "main.rb").write_text("")

    root = Section(SectionType.FOLDER, scripts)
    root.create_child(SectionType.SCRIPT, scripts / "Core" / "Vocab.rb")
    root.create_child(SectionType.SCRIPT, scripts / "Core" / "Debug.rb")
    root.create_child(SectionType.SEPARATOR, scripts / "*separator*")
    root.create_child(SectionType.SCRIPT, scripts / "main.rb")
    return root


def test_disabled_script_gets_skip_prefix_and_loses_it_again(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    manifest = tmp_path / "Scripts" / "load_order.txt"
    debug = root.find_path(root.path / "Core" / "Debug.rb")

    debug.enabled = False
    write_load_order(manifest, root)
    assert manifest.read_text().splitlines() == [
        "Core",
        "Core/Vocab.rb",
        "#Core/Debug.rb",
        "*separator*",
        "main.rb",
    ]

    debug.enabled = True
    write_load_order(manifest, root)
    assert "#" not in manifest.read_text()


def test_disabled_folder_cascades_to_its_lines(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    root.child_at(0).alternate_load(False)
    text = format_load_order(root)
    assert text.splitlines()[:3] == ["#Core", "#Core/Vocab.rb", "#Core/Debug.rb"]


def test_write_uses_configured_line_ending(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    manifest = tmp_path / "load_order.txt"
    assert write_load_order(manifest, root, eol="\r\n") == 5
    assert manifest.read_bytes().startswith(b"Core\r\nCore/Vocab.rb\r\n")


def test_write_subset_of_sections(tmp_path: Path) -> None:
    root = _tree(tmp_path)
    manifest = tmp_path / "load_order.txt"
    main = root.find_path(root.path / "main.rb")
    assert write_load_order(manifest, root, sections=[main]) == 1
    assert manifest.read_text() == "main.rb\n"


def test_read_rebuilds_tree_in_file_order(tmp_path: Path) -> None:
    source = _tree(tmp_path)
    manifest = tmp_path / "Scripts" / "load_order.txt"
    source.find_path(source.path / "main.rb").enabled = False
    write_load_order(manifest, source)

    fresh = Section(SectionType.FOLDER, source.path)
    result = read_load_order(manifest, fresh)

    assert result.ok
    assert [repr(s) for s in fresh.nested_children()] == [repr(s) for s in source.nested_children()]
    assert len(result.sections) == 5
    assert not fresh.find_path(fresh.path / "main.rb").is_loaded()


def test_read_skips_missing_files_and_unknown_entries(tmp_path: Path) -> None:
    root_dir = tmp_path / "Scripts"
    root_dir.mkdir()
    (root_dir / "here.rb").write_text("")
    manifest = root_dir / "load_order.txt"
    manifest.write_text("gone.rb\nhere.rb\nnotes.txt\n\n*separator*\nGoneFolder\n")

    root = Section(SectionType.FOLDER, root_dir)
    result = read_load_order(manifest, root)

    assert result.status is LoadOrderStatus.OK
    assert [s.name for s in root.children] == ["here.rb", "*separator*"]


def test_read_skips_separator_in_missing_folder(tmp_path: Path) -> None:
    root_dir = tmp_path / "Scripts"
    root_dir.mkdir()
    manifest = root_dir / "load_order.txt"
    manifest.write_text("UI\nUI/*separator*\nUI/a.rb\n*separator*\n")
    root = Section(SectionType.FOLDER, root_dir)
    calls = []

    def create(section_type, path, enabled):
        calls.append(path)
        return root.create_child(section_type, path)

    result = read_load_order(manifest, root, create=create)

    assert result.status is LoadOrderStatus.OK
    assert calls == [root_dir / "*separator*"]


def test_read_accepts_backslash_paths(tmp_path: Path) -> None:
    root_dir = tmp_path / "Scripts"
    (root_dir / "UI").mkdir(parents=True)
    (root_dir / "UI" / "button.rb").write_text("")
    manifest = root_dir / "load_order.txt"
    manifest.write_bytes(b"UI\r\n#UI\\button.rb\r\n")

    root = Section(SectionType.FOLDER, root_dir)
    read_load_order(manifest, root)

    button = root.find_path(root_dir / "UI" / "button.rb")
    assert button is not None
    assert button.parent.name == "UI"
    assert not button.is_loaded()


def test_read_absent_and_empty(tmp_path: Path) -> None:
    root = Section(SectionType.FOLDER, tmp_path)
    assert read_load_order(tmp_path / "load_order.txt", root).status is LoadOrderStatus.ABSENT

    (tmp_path / "load_order.txt").write_text("\n   \n")
    result = read_load_order(tmp_path / "load_order.txt", root)
    assert result.status is LoadOrderStatus.EMPTY
    assert not result.ok
    assert not root.has_children()


def test_read_uses_create_callback(tmp_path: Path) -> None:
    (tmp_path / "a.rb").write_text("")
    (tmp_path / "load_order.txt").write_text("#a.rb\n")
    root = Section(SectionType.FOLDER, tmp_path)
    calls = []

    def create(section_type, path, enabled):
        calls.append((section_type, path, enabled))
        return root.create_child(section_type, path)

    read_load_order(tmp_path / "load_order.txt", root, create=create)
    assert calls == [(SectionType.SCRIPT, tmp_path / "a.rb", False)]


def test_parse_load_order_text() -> None:
    lines = parse_load_order_text("a.rb\r\n  # b.rb  \n\n*separator*\n")
    assert lines == [
        LoadOrderLine("a.rb", True),
        LoadOrderLine("b.rb", False),
        LoadOrderLine("*separator*", True),
    ]
    assert LoadOrderLine("UI\\x.rb").resolve(Path("/s")) == Path("/s/UI/x.rb")
