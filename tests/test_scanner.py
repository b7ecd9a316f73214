from pathlib import Path

from core.scanner import scan_directory, scan_subdirectories


def test_missing_root_is_empty(tmp_path: Path):
    assert scan_directory(tmp_path / "nope") == []
    assert scan_directory(None) == []


def test_lists_children_with_link_flags(tmp_path: Path):
    target = tmp_path / "pool" / "Linked"
    target.mkdir(parents=True)
    root = tmp_path / "root"
    root.mkdir()
    (root / "Real").mkdir()
    (root / ".hidden").mkdir()
    (root / "notes.txt").write_text("x", encoding="utf-8")
    (root / "Linked").symlink_to(target, target_is_directory=True)
    (root / "Broken").symlink_to(tmp_path / "pool" / "gone", target_is_directory=True)

    entries = {e.name: e for e in scan_directory(root)}

    assert set(entries) == {"Real", "notes.txt", "Linked", "Broken"}
    assert entries["Real"].is_dir and not entries["Real"].is_link
    assert entries["Linked"].is_dir and entries["Linked"].is_link
    assert entries["Broken"].is_link and not entries["Broken"].is_dir
    assert not entries["notes.txt"].is_dir

    assert [e.name for e in scan_subdirectories(root)] == ["Linked", "Real"]
