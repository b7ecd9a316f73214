from core.reconciler import reconcile_plugins, reconcile_scenery
from core.scanner import DirEntry
from core.scenery_packs import PackLine


def _dirs(*names, link=False):
    return [DirEntry(name=n, is_dir=True, is_link=link) for n in names]


def _line(name, enabled=True):
    return PackLine(folder_name=name, is_enabled=enabled, source_line=f"SCENERY_PACK {name}")


def test_precedence_orphans_then_file_then_uninstalled():
    pack_lines = [_line("Zulu"), _line("Alpha", enabled=False), _line("*GLOBAL_AIRPORTS*")]
    installed = _dirs("Zulu", "Alpha", "Orphan B", "Orphan A")
    available = _dirs("Zulu", "New 2", "New 1")

    result = reconcile_scenery(pack_lines, installed, available)

    assert [e.folder_name for e in result] == [
        "Orphan A", "Orphan B", "Zulu", "Alpha", "*GLOBAL_AIRPORTS*", "New 1", "New 2",
    ]
    orphan, listed, uninstalled = result[0], result[3], result[5]
    assert orphan.is_enabled and not orphan.is_in_ordered_file
    assert listed.is_in_ordered_file and not listed.is_enabled
    assert not uninstalled.is_enabled and uninstalled.is_managed and not uninstalled.is_in_ordered_file


def test_managed_flag_follows_link_type():
    installed = _dirs("Manual") + _dirs("Linked", link=True)
    result = reconcile_scenery([_line("Manual"), _line("Linked")], installed, [])

    flags = {e.folder_name: e.is_managed for e in result}
    assert flags == {"Manual": False, "Linked": True}


def test_listed_folder_deleted_from_disk_is_dropped():
    result = reconcile_scenery([_line("X", enabled=False)], [], [])
    assert result == []


def test_sentinel_is_kept_without_filesystem_and_not_toggleable():
    result = reconcile_scenery([_line("*GLOBAL_AIRPORTS*")], [], [])

    assert len(result) == 1
    sentinel = result[0]
    assert sentinel.is_in_ordered_file and sentinel.is_enabled
    assert not sentinel.is_toggleable
    assert not sentinel.is_managed


def test_duplicate_lines_keep_first_occurrence():
    result = reconcile_scenery([_line("A"), _line("B"), _line("A", enabled=False)], _dirs("A", "B"), [])
    assert [(e.folder_name, e.is_enabled) for e in result] == [("A", True), ("B", True)]


def test_available_only_scenario_is_alphabetical_and_disabled():
    result = reconcile_scenery([], [], _dirs("B", "A"))
    assert [(e.folder_name, e.is_enabled) for e in result] == [("A", False), ("B", False)]


def test_plugins_enabled_by_presence_in_installed_root():
    available = _dirs("Zibo", "AutoGate", "BetterPushback")
    installed = [DirEntry("AutoGate", is_dir=True, is_link=True), DirEntry("Zibo", is_dir=False, is_link=True)]

    plugins = reconcile_plugins(available, installed)

    assert [(p.name, p.is_enabled) for p in plugins] == [
        ("AutoGate", True), ("BetterPushback", False), ("Zibo", True),
    ]
