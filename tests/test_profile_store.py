from pathlib import Path
from unittest import mock

import pytest

from conftest import add_available_plugins, add_available_scenery, link_scenery, write_packs
from core.config_manager import ConfigManager
from core.content_manager import ContentManager
from core.models import ErrorKind
from core.profile_store import ProfileStore


@pytest.fixture
def store(xplane_root: Path, content_manager: ContentManager) -> ProfileStore:
    add_available_plugins(xplane_root, "AutoGate", "BetterPushback")
    add_available_scenery(xplane_root, "A", "B", "C")
    link_scenery(xplane_root, "A")
    link_scenery(xplane_root, "B")
    write_packs(xplane_root, "SCENERY_PACK *GLOBAL_AIRPORTS*", "SCENERY_PACK Custom Scenery/A/",
                "SCENERY_PACK_DISABLED Custom Scenery/B/")
    content_manager.rescan()
    content_manager.toggle_plugin("AutoGate")
    return ProfileStore(content_manager.config_manager, content_manager, launcher=mock.Mock())


def test_save_snapshots_and_selects(store: ProfileStore):
    profile = store.save("Airliner")

    assert profile.plugin_folder_names == ["AutoGate"]
    assert profile.scenery_folder_names == ["*GLOBAL_AIRPORTS*", "A"]
    assert profile.script_path is None
    assert store.selected_profile_id == profile.id
    assert not store.is_modified()
    store.launcher.run_script.assert_not_called()


def test_modified_tracks_live_state(store: ProfileStore):
    store.save("Airliner")
    cm = store.content_manager

    cm.toggle_scenery("C")
    assert store.is_modified()
    assert store.diff(store.selected_profile()).scenery_to_disable == {"C"}

    cm.toggle_scenery("C")
    assert not store.is_modified()

    cm.toggle_plugin("BetterPushback")
    assert store.is_modified()
    assert store.update(store.selected_profile_id).success
    assert not store.is_modified()
    assert store.selected_profile().plugin_folder_names == ["AutoGate", "BetterPushback"]


def test_apply_drives_toggles_and_ignores_unknown(store: ProfileStore, xplane_root: Path):
    cm = store.content_manager
    profile = store.save("Bush")
    profile.plugin_folder_names = ["BetterPushback", "Removed Plugin"]
    profile.scenery_folder_names = ["B", "C", "Removed Scenery"]

    result = store.select(profile.id)

    assert result.success
    assert cm.enabled_plugin_names() == {"BetterPushback"}
    assert cm.enabled_scenery_names() == {"*GLOBAL_AIRPORTS*", "B", "C"}
    assert (xplane_root / "Resources" / "plugins" / "BetterPushback").is_symlink()
    assert not (xplane_root / "Resources" / "plugins" / "AutoGate").exists()
    assert (xplane_root / "Custom Scenery" / "C").is_symlink()


def test_apply_runs_profile_script_with_environment(store: ProfileStore):
    store.config_manager.add_env_var("SIMBRIEF_USER", "pilot")
    profile = store.save("Scripted")
    store.set_script_path(profile.id, "/opt/scripts/start.sh")
    store.select(None)

    store.select(profile.id)

    store.launcher.run_script.assert_called_once_with("/opt/scripts/start.sh", "Scripted", {"SIMBRIEF_USER": "pilot"})


def test_select_none_changes_nothing(store: ProfileStore):
    profile = store.save("Airliner")
    store.content_manager.toggle_scenery("C")
    enabled = store.content_manager.enabled_scenery_names()

    assert store.select(None).success

    assert store.selected_profile_id is None
    assert store.content_manager.enabled_scenery_names() == enabled
    assert not store.is_modified()
    assert store.is_modified(profile.id)


def test_delete_selected_profile_clears_selection(store: ProfileStore):
    profile = store.save("Temp")

    assert store.delete(profile.id).success

    assert store.selected_profile_id is None
    assert store.profiles == []
    assert store.delete(profile.id).error == ErrorKind.UNKNOWN_ENTRY


def test_profiles_persist_across_restart(store: ProfileStore):
    profile = store.save("Airliner")
    script = store.add_script(profile.id, "/opt/scripts/fsuipc.sh")
    store.toggle_script(profile.id, script.id)

    reloaded = ConfigManager(config_root=store.config_manager.config_root)

    assert reloaded.selected_profile_id == profile.id
    restored = reloaded.get_profile(profile.id)
    assert restored.name == "Airliner"
    assert restored.scenery_folder_names == ["*GLOBAL_AIRPORTS*", "A"]
    assert restored.scripts[0].path == "/opt/scripts/fsuipc.sh"
    assert restored.scripts[0].is_enabled is False


def test_launch_uses_selected_profile(store: ProfileStore):
    store.launcher.launch_simulator.return_value = (True, "Launched X-Plane")
    profile = store.save("Airliner")

    assert store.launch().success

    store.launcher.launch_simulator.assert_called_once_with(
        store.config_manager.xplane_path, profile, {})
