"""
Named snapshots of which plugins and scenery packs are enabled.

A profile is applied by toggling every entry whose live state differs from it.
Whether the selected profile is "modified" is never stored; it is recomputed from
the live lists each time it is asked for.
"""

import logging
from typing import Optional

from core.launcher import Launcher
from core.models import CommandResult, ErrorKind, Profile, ProfileDiff, ProfileScript

logger = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, config_manager, content_manager, launcher: Optional[Launcher] = None):
        self.config_manager = config_manager
        self.content_manager = content_manager
        self.launcher = launcher or Launcher()

    @property
    def profiles(self):
        return self.config_manager.profiles

    @property
    def selected_profile_id(self) -> Optional[str]:
        return self.config_manager.selected_profile_id

    def get(self, profile_id: Optional[str]) -> Optional[Profile]:
        return self.config_manager.get_profile(profile_id)

    def find_by_name(self, name: str) -> Optional[Profile]:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None

    def selected_profile(self) -> Optional[Profile]:
        return self.config_manager.get_selected_profile()

    def _snapshot(self, profile: Profile):
        profile.plugin_folder_names = sorted(self.content_manager.enabled_plugin_names())
        profile.scenery_folder_names = sorted(self.content_manager.enabled_scenery_names())

    def save(self, name: str) -> Profile:
        """Create a profile from the current state and select it"""
        profile = Profile(name=name)
        self._snapshot(profile)
        self.profiles.append(profile)
        self.config_manager.save()
        logger.info("Saved profile %s", name)
        self.select(profile.id)
        return profile

    def update(self, profile_id: str) -> CommandResult:
        """Overwrite a profile's enabled lists with the current state. Name and scripts are kept."""
        profile = self.get(profile_id)
        if profile is None:
            return CommandResult.fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown profile: {profile_id}")
        self._snapshot(profile)
        self.config_manager.save()
        return CommandResult.ok(f"Updated profile {profile.name}")

    def rename(self, profile_id: str, name: str) -> CommandResult:
        profile = self.get(profile_id)
        if profile is None:
            return CommandResult.fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown profile: {profile_id}")
        profile.name = name
        self.config_manager.save()
        return CommandResult.ok(f"Renamed profile to {name}")

    def delete(self, profile_id: str) -> CommandResult:
        profile = self.get(profile_id)
        if profile is None:
            return CommandResult.fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown profile: {profile_id}")
        self.profiles.remove(profile)
        if self.config_manager.selected_profile_id == profile_id:
            self.config_manager.selected_profile_id = None
        self.config_manager.save()
        return CommandResult.ok(f"Deleted profile {profile.name}")

    def select(self, profile_id: Optional[str]) -> CommandResult:
        """Select and apply a profile. Selecting None only clears the selection."""
        if profile_id is None:
            self.config_manager.selected_profile_id = None
            self.config_manager.save()
            return CommandResult.ok("No profile selected")

        profile = self.get(profile_id)
        if profile is None:
            return CommandResult.fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown profile: {profile_id}")

        self.config_manager.selected_profile_id = profile.id
        self.config_manager.save()
        return self.apply(profile)

    def apply(self, profile: Profile) -> CommandResult:
        """
        Toggle every known entry whose state differs from the profile.
        Names in the profile that no longer exist are ignored.
        """
        first_failure = None
        plugin_names = set(profile.plugin_folder_names)
        scenery_names = set(profile.scenery_folder_names)

        for plugin in list(self.content_manager.plugins):
            should_be_enabled = plugin.folder_name in plugin_names
            if plugin.is_toggleable and plugin.is_enabled != should_be_enabled:
                result = self.content_manager.toggle_plugin(plugin.folder_name)
                if not result and first_failure is None:
                    first_failure = result

        for entry in list(self.content_manager.scenery):
            should_be_enabled = entry.folder_name in scenery_names
            if entry.is_toggleable and entry.is_enabled != should_be_enabled:
                result = self.content_manager.toggle_scenery(entry.folder_name)
                if not result and first_failure is None:
                    first_failure = result

        if profile.script_path:
            self.launcher.run_script(profile.script_path, profile.name,
                                     self.config_manager.get_script_environment())

        if first_failure is not None:
            return first_failure
        return CommandResult.ok(f"Applied profile {profile.name}")

    def diff(self, profile: Profile) -> ProfileDiff:
        live_plugins = self.content_manager.enabled_plugin_names()
        live_scenery = self.content_manager.enabled_scenery_names()
        stored_plugins = set(profile.plugin_folder_names)
        stored_scenery = set(profile.scenery_folder_names)
        return ProfileDiff(
            plugins_to_enable=stored_plugins - live_plugins,
            plugins_to_disable=live_plugins - stored_plugins,
            scenery_to_enable=stored_scenery - live_scenery,
            scenery_to_disable=live_scenery - stored_scenery,
        )

    def is_modified(self, profile_id: Optional[str] = None) -> bool:
        """True when the live state differs from the given (or selected) profile"""
        profile = self.get(profile_id) if profile_id else self.selected_profile()
        if profile is None:
            return False
        return not self.diff(profile).is_empty

    # Scripts

    def set_script_path(self, profile_id: str, path: Optional[str]) -> CommandResult:
        """Set or clear the script run when the profile is applied"""
        profile = self.get(profile_id)
        if profile is None:
            return CommandResult.fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown profile: {profile_id}")
        profile.script_path = path or None
        self.config_manager.save()
        return CommandResult.ok()

    def add_script(self, profile_id: str, path: str) -> Optional[ProfileScript]:
        """Add a script run before launching the simulator with this profile"""
        profile = self.get(profile_id)
        if profile is None:
            return None
        script = ProfileScript(path=path)
        profile.scripts.append(script)
        self.config_manager.save()
        return script

    def remove_script(self, profile_id: str, script_id: str) -> bool:
        profile = self.get(profile_id)
        if profile is None:
            return False
        remaining = [s for s in profile.scripts if s.id != script_id]
        if len(remaining) == len(profile.scripts):
            return False
        profile.scripts = remaining
        self.config_manager.save()
        return True

    def toggle_script(self, profile_id: str, script_id: str) -> bool:
        profile = self.get(profile_id)
        if profile is None:
            return False
        for script in profile.scripts:
            if script.id == script_id:
                script.is_enabled = not script.is_enabled
                self.config_manager.save()
                return True
        return False

    def launch(self) -> CommandResult:
        """Start X-Plane with the selected profile's scripts"""
        success, message = self.launcher.launch_simulator(
            self.config_manager.xplane_path,
            self.selected_profile(),
            self.config_manager.get_script_environment(),
        )
        if not success:
            return CommandResult.fail(ErrorKind.NOT_FOUND, message)
        return CommandResult.ok(message)
