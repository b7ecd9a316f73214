import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from PyQt6.QtCore import QFileSystemWatcher

from core.errors import InvalidPathError
from core.models import Group, Profile, ScriptEnvVar
from core.scenery_packs import CUSTOM_SCENERY_DIRNAME, SCENERY_PACKS_FILENAME

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "launcher_settings.json"
CONFIG_DIR_ENV = "XLAUNCHER_CONFIG_DIR"

RESOURCES_DIRNAME = "Resources"
PLUGINS_DIRNAME = "plugins"
AVAILABLE_PLUGINS_DIRNAME = "available plugins"
AVAILABLE_SCENERY_DIRNAME = "available scenery"


def default_config_root() -> Path:
    """Per-platform directory holding the launcher settings"""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    if sys.platform == "win32":
        return Path(os.path.expandvars(r"%LocalAppData%\xlauncher"))
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "xlauncher"
    return Path.home() / ".config" / "xlauncher"


class ConfigManager:
    """Manages launcher settings and the X-Plane installation layout"""

    def __init__(self, config_root: Optional[Path] = None):
        self.config_root = Path(config_root) if config_root else default_config_root()
        self.settings_file = self.config_root / SETTINGS_FILENAME

        settings = self._load_settings()
        self.xplane_path = self._validated_dir(settings.get('xplane_path'), 'xplane_path')
        self.available_plugins_path = self._validated_dir(settings.get('available_plugins_path'), 'available_plugins_path')
        self.available_scenery_path = self._validated_dir(settings.get('available_scenery_path'), 'available_scenery_path')

        self.profiles: List[Profile] = [
            Profile.from_dict(p) for p in settings.get('profiles', []) if isinstance(p, dict)
        ]
        self.selected_profile_id: Optional[str] = settings.get('selected_profile_id')
        if self.selected_profile_id and not any(p.id == self.selected_profile_id for p in self.profiles):
            logger.info("Selected profile %s no longer exists, clearing selection", self.selected_profile_id)
            self.selected_profile_id = None

        self.groups: List[Group] = [
            Group.from_dict(g) for g in settings.get('groups', []) if isinstance(g, dict)
        ]
        self.script_environment: List[ScriptEnvVar] = [
            ScriptEnvVar.from_dict(v) for v in settings.get('script_environment', []) if isinstance(v, dict)
        ]

        self.file_watcher = QFileSystemWatcher()
        self.setup_file_watcher()

    def _validated_dir(self, value: Any, key: str) -> Optional[Path]:
        """Saved paths are only kept while they still point at a directory"""
        if not value or not isinstance(value, str):
            return None
        path = Path(value)
        if not path.is_dir():
            logger.info("Ignoring saved %s, %s is not a directory", key, value)
            return None
        return path

    def _load_settings(self) -> dict:
        """Loads settings from the JSON file."""
        if not self.settings_file.exists():
            return {}
        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Could not read %s: %s", self.settings_file, e)
            return {}

    def _save_settings(self):
        """Saves all settings to the JSON file."""
        all_settings = {
            'xplane_path': str(self.xplane_path) if self.xplane_path else None,
            'available_plugins_path': str(self.available_plugins_path) if self.available_plugins_path else None,
            'available_scenery_path': str(self.available_scenery_path) if self.available_scenery_path else None,
            'profiles': [p.to_dict() for p in self.profiles],
            'selected_profile_id': self.selected_profile_id,
            'groups': [g.to_dict() for g in self.groups],
            'script_environment': [v.to_dict() for v in self.script_environment],
        }
        try:
            self.config_root.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(all_settings, f, indent=4)
        except IOError as e:
            logger.error("Error saving settings: %s", e)

    def save(self):
        """Persist the current in-memory state (profiles, groups, environment, paths)."""
        self._save_settings()

    # Installation paths

    def _require_dir(self, path: Optional[str]) -> Optional[Path]:
        if not path:
            return None
        resolved = Path(path).expanduser()
        if not resolved.is_dir():
            raise InvalidPathError(f"Not a directory: {path}", resolved)
        return resolved

    def set_xplane_path(self, path: Optional[str]):
        """Set or clear the X-Plane installation root"""
        self.xplane_path = self._require_dir(path)
        self._save_settings()
        self.setup_file_watcher()

    def set_available_plugins_path(self, path: Optional[str]):
        """Set or clear the override for the available plugins pool"""
        self.available_plugins_path = self._require_dir(path)
        self._save_settings()
        self.setup_file_watcher()

    def set_available_scenery_path(self, path: Optional[str]):
        """Set or clear the override for the available scenery pool"""
        self.available_scenery_path = self._require_dir(path)
        self._save_settings()
        self.setup_file_watcher()

    def get_resources_dir(self) -> Optional[Path]:
        return self.xplane_path / RESOURCES_DIRNAME if self.xplane_path else None

    def get_plugins_dir(self) -> Optional[Path]:
        resources = self.get_resources_dir()
        return resources / PLUGINS_DIRNAME if resources else None

    def get_available_plugins_dir(self) -> Optional[Path]:
        if self.available_plugins_path:
            return self.available_plugins_path
        resources = self.get_resources_dir()
        return resources / AVAILABLE_PLUGINS_DIRNAME if resources else None

    def get_custom_scenery_dir(self) -> Optional[Path]:
        return self.xplane_path / CUSTOM_SCENERY_DIRNAME if self.xplane_path else None

    def get_scenery_packs_file(self) -> Optional[Path]:
        custom_scenery = self.get_custom_scenery_dir()
        return custom_scenery / SCENERY_PACKS_FILENAME if custom_scenery else None

    def get_available_scenery_dir(self) -> Optional[Path]:
        if self.available_scenery_path:
            return self.available_scenery_path
        resources = self.get_resources_dir()
        return resources / AVAILABLE_SCENERY_DIRNAME if resources else None

    # Profiles

    def get_profile(self, profile_id: Optional[str]) -> Optional[Profile]:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def get_selected_profile(self) -> Optional[Profile]:
        return self.get_profile(self.selected_profile_id)

    # Script environment

    def add_env_var(self, key: str, value: str = "") -> ScriptEnvVar:
        env_var = ScriptEnvVar(key=key, value=value)
        self.script_environment.append(env_var)
        self._save_settings()
        return env_var

    def update_env_var(self, env_var_id: str, key: Optional[str] = None, value: Optional[str] = None) -> bool:
        for env_var in self.script_environment:
            if env_var.id == env_var_id:
                if key is not None:
                    env_var.key = key
                if value is not None:
                    env_var.value = value
                self._save_settings()
                return True
        return False

    def remove_env_var(self, env_var_id: str) -> bool:
        remaining = [v for v in self.script_environment if v.id != env_var_id]
        if len(remaining) == len(self.script_environment):
            return False
        self.script_environment = remaining
        self._save_settings()
        return True

    def get_script_environment(self) -> Dict[str, str]:
        """User variables as a dict, skipping entries without a key"""
        return {v.key: v.value for v in self.script_environment if v.key}

    # File watching

    def setup_file_watcher(self):
        """
        Watch the installed and available roots plus scenery_packs.ini so the host
        can rescan when content changes outside the launcher.
        """
        target_dirs = set()
        target_files = set()

        for directory in (self.get_plugins_dir(), self.get_available_plugins_dir(),
                          self.get_custom_scenery_dir(), self.get_available_scenery_dir()):
            if directory and directory.is_dir():
                target_dirs.add(str(directory))

        packs_file = self.get_scenery_packs_file()
        if packs_file and packs_file.is_file():
            target_files.add(str(packs_file))

        current_dirs = self.file_watcher.directories()
        current_files = self.file_watcher.files()

        if set(current_dirs) != target_dirs:
            if current_dirs:
                self.file_watcher.removePaths(current_dirs)
            if target_dirs:
                self.file_watcher.addPaths(sorted(target_dirs))

        if set(current_files) != target_files:
            if current_files:
                self.file_watcher.removePaths(current_files)
            if target_files:
                self.file_watcher.addPaths(sorted(target_files))
