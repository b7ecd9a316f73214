"""
Data structures shared by the scanner, reconciler, content manager and profile store.
Entries are keyed by folder name everywhere; ids are only valid for a single scan.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

SENTINEL_PREFIX = "*"


def _new_id() -> str:
    return str(uuid.uuid4())


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    SOURCE_MISSING = "source_missing"
    IO_FAILURE = "io_failure"
    PARSE_SKIP = "parse_skip"
    NOT_PERMITTED = "not_permitted"
    UNKNOWN_ENTRY = "unknown_entry"


@dataclass
class CommandResult:
    """Outcome of a content manager or profile store command"""
    success: bool
    message: str = ""
    error: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, message: str = "") -> "CommandResult":
        return cls(True, message)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "CommandResult":
        return cls(False, message, error)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class Plugin:
    """A plugin folder from the available pool. Enabled means linked into Resources/plugins."""
    name: str
    folder_name: str
    is_enabled: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def is_toggleable(self) -> bool:
        return not self.folder_name.startswith(SENTINEL_PREFIX)


@dataclass
class SceneryPack:
    """
    A scenery package as shown in the ordered list.
    Enabled means listed as SCENERY_PACK (not SCENERY_PACK_DISABLED) in scenery_packs.ini,
    which is independent of whether a link exists in Custom Scenery.
    """
    name: str
    folder_name: str
    is_enabled: bool = False
    is_managed: bool = False
    is_in_ordered_file: bool = False
    source_line: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @property
    def is_toggleable(self) -> bool:
        return not self.folder_name.startswith(SENTINEL_PREFIX)

    @property
    def is_sentinel(self) -> bool:
        return self.folder_name.startswith(SENTINEL_PREFIX)


@dataclass
class Group:
    """A virtual folder of scenery packs kept contiguous in the ordered list"""
    name: str
    members: List[str] = field(default_factory=list)
    is_expanded: bool = True
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": list(self.members),
            "is_expanded": self.is_expanded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=data.get("id") or _new_id(),
            name=data.get("name", ""),
            members=[m for m in data.get("members", []) if isinstance(m, str)],
            is_expanded=bool(data.get("is_expanded", True)),
        )


@dataclass
class ProfileScript:
    """A shell script run before the simulator is launched with its profile"""
    path: str
    is_enabled: bool = True
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "path": self.path, "is_enabled": self.is_enabled}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileScript":
        return cls(
            id=data.get("id") or _new_id(),
            path=data.get("path", ""),
            is_enabled=bool(data.get("is_enabled", True)),
        )


@dataclass
class Profile:
    name: str
    plugin_folder_names: List[str] = field(default_factory=list)
    scenery_folder_names: List[str] = field(default_factory=list)
    script_path: Optional[str] = None
    scripts: List[ProfileScript] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "plugin_folder_names": list(self.plugin_folder_names),
            "scenery_folder_names": list(self.scenery_folder_names),
            "script_path": self.script_path,
            "scripts": [s.to_dict() for s in self.scripts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        # Older settings documents predate scenery lists and per-profile scripts
        return cls(
            id=data.get("id") or _new_id(),
            name=data.get("name", ""),
            plugin_folder_names=list(data.get("plugin_folder_names", [])),
            scenery_folder_names=list(data.get("scenery_folder_names", [])),
            script_path=data.get("script_path") or None,
            scripts=[ProfileScript.from_dict(s) for s in data.get("scripts", []) if isinstance(s, dict)],
        )


@dataclass
class ScriptEnvVar:
    key: str
    value: str = ""
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScriptEnvVar":
        return cls(id=data.get("id") or _new_id(), key=data.get("key", ""), value=data.get("value", ""))


@dataclass
class ProfileDiff:
    """Folder names whose live enabled state differs from a profile"""
    plugins_to_enable: Set[str] = field(default_factory=set)
    plugins_to_disable: Set[str] = field(default_factory=set)
    scenery_to_enable: Set[str] = field(default_factory=set)
    scenery_to_disable: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.plugins_to_enable or self.plugins_to_disable
                    or self.scenery_to_enable or self.scenery_to_disable)
