"""
Plugin and scenery state for one X-Plane installation, and the commands that change it.

Plugins and scenery are two separate state machines:
- a plugin is enabled when its link exists in Resources/plugins; toggling creates or
  removes that link and nothing else.
- a scenery pack is enabled when scenery_packs.ini lists it as SCENERY_PACK; toggling
  flips that flag (linking the pack into Custom Scenery first if needed) and the ini is
  rewritten from the in-memory order at the end of every command.

Every command returns a CommandResult. Filesystem failures are logged and abort only
the command that hit them; the in-memory lists are never left claiming something the
disk does not have.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from core.errors import AlreadyExistsError, LinkError, PersistError, SourceMissingError
from core.group_store import GroupStore
from core.link_manager import LinkManager
from core.models import CommandResult, ErrorKind, Group, Plugin, SceneryPack
from core.reconciler import reconcile_plugins, reconcile_scenery
from core.scanner import scan_directory, scan_subdirectories
from core.scenery_packs import read_scenery_packs, write_scenery_packs

logger = logging.getLogger(__name__)


def _error_kind(error: LinkError) -> ErrorKind:
    if isinstance(error, SourceMissingError):
        return ErrorKind.SOURCE_MISSING
    if isinstance(error, AlreadyExistsError):
        return ErrorKind.ALREADY_EXISTS
    return ErrorKind.IO_FAILURE


@dataclass
class _Undo:
    entry: SceneryPack
    installed: bool
    was_managed: bool


class ContentManager(QObject):
    plugins_changed = pyqtSignal()
    scenery_changed = pyqtSignal()
    groups_changed = pyqtSignal()
    command_failed = pyqtSignal(str)
    filesystem_changed = pyqtSignal(str)

    def __init__(self, config_manager, link_manager: Optional[LinkManager] = None,
                 group_store: Optional[GroupStore] = None, parent=None):
        super().__init__(parent)
        self.config_manager = config_manager
        self.link_manager = link_manager or LinkManager()
        self.group_store = group_store or GroupStore(config_manager)

        self.plugins: List[Plugin] = []
        self.scenery: List[SceneryPack] = []
        self._plugin_index: Dict[str, Plugin] = {}
        self._scenery_index: Dict[str, SceneryPack] = {}

        # The host decides when to rescan; engine writes also show up here
        self.config_manager.file_watcher.directoryChanged.connect(self.filesystem_changed)
        self.config_manager.file_watcher.fileChanged.connect(self.filesystem_changed)

    @property
    def groups(self) -> List[Group]:
        return self.group_store.groups

    # Lookup

    def find_plugin(self, folder_name: str) -> Optional[Plugin]:
        return self._plugin_index.get(folder_name)

    def find_scenery(self, folder_name: str) -> Optional[SceneryPack]:
        return self._scenery_index.get(folder_name)

    def scenery_position(self, folder_name: str) -> int:
        for i, entry in enumerate(self.scenery):
            if entry.folder_name == folder_name:
                return i
        return -1

    def scenery_order(self) -> List[str]:
        return [entry.folder_name for entry in self.scenery]

    def enabled_plugin_names(self) -> Set[str]:
        return {p.folder_name for p in self.plugins if p.is_enabled}

    def enabled_scenery_names(self) -> Set[str]:
        return {s.folder_name for s in self.scenery if s.is_enabled}

    def _reindex(self):
        self._plugin_index = {p.folder_name: p for p in self.plugins}
        self._scenery_index = {s.folder_name: s for s in self.scenery}

    def _fail(self, error: ErrorKind, message: str) -> CommandResult:
        logger.warning(message)
        self.command_failed.emit(message)
        return CommandResult.fail(error, message)

    # Scanning

    def rescan(self):
        """Re-derive plugins and scenery from disk"""
        self.scan_plugins()
        self.scan_scenery()

    def scan_plugins(self):
        available_dir = self.config_manager.get_available_plugins_dir()
        if available_dir is not None and not available_dir.is_dir():
            logger.info("available plugins not found at %s", available_dir)

        self.plugins = reconcile_plugins(
            scan_subdirectories(available_dir),
            scan_directory(self.config_manager.get_plugins_dir()),
        )
        self._reindex()
        self.plugins_changed.emit()

    def scan_scenery(self):
        available_dir = self.config_manager.get_available_scenery_dir()
        if available_dir is not None and not available_dir.is_dir():
            logger.info("available scenery not found at %s", available_dir)

        self.scenery = reconcile_scenery(
            read_scenery_packs(self.config_manager.get_scenery_packs_file()),
            scan_directory(self.config_manager.get_custom_scenery_dir()),
            scan_subdirectories(available_dir),
        )
        self._reindex()
        self._normalize_groups()
        self.scenery_changed.emit()

    # Persistence

    def persist_scenery(self) -> CommandResult:
        """Rewrite scenery_packs.ini from the current in-memory order"""
        packs_file = self.config_manager.get_scenery_packs_file()
        if packs_file is None:
            return self._fail(ErrorKind.NOT_FOUND, "No X-Plane folder configured")

        try:
            written = write_scenery_packs(packs_file, self.scenery, self.config_manager.get_custom_scenery_dir())
        except PersistError as e:
            return self._fail(ErrorKind.IO_FAILURE, str(e))

        for folder_name in written:
            self._scenery_index[folder_name].is_in_ordered_file = True
        self.config_manager.setup_file_watcher()
        return CommandResult.ok(f"Saved {len(written)} scenery entries")

    # Plugins

    def toggle_plugin(self, folder_name: str) -> CommandResult:
        plugin = self.find_plugin(folder_name)
        if plugin is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown plugin: {folder_name}")
        if not plugin.is_toggleable:
            return self._fail(ErrorKind.NOT_PERMITTED, f"{folder_name} cannot be toggled")

        plugins_dir = self.config_manager.get_plugins_dir()
        available_dir = self.config_manager.get_available_plugins_dir()
        if plugins_dir is None or available_dir is None:
            return self._fail(ErrorKind.NOT_FOUND, "No X-Plane folder configured")

        link = plugins_dir / folder_name
        logger.info("Toggling plugin %s. Current state: %s", folder_name, plugin.is_enabled)
        try:
            if plugin.is_enabled:
                self.link_manager.remove_link(link)
            elif not self.link_manager.is_present(link):
                self.link_manager.ensure_link(available_dir / folder_name, link)
        except LinkError as e:
            return self._fail(_error_kind(e), f"Error toggling plugin {folder_name}: {e}")

        plugin.is_enabled = not plugin.is_enabled
        self.plugins_changed.emit()
        return CommandResult.ok(f"{'Enabled' if plugin.is_enabled else 'Disabled'} {folder_name}")

    # Scenery toggles

    def _install_scenery(self, entry: SceneryPack) -> bool:
        """
        Link an uninstalled pack into Custom Scenery. Raises LinkError.
        Returns True if a new link was created.
        """
        link = self.config_manager.get_custom_scenery_dir() / entry.folder_name
        if self.link_manager.exists(link):
            return False
        if self.link_manager.is_link(link):
            # Broken link left behind by a removed source
            self.link_manager.remove_link(link)
        source = self.config_manager.get_available_scenery_dir() / entry.folder_name
        self.link_manager.ensure_link(source, link)
        entry.is_managed = True
        return True

    def _toggle_scenery_entry(self, entry: SceneryPack) -> Tuple[CommandResult, Optional[_Undo]]:
        """
        Flip one entry in memory, installing it first when enabling. Does not persist.
        On success also returns what is needed to take the toggle back.
        """
        if not entry.is_toggleable:
            return self._fail(ErrorKind.NOT_PERMITTED, f"{entry.folder_name} is built in and cannot be toggled"), None
        if self.config_manager.get_custom_scenery_dir() is None:
            return self._fail(ErrorKind.NOT_FOUND, "No X-Plane folder configured"), None

        logger.info("Toggling scenery %s. Current state: %s", entry.folder_name, entry.is_enabled)
        undo = _Undo(entry, installed=False, was_managed=entry.is_managed)
        if not entry.is_enabled:
            try:
                undo.installed = self._install_scenery(entry)
            except LinkError as e:
                return self._fail(_error_kind(e), f"Error enabling scenery {entry.folder_name}: {e}"), None

        entry.is_enabled = not entry.is_enabled
        return CommandResult.ok(f"{'Enabled' if entry.is_enabled else 'Disabled'} {entry.folder_name}"), undo

    def _undo_toggle(self, undo: _Undo):
        """Take back a toggle whose ini write failed, including any link it created"""
        entry = undo.entry
        entry.is_enabled = not entry.is_enabled
        if not undo.installed:
            return
        link = self.config_manager.get_custom_scenery_dir() / entry.folder_name
        try:
            self.link_manager.remove_link(link)
        except LinkError as e:
            logger.error("Could not remove link %s after a failed save: %s", link, e)
            return
        entry.is_managed = undo.was_managed

    def toggle_scenery(self, folder_name: str) -> CommandResult:
        entry = self.find_scenery(folder_name)
        if entry is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {folder_name}")

        result, undo = self._toggle_scenery_entry(entry)
        if not result:
            return result

        saved = self.persist_scenery()
        if not saved:
            # The ini still holds the old state, so memory and Custom Scenery follow it
            self._undo_toggle(undo)
            return saved

        self.scenery_changed.emit()
        return result

    def toggle_group(self, group_id: str, enabled: bool) -> CommandResult:
        """Bring every member of the group to the requested state"""
        group = self.group_store.get(group_id)
        if group is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")

        first_failure = None
        toggled = []
        for folder_name in group.members:
            entry = self.find_scenery(folder_name)
            if entry is None or not entry.is_toggleable or entry.is_enabled == enabled:
                continue
            result, undo = self._toggle_scenery_entry(entry)
            if result:
                toggled.append(undo)
            elif first_failure is None:
                first_failure = result

        if toggled:
            saved = self.persist_scenery()
            if not saved:
                for undo in toggled:
                    self._undo_toggle(undo)
                return saved
            self.scenery_changed.emit()

        if first_failure is not None:
            return first_failure
        return CommandResult.ok(f"{'Enabled' if enabled else 'Disabled'} {len(toggled)} entries in {group.name}")

    def unlink_scenery(self, folder_name: str) -> CommandResult:
        """
        Remove a launcher-created link from Custom Scenery and rescan.
        The pack reappears in the uninstalled tier if it is still available.
        """
        entry = self.find_scenery(folder_name)
        if entry is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {folder_name}")
        if not entry.is_managed or entry.is_sentinel:
            return self._fail(ErrorKind.NOT_PERMITTED, f"{folder_name} was not installed by the launcher")

        custom_scenery = self.config_manager.get_custom_scenery_dir()
        if custom_scenery is None:
            return self._fail(ErrorKind.NOT_FOUND, "No X-Plane folder configured")

        link = custom_scenery / folder_name
        try:
            self.link_manager.remove_link(link)
        except LinkError as e:
            return self._fail(ErrorKind.IO_FAILURE, f"Error unlinking {folder_name}: {e}")

        saved = self.persist_scenery()
        if not saved:
            # The ini still lists the pack, so put the link back
            try:
                self.link_manager.ensure_link(self.config_manager.get_available_scenery_dir() / folder_name, link)
            except LinkError as e:
                logger.error("Could not restore link %s after a failed save: %s", link, e)
            return saved

        entry.is_enabled = False
        entry.is_in_ordered_file = False
        if self.group_store.remove_member(folder_name) is not None:
            self.groups_changed.emit()
        self.scan_scenery()
        return CommandResult.ok(f"Unlinked {folder_name}")

    # Ordering

    def _members_in_order(self, group: Group) -> List[SceneryPack]:
        members = set(group.members)
        return [entry for entry in self.scenery if entry.folder_name in members]

    def _restore_contiguity(self, group: Group):
        """Pull the group's members together at the position of its topmost member"""
        members = self._members_in_order(group)
        if len(members) < 2:
            return
        anchor = self.scenery_position(members[0].folder_name)
        member_names = {m.folder_name for m in members}
        self.scenery = [e for e in self.scenery if e.folder_name not in member_names]
        self.scenery[anchor:anchor] = members

    def _normalize_groups(self):
        self.group_store.sync_member_order(self.scenery_order())
        for group in self.groups:
            self._restore_contiguity(group)
        self.group_store.sync_member_order(self.scenery_order())

    def _update_membership_after_move(self, entry: SceneryPack):
        """
        An item dropped between two members of one group joins it. A grouped item
        that no longer touches any other member of its group leaves it.
        """
        position = self.scenery_position(entry.folder_name)
        previous = self.scenery[position - 1].folder_name if position > 0 else None
        following = self.scenery[position + 1].folder_name if position + 1 < len(self.scenery) else None
        previous_group = self.group_store.group_of(previous) if previous else None
        following_group = self.group_store.group_of(following) if following else None
        own_group = self.group_store.group_of(entry.folder_name)

        if previous_group is not None and following_group is not None and previous_group.id == following_group.id:
            if own_group is None or own_group.id != previous_group.id:
                self.group_store.add_member(previous_group.id, entry.folder_name)
            return

        if own_group is None:
            return
        touches_own = any(g is not None and g.id == own_group.id for g in (previous_group, following_group))
        others_present = any(m.folder_name != entry.folder_name for m in self._members_in_order(own_group))
        if others_present and not touches_own:
            self.group_store.remove_member(entry.folder_name)

    def _snapshot_order(self):
        return list(self.scenery), [g.to_dict() for g in self.groups]

    def _restore_order(self, snapshot):
        order, groups = snapshot
        self.scenery = order
        self.groups[:] = [Group.from_dict(g) for g in groups]
        self.group_store.save()

    def _finish_reorder(self, message: str, snapshot) -> CommandResult:
        """Persist a reorder, or roll order and groups back to snapshot if the ini cannot be written"""
        self._normalize_groups()
        saved = self.persist_scenery()
        if not saved:
            self._restore_order(snapshot)
            return saved

        self.group_store.save()
        self.scenery_changed.emit()
        self.groups_changed.emit()
        return CommandResult.ok(message)

    def _place(self, entry: SceneryPack, index: int):
        self.scenery = [e for e in self.scenery if e is not entry]
        index = max(0, min(index, len(self.scenery)))
        self.scenery.insert(index, entry)

    def move_scenery(self, folder_name: str, index: int) -> CommandResult:
        """Move an entry so that it ends up at index"""
        entry = self.find_scenery(folder_name)
        if entry is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {folder_name}")

        snapshot = self._snapshot_order()
        self._place(entry, index)
        self._update_membership_after_move(entry)
        return self._finish_reorder(f"Moved {folder_name}", snapshot)

    def move_scenery_relative(self, folder_name: str, other_folder_name: str, after: bool = False) -> CommandResult:
        """Move an entry directly before (or after) another one"""
        entry = self.find_scenery(folder_name)
        other = self.find_scenery(other_folder_name)
        if entry is None or other is None:
            missing = folder_name if entry is None else other_folder_name
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {missing}")
        if entry is other:
            return CommandResult.ok("Nothing to move")

        snapshot = self._snapshot_order()
        self.scenery = [e for e in self.scenery if e is not entry]
        index = self.scenery_position(other_folder_name) + (1 if after else 0)
        self.scenery.insert(index, entry)
        self._update_membership_after_move(entry)
        return self._finish_reorder(f"Moved {folder_name}", snapshot)

    def move_group(self, group_id: str, index: int) -> CommandResult:
        """Move a whole group so that its first member ends up at index"""
        group = self.group_store.get(group_id)
        if group is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")

        members = self._members_in_order(group)
        if not members:
            return CommandResult.ok("Group has no installed members")

        snapshot = self._snapshot_order()
        member_names = {m.folder_name for m in members}
        self.scenery = [e for e in self.scenery if e.folder_name not in member_names]
        index = max(0, min(index, len(self.scenery)))

        # Never split another group's block
        if 0 < index < len(self.scenery):
            before = self.group_store.group_of(self.scenery[index - 1].folder_name)
            after = self.group_store.group_of(self.scenery[index].folder_name)
            if before is not None and after is not None and before.id == after.id:
                index = self.scenery_position(self._members_in_order(before)[-1].folder_name) + 1

        self.scenery[index:index] = members
        return self._finish_reorder(f"Moved group {group.name}", snapshot)

    # Groups

    def create_group(self, name: str, members: Iterable[str]) -> CommandResult:
        """
        Group the given entries. Members leave any group they were in and are
        gathered at the position of the topmost one.
        """
        members = [m for m in members if self.find_scenery(m) is not None]
        if not members:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"No known scenery to put in group {name}")

        snapshot = self._snapshot_order()
        positions = {m: self.scenery_position(m) for m in members}
        members.sort(key=positions.__getitem__)
        group = self.group_store.create(name, members)
        self.group_store.sync_member_order(self.scenery_order())
        self._restore_contiguity(group)
        return self._finish_reorder(f"Created group {group.name}", snapshot)

    def delete_group(self, group_id: str) -> CommandResult:
        """Ungroup. Members stay where they are."""
        if not self.group_store.delete(group_id):
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")
        self.groups_changed.emit()
        return CommandResult.ok("Group removed")

    def rename_group(self, group_id: str, name: str) -> CommandResult:
        if not self.group_store.rename(group_id, name):
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")
        self.groups_changed.emit()
        return CommandResult.ok(f"Renamed group to {name}")

    def set_group_expanded(self, group_id: str, expanded: bool) -> CommandResult:
        if not self.group_store.set_expanded(group_id, expanded):
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")
        self.groups_changed.emit()
        return CommandResult.ok()

    def move_into_group(self, folder_name: str, group_id: str) -> CommandResult:
        """Add an entry to a group and place it right after the group's last member"""
        entry = self.find_scenery(folder_name)
        if entry is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {folder_name}")
        group = self.group_store.get(group_id)
        if group is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown group: {group_id}")

        snapshot = self._snapshot_order()
        others = [m for m in self._members_in_order(group) if m is not entry]
        self.group_store.add_member(group.id, folder_name)
        if others:
            self.scenery = [e for e in self.scenery if e is not entry]
            index = self.scenery_position(others[-1].folder_name) + 1
            self.scenery.insert(index, entry)
        return self._finish_reorder(f"Moved {folder_name} into {group.name}", snapshot)

    def remove_from_group(self, folder_name: str) -> CommandResult:
        """
        Take an entry out of its group. An entry at either edge of the group stays
        where it is; one from the middle is placed right after the group.
        """
        entry = self.find_scenery(folder_name)
        if entry is None:
            return self._fail(ErrorKind.UNKNOWN_ENTRY, f"Unknown scenery: {folder_name}")
        group = self.group_store.group_of(folder_name)
        if group is None:
            return CommandResult.ok(f"{folder_name} is not in a group")

        snapshot = self._snapshot_order()
        members = self._members_in_order(group)
        self.group_store.remove_member(folder_name)
        if entry in members and entry is not members[0] and entry is not members[-1]:
            self.scenery = [e for e in self.scenery if e is not entry]
            index = self.scenery_position(members[-1].folder_name) + 1
            self.scenery.insert(index, entry)
        return self._finish_reorder(f"Removed {folder_name} from {group.name}", snapshot)
