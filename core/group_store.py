"""
Persisted scenery groups and the folder name -> group id index.

The store only tracks membership. Keeping members physically contiguous in the
ordered list is the content manager's job.
"""

import logging
from typing import Dict, Iterable, List, Optional

from core.models import Group

logger = logging.getLogger(__name__)


class GroupStore:
    def __init__(self, config_manager):
        self.config_manager = config_manager
        self._member_index: Dict[str, str] = {}
        self._dedupe_members()
        self._rebuild_index()

    @property
    def groups(self) -> List[Group]:
        return self.config_manager.groups

    def _dedupe_members(self):
        """A folder belongs to at most one group; the first group listing it wins"""
        claimed = set()
        for group in self.groups:
            members = []
            for name in group.members:
                if name in claimed:
                    logger.debug("Dropping duplicate membership of %s in group %s", name, group.name)
                    continue
                claimed.add(name)
                members.append(name)
            group.members = members

    def _rebuild_index(self):
        self._member_index = {}
        for group in self.groups:
            for name in group.members:
                self._member_index[name] = group.id

    def save(self):
        self._rebuild_index()
        self.config_manager.save()

    def get(self, group_id: Optional[str]) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def group_of(self, folder_name: str) -> Optional[Group]:
        return self.get(self._member_index.get(folder_name))

    def create(self, name: str, members: Iterable[str]) -> Group:
        members = list(dict.fromkeys(members))
        for folder_name in members:
            self._detach(folder_name)
        group = Group(name=name, members=members)
        self.groups.append(group)
        self.save()
        return group

    def delete(self, group_id: str) -> bool:
        group = self.get(group_id)
        if group is None:
            return False
        self.groups.remove(group)
        self.save()
        return True

    def rename(self, group_id: str, name: str) -> bool:
        group = self.get(group_id)
        if group is None:
            return False
        group.name = name
        self.save()
        return True

    def set_expanded(self, group_id: str, expanded: bool) -> bool:
        group = self.get(group_id)
        if group is None:
            return False
        group.is_expanded = expanded
        self.save()
        return True

    def _detach(self, folder_name: str) -> Optional[Group]:
        group = self.group_of(folder_name)
        if group is not None:
            group.members = [m for m in group.members if m != folder_name]
            del self._member_index[folder_name]
        return group

    def add_member(self, group_id: str, folder_name: str, position: Optional[int] = None) -> bool:
        """Move folder_name into the group, leaving whatever group it was in before"""
        group = self.get(group_id)
        if group is None:
            return False
        self._detach(folder_name)
        if position is None or position >= len(group.members):
            group.members.append(folder_name)
        else:
            group.members.insert(max(position, 0), folder_name)
        self.save()
        return True

    def remove_member(self, folder_name: str) -> Optional[Group]:
        group = self._detach(folder_name)
        if group is not None:
            self.save()
        return group

    def sync_member_order(self, order: List[str]):
        """
        Reorder every group's members to follow order. Names not in order (content
        that is gone from disk) keep their relative order at the end.
        """
        positions = {name: i for i, name in enumerate(order)}
        for group in self.groups:
            present = sorted((m for m in group.members if m in positions), key=positions.__getitem__)
            dangling = [m for m in group.members if m not in positions]
            group.members = present + dangling
        self._rebuild_index()
