"""
Merges the three sources of scenery state into one ordered list:
scenery_packs.ini, the Custom Scenery folder and the available scenery pool.
Plugins have no ordering file and use a single alphabetical tier.

Scenery precedence:
    1. folders installed in Custom Scenery but missing from the ini (alphabetical)
    2. ini entries, in file order, whose folder is still installed (sentinels always)
    3. folders only found in the available pool (alphabetical, disabled)
"""

import logging
from typing import Dict, Iterable, List

from core.models import Plugin, SceneryPack, SENTINEL_PREFIX
from core.scanner import DirEntry
from core.scenery_packs import PackLine

logger = logging.getLogger(__name__)


def reconcile_scenery(pack_lines: Iterable[PackLine],
                      installed: Iterable[DirEntry],
                      available: Iterable[DirEntry]) -> List[SceneryPack]:
    pack_lines = list(pack_lines)
    installed_dirs: Dict[str, DirEntry] = {e.name: e for e in installed if e.is_dir}
    listed_names = {line.folder_name for line in pack_lines}

    result: List[SceneryPack] = []
    seen = set()

    # 1. Orphan-installed
    for name in sorted(n for n in installed_dirs if n not in listed_names):
        result.append(SceneryPack(
            name=name,
            folder_name=name,
            is_enabled=True,
            is_managed=installed_dirs[name].is_link,
            is_in_ordered_file=False,
        ))
        seen.add(name)

    # 2. Ordered file
    for line in pack_lines:
        name = line.folder_name
        if name in seen:
            continue
        if name.startswith(SENTINEL_PREFIX):
            is_managed = False
        elif name in installed_dirs:
            is_managed = installed_dirs[name].is_link
        else:
            logger.debug("Dropping %s from the ordered list, folder no longer installed", name)
            continue
        result.append(SceneryPack(
            name=name,
            folder_name=name,
            is_enabled=line.is_enabled,
            is_managed=is_managed,
            is_in_ordered_file=True,
            source_line=line.source_line,
        ))
        seen.add(name)

    # 3. Uninstalled-available
    available_names = sorted(e.name for e in available if e.is_dir and e.name not in seen)
    for name in available_names:
        result.append(SceneryPack(
            name=name,
            folder_name=name,
            is_enabled=False,
            is_managed=True,
            is_in_ordered_file=False,
        ))
        seen.add(name)

    return result


def reconcile_plugins(available: Iterable[DirEntry], installed: Iterable[DirEntry]) -> List[Plugin]:
    """Every available plugin folder, enabled when something of the same name sits in the plugins folder"""
    installed_names = {e.name for e in installed}
    plugins = [
        Plugin(name=e.name, folder_name=e.name, is_enabled=e.name in installed_names)
        for e in available if e.is_dir
    ]
    plugins.sort(key=lambda p: p.name)
    return plugins
