"""
Lists the immediate children of a content root.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool
    is_link: bool


def scan_directory(root: Optional[Union[str, Path]]) -> List[DirEntry]:
    """
    Return the non-hidden children of root sorted by name.
    A missing root yields an empty list, not an error.
    is_dir follows links; is_link looks at the link itself.
    """
    if root is None:
        return []
    root = Path(root)
    if not root.is_dir():
        return []

    entries = []
    try:
        children = list(root.iterdir())
    except OSError as e:
        logger.warning("Could not list %s: %s", root, e)
        return []

    for child in children:
        if child.name.startswith("."):
            continue
        entries.append(DirEntry(
            name=child.name,
            is_dir=child.is_dir(),
            is_link=child.is_symlink(),
        ))

    entries.sort(key=lambda e: e.name)
    return entries


def scan_subdirectories(root: Optional[Union[str, Path]]) -> List[DirEntry]:
    """Like scan_directory, keeping only children that resolve to directories"""
    return [entry for entry in scan_directory(root) if entry.is_dir]
