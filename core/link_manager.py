"""
Creates and removes the symbolic links that install content from an available pool.
"""

import logging
import os
from pathlib import Path
from typing import Union

from core.errors import AlreadyExistsError, LinkIOError, SourceMissingError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LinkManager:
    """Filesystem link operations used by the content manager"""

    def exists(self, path: PathLike) -> bool:
        """True if the path exists, following links. Broken links count as absent."""
        return Path(path).exists()

    def is_present(self, path: PathLike) -> bool:
        """True if anything, including a broken link, occupies the path"""
        return os.path.lexists(path)

    def is_directory(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def is_link(self, path: PathLike) -> bool:
        """Inspect the link metadata itself, never the link target"""
        return Path(path).is_symlink()

    def ensure_link(self, target: PathLike, destination: PathLike) -> Path:
        """
        Create a link at destination pointing to target.
        Callers check for an existing destination first; an occupied destination
        raises AlreadyExistsError rather than being silently accepted.
        """
        target = Path(target)
        destination = Path(destination)

        if self.is_present(destination):
            raise AlreadyExistsError(f"{destination.name} is already installed", destination)
        if not target.exists():
            raise SourceMissingError(f"No source for {destination.name} at {target}", target)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.symlink_to(target, target_is_directory=True)
        except OSError as e:
            raise LinkIOError(f"Could not link {destination.name}: {e}", destination) from e

        logger.info("Linked %s -> %s", destination, target)
        return destination

    def remove_link(self, destination: PathLike) -> bool:
        """
        Remove the link at destination. Returns False when nothing was there.
        Real directories are never deleted.
        """
        destination = Path(destination)
        if not self.is_present(destination):
            return False
        if not destination.is_symlink():
            raise LinkIOError(f"{destination.name} is not a link and will not be removed", destination)

        try:
            destination.unlink()
        except OSError as e:
            raise LinkIOError(f"Could not remove link {destination.name}: {e}", destination) from e

        logger.info("Removed link %s", destination)
        return True
