"""
Exception types raised by the filesystem and configuration layers.
The content manager catches these and turns them into CommandResult values,
so none of them should ever escape to the caller of a command.
"""

from pathlib import Path
from typing import Optional, Union


class LauncherError(Exception):
    """Base class for all launcher errors"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class LinkError(LauncherError):
    """A link could not be created or removed"""


class AlreadyExistsError(LinkError):
    """The link destination is already occupied"""


class SourceMissingError(LinkError):
    """The link target does not exist in the available pool"""


class LinkIOError(LinkError):
    """The operating system refused the link operation"""


class InvalidPathError(LauncherError):
    """A configured path is not an existing directory"""


class PersistError(LauncherError):
    """scenery_packs.ini could not be written"""
