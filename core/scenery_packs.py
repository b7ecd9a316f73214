"""
Reader and writer for Custom Scenery/scenery_packs.ini.

The file is a header followed by one SCENERY_PACK or SCENERY_PACK_DISABLED line
per package. Lines in any other form are ignored on read and the whole file is
regenerated on write.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from core.errors import PersistError
from core.models import SENTINEL_PREFIX

logger = logging.getLogger(__name__)

SCENERY_PACKS_FILENAME = "scenery_packs.ini"
CUSTOM_SCENERY_DIRNAME = "Custom Scenery"

ENABLED_KEYWORD = "SCENERY_PACK"
DISABLED_KEYWORD = "SCENERY_PACK_DISABLED"

HEADER_LINES = ["I", "1000 Version", "SCENERY", ""]


@dataclass(frozen=True)
class PackLine:
    folder_name: str
    is_enabled: bool
    source_line: str


def folder_name_from_path(path: str) -> Optional[str]:
    """Last non-empty slash-separated segment of a pack path"""
    segments = [s for s in path.strip().split("/") if s.strip()]
    if not segments:
        return None
    return segments[-1].strip()


def parse_line(line: str) -> Optional[PackLine]:
    stripped = line.strip()
    parts = stripped.split(None, 1)
    if len(parts) != 2:
        return None

    keyword, path = parts
    if keyword == ENABLED_KEYWORD:
        is_enabled = True
    elif keyword == DISABLED_KEYWORD:
        is_enabled = False
    else:
        return None

    folder_name = folder_name_from_path(path)
    if not folder_name:
        return None
    return PackLine(folder_name=folder_name, is_enabled=is_enabled, source_line=stripped)


def parse_scenery_packs(text: str) -> List[PackLine]:
    """Parse file contents into pack lines in file order"""
    packs = []
    for number, line in enumerate(text.splitlines(), start=1):
        pack = parse_line(line)
        if pack is None:
            if line.strip():
                logger.debug("Skipping line %d of %s: %r", number, SCENERY_PACKS_FILENAME, line)
            continue
        packs.append(pack)
    return packs


def read_scenery_packs(path: Optional[Union[str, Path]]) -> List[PackLine]:
    """Read and parse the file. A missing or unreadable file is an empty list."""
    if path is None:
        return []
    path = Path(path)
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return []
    return parse_scenery_packs(text)


def format_entry(folder_name: str, is_enabled: bool) -> str:
    keyword = ENABLED_KEYWORD if is_enabled else DISABLED_KEYWORD
    if folder_name.startswith(SENTINEL_PREFIX):
        return f"{keyword} {folder_name}"
    return f"{keyword} {CUSTOM_SCENERY_DIRNAME}/{folder_name}/"


def serialize_scenery_packs(entries: Iterable, is_present: Callable[[str], bool]) -> Tuple[str, List[str]]:
    """
    Build the file text for entries in order.
    Ordinary entries are written only if is_present(folder_name) is true at this moment;
    sentinel entries are always written. Returns the text and the folder names written.
    """
    lines = list(HEADER_LINES)
    written = []
    for entry in entries:
        folder_name = entry.folder_name
        if not folder_name.startswith(SENTINEL_PREFIX) and not is_present(folder_name):
            continue
        lines.append(format_entry(folder_name, entry.is_enabled))
        written.append(folder_name)
    return "\n".join(lines) + "\n", written


def write_scenery_packs(path: Union[str, Path], entries: Iterable, custom_scenery_dir: Union[str, Path]) -> List[str]:
    """
    Regenerate the file from entries. Presence is checked against custom_scenery_dir,
    following links. Raises PersistError if the file cannot be written.
    """
    path = Path(path)
    custom_scenery_dir = Path(custom_scenery_dir)
    text, written = serialize_scenery_packs(entries, lambda name: (custom_scenery_dir / name).is_dir())

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".scenery_packs", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise PersistError(f"Could not write {path.name}: {e}", path) from e

    logger.debug("Wrote %d entries to %s", len(written), path)
    return written
