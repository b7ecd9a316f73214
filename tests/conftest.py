from pathlib import Path

import pytest
from PyQt6.QtCore import QCoreApplication

from core.config_manager import ConfigManager
from core.content_manager import ContentManager
from core.scenery_packs import HEADER_LINES


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def xplane_root(tmp_path: Path) -> Path:
    root = tmp_path / "X-Plane 12"
    for sub in ("Resources/available plugins", "Resources/plugins",
                "Resources/available scenery", "Custom Scenery"):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def config_manager(tmp_path: Path, xplane_root: Path) -> ConfigManager:
    manager = ConfigManager(config_root=tmp_path / "config")
    manager.set_xplane_path(str(xplane_root))
    return manager


@pytest.fixture
def content_manager(config_manager: ConfigManager) -> ContentManager:
    return ContentManager(config_manager)


def add_available_scenery(root: Path, *names: str):
    for name in names:
        (root / "Resources" / "available scenery" / name).mkdir(parents=True)


def add_available_plugins(root: Path, *names: str):
    for name in names:
        (root / "Resources" / "available plugins" / name).mkdir(parents=True)


def link_scenery(root: Path, name: str):
    (root / "Custom Scenery" / name).symlink_to(root / "Resources" / "available scenery" / name,
                                                target_is_directory=True)


def write_packs(root: Path, *lines: str):
    text = "\n".join(HEADER_LINES + list(lines)) + "\n"
    (root / "Custom Scenery" / "scenery_packs.ini").write_text(text, encoding="utf-8")


def read_packs(root: Path) -> str:
    return (root / "Custom Scenery" / "scenery_packs.ini").read_text(encoding="utf-8")


def pack_lines(root: Path):
    return [line for line in read_packs(root).splitlines() if line.startswith("SCENERY_PACK")]


def make_packs_unwritable(root: Path):
    """Put a directory where scenery_packs.ini goes so every save fails"""
    packs = root / "Custom Scenery" / "scenery_packs.ini"
    if packs.is_file():
        packs.unlink()
    packs.mkdir()


def scenery_state(manager):
    return (
        [(s.folder_name, s.is_enabled, s.is_managed) for s in manager.scenery],
        [(g.name, list(g.members)) for g in manager.groups],
    )
