import argparse
import logging
import os
import sys

from PyQt6.QtCore import QCoreApplication

from core.config_manager import ConfigManager
from core.content_manager import ContentManager
from core.errors import InvalidPathError
from core.profile_store import ProfileStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xlauncher", description="X-Plane plugin and scenery manager")
    parser.add_argument("--root", help="X-Plane installation folder (saved for later runs)")
    parser.add_argument("--config-dir", help="Directory holding launcher settings")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("plugins", help="List plugins")
    sub.add_parser("scenery", help="List scenery in load order")
    sub.add_parser("profiles", help="List profiles")
    sub.add_parser("launch", help="Launch X-Plane with the selected profile")

    for name, help_text in (("toggle-plugin", "Enable or disable a plugin"),
                            ("toggle-scenery", "Enable or disable a scenery pack"),
                            ("unlink", "Uninstall a launcher-linked scenery pack")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("name")

    move = sub.add_parser("move", help="Move a scenery pack to a position in the load order")
    move.add_argument("name")
    move.add_argument("index", type=int)

    save = sub.add_parser("profile-save", help="Save the current selection as a profile")
    save.add_argument("name")
    apply = sub.add_parser("profile-apply", help="Select and apply a profile")
    apply.add_argument("name")
    return parser


def _print_scenery(content_manager: ContentManager):
    for position, entry in enumerate(content_manager.scenery):
        group = content_manager.group_store.group_of(entry.folder_name)
        flags = "x" if entry.is_enabled else " "
        tier = "ini" if entry.is_in_ordered_file else ("new" if entry.is_enabled else "available")
        suffix = f"  [{group.name}]" if group else ""
        print(f"{position:4d} [{flags}] {entry.name} ({tier}){suffix}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else os.environ.get("XLAUNCHER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("X-Plane Launcher")

    config_manager = ConfigManager(args.config_dir)
    if args.root:
        try:
            config_manager.set_xplane_path(args.root)
        except InvalidPathError as e:
            print(str(e), file=sys.stderr)
            return 1

    content_manager = ContentManager(config_manager)
    content_manager.rescan()
    profile_store = ProfileStore(config_manager, content_manager)

    result = None
    if args.command == "plugins":
        for plugin in content_manager.plugins:
            print(f"[{'x' if plugin.is_enabled else ' '}] {plugin.name}")
    elif args.command == "scenery" or args.command is None:
        _print_scenery(content_manager)
    elif args.command == "profiles":
        for profile in profile_store.profiles:
            marker = "*" if profile.id == profile_store.selected_profile_id else " "
            modified = " (modified)" if marker == "*" and profile_store.is_modified() else ""
            print(f"{marker} {profile.name}{modified}")
    elif args.command == "toggle-plugin":
        result = content_manager.toggle_plugin(args.name)
    elif args.command == "toggle-scenery":
        result = content_manager.toggle_scenery(args.name)
    elif args.command == "unlink":
        result = content_manager.unlink_scenery(args.name)
    elif args.command == "move":
        result = content_manager.move_scenery(args.name, args.index)
    elif args.command == "profile-save":
        profile_store.save(args.name)
    elif args.command == "profile-apply":
        profile = profile_store.find_by_name(args.name)
        if profile is None:
            print(f"No profile named {args.name}", file=sys.stderr)
            return 1
        result = profile_store.select(profile.id)
    elif args.command == "launch":
        result = profile_store.launch()

    if result is not None:
        print(result.message, file=sys.stdout if result.success else sys.stderr)
        return 0 if result.success else 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
