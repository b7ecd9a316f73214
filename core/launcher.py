"""
Starts the simulator and profile scripts. Processes are started and never awaited.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from core.models import Profile

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "XLAUNCHER_PROFILE"


def build_script_environment(profile_name: str, env_vars: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Process environment plus the profile name, with user variables applied last"""
    env = dict(os.environ)
    env[PROFILE_ENV_VAR] = profile_name
    for key, value in (env_vars or {}).items():
        if key:
            env[key] = value
    return env


def find_simulator_command(xplane_path: Path) -> Optional[List[str]]:
    """Command line that starts X-Plane from its installation folder, or None"""
    if sys.platform == "darwin":
        app = xplane_path / "X-Plane.app"
        return ["open", str(app)] if app.exists() else None
    if sys.platform == "win32":
        exe = xplane_path / "X-Plane.exe"
        return [str(exe)] if exe.is_file() else None
    binary = xplane_path / "X-Plane-x86_64"
    return [str(binary)] if binary.is_file() else None


class Launcher:
    def run_script(self, path: str, profile_name: str,
                   env_vars: Optional[Dict[str, str]] = None) -> Tuple[bool, str]:
        """Start a shell script for a profile. Returns (success, message)."""
        script = Path(path).expanduser()
        if not script.is_file():
            logger.warning("Script not found: %s", script)
            return False, f"Script not found: {script}"

        logger.info("Executing shell script at: %s for profile: %s", script, profile_name)
        try:
            subprocess.Popen([str(script)], env=build_script_environment(profile_name, env_vars),
                             cwd=str(script.parent))
        except OSError as e:
            logger.error("Failed to run shell script %s: %s", script, e)
            return False, f"Failed to run shell script: {e}"
        return True, f"Started {script.name}"

    def launch_simulator(self, xplane_path: Optional[Path], profile: Optional[Profile] = None,
                         env_vars: Optional[Dict[str, str]] = None) -> Tuple[bool, str]:
        """Run the profile's enabled scripts, then start X-Plane once"""
        if xplane_path is None:
            return False, "No X-Plane folder configured"

        if profile is not None:
            for script in profile.scripts:
                if script.is_enabled:
                    self.run_script(script.path, profile.name, env_vars)

        command = find_simulator_command(Path(xplane_path))
        if command is None:
            logger.warning("X-Plane executable not found in %s", xplane_path)
            return False, f"X-Plane not found in {xplane_path}"

        try:
            subprocess.Popen(command, cwd=str(xplane_path))
        except OSError as e:
            logger.error("Failed to launch X-Plane: %s", e)
            return False, f"Failed to launch X-Plane: {e}"

        logger.info("Launched X-Plane")
        return True, "Launched X-Plane"
