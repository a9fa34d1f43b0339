import logging
import os
import platform
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..integrations import ConfigurationError

logger = logging.getLogger(__name__)

EXECUTABLE_NAMES = ["keepassxc-cli", "keepassxc.cli"]


def candidate_paths(system: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> List[Path]:
    """Well-known install locations of keepassxc-cli, in lookup order."""
    system = (system or platform.system()).lower()
    env = os.environ if environ is None else environ

    if system == "windows":
        roots: Dict[str, str] = {
            "ProgramFiles": r"C:\Program Files",
            "ProgramFiles(x86)": r"C:\Program Files (x86)",
        }
        paths = []
        for var, default in roots.items():
            base = env.get(var) or default
            paths.append(Path(base) / "KeePassXC" / "keepassxc-cli.exe")
        if env.get("LOCALAPPDATA"):
            paths.append(Path(env["LOCALAPPDATA"]) / "Programs" / "KeePassXC" / "keepassxc-cli.exe")
        return paths

    if system == "darwin":
        return [
            Path("/Applications/KeePassXC.app/Contents/MacOS/keepassxc-cli"),
            Path.home() / "Applications" / "KeePassXC.app" / "Contents" / "MacOS" / "keepassxc-cli",
            Path("/opt/homebrew/bin/keepassxc-cli"),
            Path("/usr/local/bin/keepassxc-cli"),
        ]

    return [
        Path("/usr/bin/keepassxc-cli"),
        Path("/usr/local/bin/keepassxc-cli"),
        Path("/snap/bin/keepassxc.cli"),
    ]


def find_executable(
    override: Optional[str] = None,
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Find the keepassxc-cli executable.

    Args:
        override: Explicit path or command name; checked before anything else

    Returns:
        Path of the executable as a string

    Raises:
        ConfigurationError: If no executable can be located
    """
    if override:
        resolved = override if Path(override).is_file() else shutil.which(override)
        if not resolved:
            raise ConfigurationError(f"keepassxc-cli not found at {override}")
        return str(resolved)

    for path in candidate_paths(system=system, environ=environ):
        if path.is_file():
            logger.info(f"Found keepassxc-cli at {path}")
            return str(path)

    for name in EXECUTABLE_NAMES:
        resolved = shutil.which(name)
        if resolved:
            logger.info(f"Found keepassxc-cli on PATH at {resolved}")
            return resolved

    raise ConfigurationError(
        "keepassxc-cli not found. Please install KeePassXC from "
        "https://keepassxc.org/download/"
    )
