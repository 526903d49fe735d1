"""
External tool discovery (ffprobe) and trash availability for the check command.
"""

import os
import shutil
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .config import AppConfig

# Optional per-user install location, searched before PATH
USER_BIN_DIR = Path.home() / ".local" / "share" / "media-cleanup-toolkit" / "bin"


def get_tool_path(tool_name: str, override: str | None = None) -> Path | None:
    """
    Find a tool in standard locations.

    Search order:
    1. Explicit override (absolute path or name)
    2. User local bin (~/.local/share/media-cleanup-toolkit/bin)
    3. System PATH
    """
    if override and override != tool_name:
        candidate = Path(override).expanduser()
        if candidate.is_file():
            return candidate
        found = shutil.which(override)
        return Path(found) if found else None

    user_path = USER_BIN_DIR / tool_name
    if user_path.exists():
        return user_path

    sys_path = shutil.which(tool_name)
    if sys_path:
        return Path(sys_path)

    return None


def get_trash_location() -> Path | None:
    """Home trash directory on freedesktop systems; None elsewhere."""
    if sys.platform in ("darwin", "win32"):
        return None
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(data_home) / "Trash"


def get_send2trash_version() -> str | None:
    try:
        return version("Send2Trash")
    except PackageNotFoundError:
        return None


def check_tools_status(config: AppConfig | None = None) -> dict[str, Path | None]:
    """
    Check status of all external tools.

    Returns:
        Dict mapping tool name to path (None if not found)
    """
    config = config or AppConfig()
    return {
        "ffprobe": get_tool_path("ffprobe", config.probe.ffprobe),
    }
