"""Platform and OS detection utilities."""

import platform
import shutil
from typing import Literal

PlatformOS = Literal["windows", "linux", "macos"]


def get_os() -> PlatformOS:
    """Get the current operating system.

    Returns:
        One of: "windows", "linux", "macos"
    """
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    elif system == "windows":
        return "windows"
    else:
        return "linux"


def is_windows() -> bool:
    """Check if the current OS is Windows.

    Returns:
        True if running on Windows
    """
    return get_os() == "windows"


def find_executable(*names: str) -> str | None:
    """Find the first of several executables on PATH.

    Args:
        names: Executable names in order of preference

    Returns:
        Full path to the executable, or None if none is installed
    """
    for name in names:
        path = shutil.which(name)
        if path:
            return path
    return None
