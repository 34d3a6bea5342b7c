# mcpeek/pinglib/dirs.py
import enum
import os
import sys
from pathlib import Path

from pinglib.errors import DirectoryNotFound


class Platform(enum.Enum):
    WINDOWS = "windows"
    MACOS = "macos"
    OTHER = "other"


def platform_from_name(name):
    """Map a `sys.platform` value to a Platform."""
    if name.startswith(("win32", "cygwin")):
        return Platform.WINDOWS
    if name == "darwin":
        return Platform.MACOS
    return Platform.OTHER


def data_dir_for(platform, home, environ):
    if platform is Platform.WINDOWS:
        appdata = environ.get("APPDATA")
        return Path(appdata) if appdata else Path(home) / "AppData" / "Roaming"
    if platform is Platform.MACOS:
        return Path(home) / "Library" / "Application Support"
    return Path(environ.get("XDG_DATA_HOME") or Path(home) / ".local" / "share")


def minecraft_dir(platform, home, data_dir):
    """Where the launcher keeps the game directory on `platform`.

    Windows and macOS keep it in the per-user data directory, everything
    else directly in the home directory. Only macOS drops the leading dot.
    """
    if platform is Platform.WINDOWS:
        return Path(data_dir) / ".minecraft"
    if platform is Platform.MACOS:
        return Path(data_dir) / "minecraft"
    return Path(home) / ".minecraft"


def find_minecraft_dir():
    platform = platform_from_name(sys.platform)
    home = Path.home()
    path = minecraft_dir(platform, home, data_dir_for(platform, home, os.environ))
    if not path.is_dir():
        raise DirectoryNotFound(
            f"Couldn't resolve .minecraft directory ({path}), please check that "
            "it exists or pass the path explicitly with --instance."
        )
    return path
