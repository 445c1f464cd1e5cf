"""
reaper_video_fx.extension - REAPER bridge extension lookup and install.

REAPER loads native extensions from its UserPlugins directory. The bridge
binary is shipped next to the application (or built into
reaper-extension/dist during development) and copied there on request.
"""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

from pydantic import BaseModel

from reaper_video_fx.exceptions import ExtensionError

EXTENSION_STEM = "reaper_video_fx_bridge"

_LIBRARY_SUFFIXES = {
    "win32": ".dll",
    "darwin": ".dylib",
    "linux": ".so",
}


class ExtensionStatus(BaseModel):
    """Whether the bridge extension is installed and can be installed."""

    installed: bool
    path: str | None = None
    bundled_available: bool = False


def _platform_key(platform: str | None) -> str:
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return "linux"
    return platform


def extension_filename(platform: str | None = None) -> str:
    """File name of the bridge extension for a platform."""
    suffix = _LIBRARY_SUFFIXES.get(_platform_key(platform), ".dll")
    return f"{EXTENSION_STEM}{suffix}"


def user_plugins_dir(
    platform: str | None = None,
    home: Path | None = None,
    env: dict[str, str] | None = None,
) -> Path | None:
    """REAPER's UserPlugins directory for the current user, or None if unknown."""
    key = _platform_key(platform)
    home = home or Path.home()
    env = os.environ if env is None else env

    if key == "win32":
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "REAPER" / "UserPlugins"
    if key == "darwin":
        return home / "Library" / "Application Support" / "REAPER" / "UserPlugins"
    if key == "linux":
        return home / ".config" / "REAPER" / "UserPlugins"
    return None


def bundled_search_dirs() -> list[Path]:
    """Places the bridge binary is looked for, in order."""
    package_dir = Path(__file__).parent
    exe_dir = Path(sys.executable).parent
    return [
        package_dir / "bin",
        exe_dir,
        package_dir.parent / "reaper-extension" / "dist",
        Path.cwd() / "reaper-extension" / "dist",
        Path.cwd().parent / "reaper-extension" / "dist",
    ]


def find_bundled_extension(
    search_dirs: list[Path] | None = None,
    platform: str | None = None,
) -> Path | None:
    """Locate the bundled bridge binary."""
    filename = extension_filename(platform)
    for directory in search_dirs if search_dirs is not None else bundled_search_dirs():
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def check_extension_status(
    plugins_dir: Path | None = None,
    search_dirs: list[Path] | None = None,
) -> ExtensionStatus:
    """Report whether the extension is installed and a bundled copy exists."""
    plugins_dir = plugins_dir or user_plugins_dir()
    installed = bool(plugins_dir and (plugins_dir / extension_filename()).exists())
    return ExtensionStatus(
        installed=installed,
        path=str(plugins_dir) if plugins_dir else None,
        bundled_available=find_bundled_extension(search_dirs) is not None,
    )


def install_extension(
    plugins_dir: Path | None = None,
    search_dirs: list[Path] | None = None,
) -> Path:
    """Copy the bundled bridge binary into REAPER's UserPlugins directory.

    Returns:
        Path of the installed extension

    Raises:
        ExtensionError: If the binary or the plugins directory is missing,
            or the copy fails
    """
    bundled = find_bundled_extension(search_dirs)
    if bundled is None:
        raise ExtensionError("Bundled bridge extension not found")

    plugins_dir = plugins_dir or user_plugins_dir()
    if plugins_dir is None:
        raise ExtensionError("REAPER UserPlugins directory not found")

    try:
        plugins_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExtensionError(f"Could not create {plugins_dir}: {e}") from e

    dest = plugins_dir / bundled.name
    try:
        shutil.copy2(bundled, dest)
    except OSError as e:
        raise ExtensionError(f"Copy failed: {e}") from e
    return dest
