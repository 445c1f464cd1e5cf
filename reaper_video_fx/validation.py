"""
reaper_video_fx.validation - Dependency checks and input validation.

Validates the environment and input files before a pipeline run.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

from reaper_video_fx.exceptions import DependencyError, ValidationError

FFMPEG_INSTALL_HINT = (
    "Install with: brew install ffmpeg (macOS), apt install ffmpeg (Linux) "
    "or winget install ffmpeg (Windows)"
)

VIDEO_EXTENSIONS = {".mp4", ".mkv", ".avi", ".mov", ".webm"}


def check_ffmpeg(ffmpeg_path: str = "ffmpeg") -> dict[str, str]:
    """Check that FFmpeg is installed and get its version.

    Returns:
        Dict with 'ffmpeg_path' and 'ffmpeg_version'

    Raises:
        DependencyError: If FFmpeg is not found
    """
    resolved = shutil.which(ffmpeg_path)
    if not resolved:
        raise DependencyError("ffmpeg", f"{ffmpeg_path} not found in PATH", FFMPEG_INSTALL_HINT)

    result = {"ffmpeg_path": resolved}
    try:
        proc = subprocess.run(
            [resolved, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = proc.stdout.split("\n")[0]
        result["ffmpeg_version"] = version_line.split()[2] if version_line else "unknown"
    except (subprocess.TimeoutExpired, IndexError):
        result["ffmpeg_version"] = "unknown"

    return result


def validate_video_file(path: Path) -> dict[str, Any]:
    """Validate a video file exists and looks like a video.

    Returns:
        Dict with validation results; 'warnings' lists non-fatal issues

    Raises:
        ValidationError: If the file doesn't exist or is not a file
    """
    if not path.exists():
        raise ValidationError(f"File not found: {path}")

    if not path.is_file():
        raise ValidationError(f"Not a file: {path}")

    warnings = []
    if path.suffix.lower() not in VIDEO_EXTENSIONS:
        warnings.append(f"Unrecognized video extension '{path.suffix}'")

    return {
        "path": str(path),
        "exists": True,
        "size_mb": path.stat().st_size // (1024 * 1024),
        "warnings": warnings,
    }
