"""
reaper_video_fx.media.ffmpeg - FFmpeg audio extraction and remux.

Both operations block until FFmpeg exits. The exit status is the only
success signal; stderr is kept for debug logging.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from reaper_video_fx.config import RenderSettings
from reaper_video_fx.exceptions import ToolExecutionError, ToolLaunchError

logger = logging.getLogger(__name__)

EXTRACT_CODEC = "flac"
EXTRACT_CHANNELS = 2


def build_extract_command(
    video_path: Path,
    output_path: Path,
    sample_rate: int,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Build the FFmpeg command that pulls a stereo FLAC out of a video."""
    return [
        ffmpeg_path,
        "-y",
        "-i",
        str(video_path),
        "-vn",
        "-acodec",
        EXTRACT_CODEC,
        "-ar",
        str(sample_rate),
        "-ac",
        str(EXTRACT_CHANNELS),
        str(output_path),
    ]


def build_merge_command(
    video_path: Path,
    audio_path: Path,
    output_path: Path,
    settings: RenderSettings,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Build the FFmpeg command that muxes new audio under the original video.

    Takes the first video stream of the video and the first audio stream of
    the audio file, and stops at the shorter of the two.
    """
    cmd = [
        ffmpeg_path,
        "-y",
        "-i",
        str(video_path),
        "-i",
        str(audio_path),
    ]

    if settings.copies_video:
        cmd += ["-c:v", "copy"]
    else:
        cmd += ["-c:v", settings.video_codec]
        if settings.has_video_bitrate:
            cmd += ["-b:v", settings.video_bitrate]

    cmd += [
        "-c:a",
        settings.audio_codec,
        "-b:a",
        settings.audio_bitrate,
        "-map",
        "0:v:0",
        "-map",
        "1:a:0",
        "-shortest",
        str(output_path),
    ]
    return cmd


def run_ffmpeg(cmd: list[str], failure_message: str) -> None:
    """Run an FFmpeg command to completion.

    Raises:
        ToolLaunchError: If FFmpeg cannot be started
        ToolExecutionError: If FFmpeg exits with a non-zero status
    """
    logger.debug("Running: %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ToolLaunchError(f"Could not run FFmpeg: {e}") from e

    if proc.returncode != 0:
        logger.debug("FFmpeg exited with %d: %s", proc.returncode, proc.stderr)
        raise ToolExecutionError(failure_message, proc.returncode)


def extract_audio(
    video_path: Path,
    output_path: Path,
    sample_rate: int,
    ffmpeg_path: str = "ffmpeg",
) -> None:
    """Extract a video's audio as 2-channel FLAC at the given sample rate.

    Overwrites output_path if it exists.

    Raises:
        ToolLaunchError: If FFmpeg cannot be started
        ToolExecutionError: If extraction fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_extract_command(video_path, output_path, sample_rate, ffmpeg_path)
    run_ffmpeg(cmd, "Audio extraction failed")


def merge_audio_video(
    video_path: Path,
    audio_path: Path,
    output_path: Path,
    settings: RenderSettings,
    ffmpeg_path: str = "ffmpeg",
) -> None:
    """Replace a video's soundtrack with audio_path, writing output_path.

    Raises:
        ToolLaunchError: If FFmpeg cannot be started
        ToolExecutionError: If the merge fails
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_merge_command(video_path, audio_path, output_path, settings, ffmpeg_path)
    run_ffmpeg(cmd, "Video merge failed")
