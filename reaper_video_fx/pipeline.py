"""
reaper_video_fx.pipeline - Video soundtrack round-trip through REAPER.

Pipeline stages:
1. Extract the video's audio to a temporary FLAC
2. Clear the target REAPER track
3. Load the FLAC onto the track
4. Render the track (with its FX chain) to a temporary WAV
5. Remux the rendered WAV with the original video stream

Progress is reported at fixed percentages after each stage. Temporary
files are removed whatever the outcome; changes already made inside
REAPER (a cleared or loaded track) are left as they are.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from reaper_video_fx.bridge.client import ReaperBridge
from reaper_video_fx.bridge.mailbox import default_comm_dir
from reaper_video_fx.config import RenderSettings
from reaper_video_fx.exceptions import DirectoryError, PipelineBusyError, ValidationError
from reaper_video_fx.io import remove_quietly
from reaper_video_fx.media.ffmpeg import extract_audio, merge_audio_video

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = "_processed"
OUTPUT_EXTENSION = ".mp4"


@dataclass(frozen=True)
class ProgressEvent:
    """A coarse progress notification for one pipeline run."""

    step: str
    percent: int


ProgressSink = Callable[[ProgressEvent], object]


def generate_temp_filename(extension: str) -> str:
    """Unique scratch file name: unix seconds plus an 8-character random token."""
    return f"render_{int(time.time())}_{uuid.uuid4().hex[:8]}.{extension}"


def output_path_for(video_path: Path) -> Path:
    """Where the processed copy of a video is written."""
    return video_path.parent / f"{video_path.stem}{OUTPUT_SUFFIX}{OUTPUT_EXTENSION}"


class ScratchFiles:
    """Temporary paths owned by one run, deleted when the run's scope ends."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.paths: list[Path] = []

    def new(self, extension: str) -> Path:
        path = self.directory / generate_temp_filename(extension)
        self.paths.append(path)
        return path

    def __enter__(self) -> ScratchFiles:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(f"Cannot create work directory {self.directory}: {e}") from e
        return self

    def __exit__(self, *exc_info: object) -> None:
        remove_quietly(*self.paths)


class VideoProcessor:
    """Runs the extract → REAPER → remux pipeline, one video at a time."""

    def __init__(
        self,
        bridge: ReaperBridge | None = None,
        work_dir: Path | None = None,
        ffmpeg_path: str = "ffmpeg",
    ) -> None:
        self.bridge = bridge or ReaperBridge()
        self.work_dir = Path(work_dir).absolute() if work_dir else default_comm_dir()
        self.ffmpeg_path = ffmpeg_path
        self._running = False

    @property
    def busy(self) -> bool:
        return self._running

    async def process_video(
        self,
        video_path: Path | str,
        track_index: int,
        settings: RenderSettings | None = None,
        on_progress: ProgressSink | None = None,
    ) -> Path:
        """Process a video's soundtrack through a REAPER track.

        Args:
            video_path: Source video file
            track_index: REAPER track whose FX chain processes the audio
            settings: Remux settings (defaults to RenderSettings())
            on_progress: Optional callable receiving ProgressEvent

        Returns:
            Path to ``<stem>_processed.mp4`` next to the source video

        Raises:
            PipelineBusyError: If this processor is already running
            ValidationError: If track_index is negative
            BridgeError: If REAPER fails or does not answer
            MediaToolError: If FFmpeg fails
        """
        if self._running:
            raise PipelineBusyError("A video is already being processed")
        if track_index < 0:
            raise ValidationError(f"Track index must be >= 0, got {track_index}")

        self._running = True
        try:
            return await self._run(
                Path(video_path), track_index, settings or RenderSettings(), on_progress
            )
        finally:
            self._running = False

    async def _run(
        self,
        video_path: Path,
        track_index: int,
        settings: RenderSettings,
        on_progress: ProgressSink | None,
    ) -> Path:
        def progress(step: str, percent: int) -> None:
            logger.info("[%3d%%] %s", percent, step)
            if on_progress is None:
                return
            try:
                on_progress(ProgressEvent(step=step, percent=percent))
            except Exception:
                logger.warning("Progress callback failed", exc_info=True)

        output_path = output_path_for(video_path)

        with ScratchFiles(self.work_dir) as scratch:
            audio_path = scratch.new("flac")
            rendered_path = scratch.new("wav")

            progress("Extracting audio from video...", 10)
            await asyncio.to_thread(
                extract_audio, video_path, audio_path, settings.sample_rate, self.ffmpeg_path
            )
            progress("Audio extracted", 25)

            progress("Preparing track...", 30)
            await self.bridge.clear_track(track_index)

            progress("Loading audio into REAPER...", 40)
            await self.bridge.load_audio(track_index, str(audio_path))
            progress("Audio loaded", 55)

            progress("Rendering track...", 60)
            await self.bridge.render_track(track_index, str(rendered_path))
            progress("Render complete", 80)

            progress("Building video...", 85)
            await asyncio.to_thread(
                merge_audio_video,
                video_path,
                rendered_path,
                output_path,
                settings,
                self.ffmpeg_path,
            )
            progress("Done!", 100)

        return output_path
