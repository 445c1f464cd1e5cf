"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any, Callable

import pytest

from reaper_video_fx.bridge import mailbox
from reaper_video_fx.io import write_text


class FakeReaper:
    """Background thread that answers command.json like the bridge extension.

    The handler gets the decoded command dict and returns a response dict,
    a raw string to write verbatim, or None to stay silent.
    """

    def __init__(
        self,
        comm_dir: Path,
        handler: Callable[[dict[str, Any]], dict[str, Any] | str | None],
    ) -> None:
        self.comm_dir = comm_dir
        self.handler = handler
        self.commands: list[dict[str, Any]] = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def __enter__(self) -> FakeReaper:
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._stop.set()
        self._thread.join(timeout=2)

    def _loop(self) -> None:
        command_file = self.comm_dir / "command.json"
        response_file = self.comm_dir / "response.json"
        while not self._stop.is_set():
            time.sleep(0.005)
            try:
                content = command_file.read_text(encoding="utf-8")
            except OSError:
                continue
            try:
                command = json.loads(content)
            except ValueError:
                continue
            self.commands.append(command)
            command_file.unlink(missing_ok=True)

            answer = self.handler(command)
            if answer is None:
                continue
            text = answer if isinstance(answer, str) else json.dumps(answer)
            write_text(response_file, text)


@pytest.fixture
def fast_polling(monkeypatch: pytest.MonkeyPatch) -> None:
    """Shrink the poll interval and response timeout."""
    monkeypatch.setattr(mailbox, "POLL_INTERVAL", 0.01)
    monkeypatch.setattr(mailbox, "RESPONSE_TIMEOUT", 0.3)


@pytest.fixture
def comm_dir(tmp_path: Path) -> Path:
    return tmp_path / "comm"


@pytest.fixture
def fake_reaper(comm_dir: Path) -> Callable[..., FakeReaper]:
    def factory(handler: Callable[[dict[str, Any]], dict[str, Any] | str | None]) -> FakeReaper:
        return FakeReaper(comm_dir, handler)

    return factory


class FakeFFmpeg:
    """Stand-in for the media operations that records calls and writes outputs."""

    def __init__(self, fail_on: str | None = None, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_on = fail_on
        self.error = error

    def extract_audio(self, video_path, output_path, sample_rate, ffmpeg_path="ffmpeg") -> None:
        self.calls.append(("extract", (video_path, output_path, sample_rate)))
        if self.fail_on == "extract":
            raise self.error
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"fLaC")

    def merge_audio_video(
        self, video_path, audio_path, output_path, settings, ffmpeg_path="ffmpeg"
    ) -> None:
        self.calls.append(("merge", (video_path, audio_path, output_path, settings)))
        if self.fail_on == "merge":
            raise self.error
        self.merged_output = output_path


@pytest.fixture
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch) -> Callable[..., FakeFFmpeg]:
    """Patch the pipeline's FFmpeg calls with a FakeFFmpeg."""

    def install(fail_on: str | None = None, error: Exception | None = None) -> FakeFFmpeg:
        fake = FakeFFmpeg(fail_on, error)
        monkeypatch.setattr("reaper_video_fx.pipeline.extract_audio", fake.extract_audio)
        monkeypatch.setattr("reaper_video_fx.pipeline.merge_audio_video", fake.merge_audio_video)
        return fake

    return install
