"""Tests for reaper_video_fx.pipeline module."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

import pytest

from reaper_video_fx.bridge.client import ReaperBridge
from reaper_video_fx.bridge.mailbox import FileMailbox, InMemoryMailbox
from reaper_video_fx.bridge.protocol import Command, CommandKind, Response
from reaper_video_fx.config import RenderSettings
from reaper_video_fx.exceptions import (
    BridgeTimeoutError,
    PipelineBusyError,
    RemoteFailure,
    ToolExecutionError,
    ValidationError,
)
from reaper_video_fx.pipeline import (
    ProgressEvent,
    ScratchFiles,
    VideoProcessor,
    generate_temp_filename,
    output_path_for,
)

FULL_PROGRESS = [10, 25, 30, 40, 55, 60, 80, 85, 100]


def always_ok(command: Command) -> Response:
    return Response(success=True, message="ok")


def make_processor(handler, work_dir: Path) -> tuple[VideoProcessor, InMemoryMailbox]:
    box = InMemoryMailbox(handler)
    return VideoProcessor(bridge=ReaperBridge(box), work_dir=work_dir), box


class TestHelpers:
    def test_output_path_for(self) -> None:
        assert output_path_for(Path("/in/clip.mp4")) == Path("/in/clip_processed.mp4")

    def test_output_always_mp4(self) -> None:
        assert output_path_for(Path("/v/take.two.mov")) == Path("/v/take.two_processed.mp4")

    def test_temp_filename_format(self) -> None:
        name = generate_temp_filename("flac")
        assert re.fullmatch(r"render_\d+_[0-9a-f]{8}\.flac", name)

    def test_temp_filenames_unique(self) -> None:
        names = {generate_temp_filename("wav") for _ in range(50)}
        assert len(names) == 50

    def test_scratch_files_removed_on_error(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with ScratchFiles(tmp_path) as scratch:
                path = scratch.new("wav")
                path.write_bytes(b"data")
                raise RuntimeError("stage failed")
        assert not path.exists()

    def test_scratch_files_missing_is_fine(self, tmp_path: Path) -> None:
        with ScratchFiles(tmp_path) as scratch:
            path = scratch.new("flac")
        assert not path.exists()


class TestProcessVideo:
    def test_successful_run(self, tmp_path: Path, fake_ffmpeg) -> None:
        ffmpeg = fake_ffmpeg()
        processor, box = make_processor(always_ok, tmp_path / "work")
        events: list[ProgressEvent] = []

        output = asyncio.run(
            processor.process_video("/in/clip.mp4", 2, RenderSettings(), events.append)
        )

        assert output == Path("/in/clip_processed.mp4")
        assert [e.percent for e in events] == FULL_PROGRESS
        assert [c.kind for c in box.sent] == [
            CommandKind.CLEAR_TRACK,
            CommandKind.LOAD_AUDIO,
            CommandKind.RENDER_TRACK,
        ]
        assert all(c.track_index == 2 for c in box.sent)
        assert [name for name, _ in ffmpeg.calls] == ["extract", "merge"]

    def test_commands_use_temp_paths(self, tmp_path: Path, fake_ffmpeg) -> None:
        ffmpeg = fake_ffmpeg()
        work_dir = tmp_path / "work"
        processor, box = make_processor(always_ok, work_dir)

        asyncio.run(processor.process_video(tmp_path / "clip.mp4", 0))

        extracted = ffmpeg.calls[0][1][1]
        load, render = box.sent[1], box.sent[2]
        assert load.audio_path == str(extracted)
        assert extracted.parent == work_dir
        assert extracted.suffix == ".flac"
        assert Path(render.output_path).suffix == ".wav"
        assert Path(render.output_path).parent == work_dir
        merge_args = ffmpeg.calls[1][1]
        assert merge_args[1] == Path(render.output_path)

    def test_sample_rate_passed_to_extract(self, tmp_path: Path, fake_ffmpeg) -> None:
        ffmpeg = fake_ffmpeg()
        processor, _ = make_processor(always_ok, tmp_path)

        settings = RenderSettings(sample_rate=96000)
        asyncio.run(processor.process_video(tmp_path / "v.mp4", 0, settings))

        assert ffmpeg.calls[0][1][2] == 96000

    def test_temp_files_removed_on_success(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        work_dir = tmp_path / "work"

        def reaper(command: Command) -> Response:
            if command.kind == CommandKind.RENDER_TRACK:
                Path(command.output_path).write_bytes(b"RIFF")
            return Response(success=True)

        processor, _ = make_processor(reaper, work_dir)
        asyncio.run(processor.process_video(tmp_path / "v.mp4", 1))

        assert list(work_dir.iterdir()) == []

    def test_load_audio_failure(self, tmp_path: Path, fake_ffmpeg) -> None:
        ffmpeg = fake_ffmpeg()
        work_dir = tmp_path / "work"

        def reaper(command: Command) -> Response:
            if command.kind == CommandKind.LOAD_AUDIO:
                return Response(success=False, message="disk full")
            return Response(success=True)

        processor, box = make_processor(reaper, work_dir)
        events: list[ProgressEvent] = []

        with pytest.raises(RemoteFailure) as exc_info:
            asyncio.run(processor.process_video(tmp_path / "clip.mp4", 2, None, events.append))

        assert exc_info.value.message == "disk full"
        assert list(work_dir.iterdir()) == []
        assert [name for name, _ in ffmpeg.calls] == ["extract"]
        assert not (tmp_path / "clip_processed.mp4").exists()
        assert [c.kind for c in box.sent][-1] == CommandKind.LOAD_AUDIO
        assert events[-1].percent == 40

    def test_render_failure_default_message(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()

        def reaper(command: Command) -> Response:
            if command.kind == CommandKind.RENDER_TRACK:
                return Response(success=False)
            return Response(success=True)

        processor, _ = make_processor(reaper, tmp_path)
        with pytest.raises(RemoteFailure, match="Render failed"):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", 0))

    def test_clear_failure_does_not_abort(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()

        def reaper(command: Command) -> Response:
            return Response(success=command.kind != CommandKind.CLEAR_TRACK)

        processor, _ = make_processor(reaper, tmp_path)
        output = asyncio.run(processor.process_video(tmp_path / "v.mp4", 0))
        assert output == tmp_path / "v_processed.mp4"

    def test_extract_failure_sends_nothing(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg(fail_on="extract", error=ToolExecutionError("Audio extraction failed", 1))
        processor, box = make_processor(always_ok, tmp_path / "work")

        with pytest.raises(ToolExecutionError):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", 0))

        assert box.sent == []
        assert list((tmp_path / "work").iterdir()) == []

    def test_merge_failure_cleans_up(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg(fail_on="merge", error=ToolExecutionError("Video merge failed", 1))
        work_dir = tmp_path / "work"
        events: list[ProgressEvent] = []

        def reaper(command: Command) -> Response:
            if command.kind == CommandKind.RENDER_TRACK:
                Path(command.output_path).write_bytes(b"RIFF")
            return Response(success=True)

        processor, _ = make_processor(reaper, work_dir)
        with pytest.raises(ToolExecutionError, match="Video merge failed"):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", 0, None, events.append))

        assert list(work_dir.iterdir()) == []
        assert 100 not in [e.percent for e in events]

    def test_timeout_when_reaper_silent(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        processor, _ = make_processor(lambda cmd: None, tmp_path / "work")

        with pytest.raises(BridgeTimeoutError):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", 0))

        assert list((tmp_path / "work").iterdir()) == []

    @pytest.mark.usefixtures("fast_polling")
    def test_timeout_over_files_leaves_nothing(
        self, tmp_path: Path, comm_dir: Path, fake_ffmpeg
    ) -> None:
        fake_ffmpeg()
        processor = VideoProcessor(bridge=ReaperBridge(FileMailbox(comm_dir)), work_dir=comm_dir)

        with pytest.raises(BridgeTimeoutError):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", 0))

        assert list(comm_dir.iterdir()) == []

    @pytest.mark.usefixtures("fast_polling")
    def test_full_run_over_files(
        self, tmp_path: Path, comm_dir: Path, fake_reaper, fake_ffmpeg
    ) -> None:
        fake_ffmpeg()
        processor = VideoProcessor(bridge=ReaperBridge(FileMailbox(comm_dir)), work_dir=comm_dir)
        events: list[ProgressEvent] = []

        with fake_reaper(lambda cmd: {"success": True}) as reaper:
            output = asyncio.run(
                processor.process_video(tmp_path / "clip.mp4", 1, None, events.append)
            )

        assert output == tmp_path / "clip_processed.mp4"
        assert [c["command"] for c in reaper.commands] == [
            "CLEAR_TRACK",
            "LOAD_AUDIO",
            "RENDER_TRACK",
        ]
        assert [e.percent for e in events] == FULL_PROGRESS
        assert list(comm_dir.iterdir()) == []

    def test_negative_track_rejected(self, tmp_path: Path, fake_ffmpeg) -> None:
        ffmpeg = fake_ffmpeg()
        processor, _ = make_processor(always_ok, tmp_path)

        with pytest.raises(ValidationError):
            asyncio.run(processor.process_video(tmp_path / "v.mp4", -1))
        assert ffmpeg.calls == []

    def test_failing_progress_sink_is_ignored(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        processor, _ = make_processor(always_ok, tmp_path)

        def broken_sink(event: ProgressEvent) -> None:
            raise RuntimeError("window closed")

        output = asyncio.run(processor.process_video(tmp_path / "v.mp4", 0, None, broken_sink))
        assert output == tmp_path / "v_processed.mp4"


class TestSingleFlight:
    def test_second_run_rejected_while_busy(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        processor, _ = make_processor(always_ok, tmp_path)

        async def scenario() -> None:
            first = asyncio.create_task(processor.process_video(tmp_path / "a.mp4", 0))
            await asyncio.sleep(0)
            assert processor.busy
            with pytest.raises(PipelineBusyError):
                await processor.process_video(tmp_path / "b.mp4", 0)
            await first

        asyncio.run(scenario())
        assert not processor.busy

    def test_sequential_runs_allowed(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        processor, _ = make_processor(always_ok, tmp_path)

        asyncio.run(processor.process_video(tmp_path / "a.mp4", 0))
        output = asyncio.run(processor.process_video(tmp_path / "b.mp4", 0))
        assert output == tmp_path / "b_processed.mp4"

    def test_busy_flag_reset_after_failure(self, tmp_path: Path, fake_ffmpeg) -> None:
        fake_ffmpeg()
        processor, _ = make_processor(lambda cmd: Response(success=False), tmp_path)

        with pytest.raises(RemoteFailure):
            asyncio.run(processor.process_video(tmp_path / "a.mp4", 0))
        assert not processor.busy
