"""
reaper_video_fx.cli - Typer CLI entry point.

Talks to a running REAPER instance through the bridge extension and runs
the video processing pipeline with a progress bar.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from reaper_video_fx import __version__
from reaper_video_fx.bridge.client import ReaperBridge
from reaper_video_fx.bridge.mailbox import FileMailbox
from reaper_video_fx.config import (
    AUDIO_CODECS,
    CONFIG_FILENAME,
    VIDEO_CODECS,
    AppConfig,
    RenderSettings,
    apply_overrides,
    build_render_settings,
    create_default_config,
    find_config,
    list_presets,
    load_config,
    write_config,
)
from reaper_video_fx.exceptions import ReaperVideoFxError
from reaper_video_fx.logging import configure_logging
from reaper_video_fx.pipeline import ProgressEvent, VideoProcessor

app = typer.Typer(
    name="reaper-video-fx",
    help="Process a video's soundtrack through a REAPER track.\n\n"
    "Extracts the audio, runs it through the FX chain of a REAPER track via the "
    "bridge extension, and muxes the rendered result back into the video.",
    add_completion=False,
)
extension_app = typer.Typer(help="Manage the REAPER bridge extension.", add_completion=False)
app.add_typer(extension_app, name="extension")

console = Console()

state: dict[str, Path | None] = {"comm_dir": None}


def create_bridge() -> ReaperBridge:
    """Bridge to REAPER using the communication directory chosen on the command line."""
    return ReaperBridge(FileMailbox(state["comm_dir"]))


def load_app_config(config_path: Path | None) -> AppConfig:
    """Load an explicit config file, the nearest reaper-video-fx.yaml, or defaults."""
    path = config_path or find_config()
    if path is None:
        return AppConfig()
    return load_config(path)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"reaper-video-fx {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    comm_dir: Path | None = typer.Option(
        None,
        "--comm-dir",
        envvar="REAPER_VIDEO_FX_COMM_DIR",
        help="Directory shared with the bridge extension (default: system temp)",
    ),
) -> None:
    """reaper-video-fx - REAPER audio processing for video files."""
    configure_logging(verbose)
    state["comm_dir"] = comm_dir


@app.command("init")
def init_config(
    preset: str = typer.Option("default", "--preset", "-p", help="Preset to start from"),
    path: str = typer.Option(".", "--path", "-d", help="Directory to write the config in"),
) -> None:
    """Write a reaper-video-fx.yaml with the chosen preset's settings."""
    config_path = Path(path) / CONFIG_FILENAME
    if config_path.exists():
        console.print(f"[red]Error: '{config_path}' already exists[/red]")
        raise typer.Exit(1)

    try:
        build_render_settings(preset)
    except ReaperVideoFxError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(preset), config_path)
    console.print(f"[green]✓[/green] Wrote {config_path} with preset '{preset}'")


@app.command("ping")
def ping() -> None:
    """Check that REAPER and the bridge extension are answering."""
    console.print("[dim]Waiting for REAPER...[/dim]")
    if asyncio.run(create_bridge().ping()):
        console.print("[green]✓[/green] REAPER is connected")
        return

    console.print("[red]✗ REAPER did not respond[/red]")
    from reaper_video_fx.extension import check_extension_status

    status = check_extension_status()
    if not status.installed:
        console.print(
            "[dim]The bridge extension is not installed. "
            "Run 'reaper-video-fx extension install' and restart REAPER.[/dim]"
        )
    else:
        console.print("[dim]Is REAPER running with a project open?[/dim]")
    raise typer.Exit(1)


@app.command("tracks")
def list_tracks() -> None:
    """List the tracks of the project open in REAPER."""
    try:
        tracks = asyncio.run(create_bridge().list_tracks())
    except ReaperVideoFxError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not tracks:
        console.print("[yellow]The REAPER project has no tracks[/yellow]")
        return

    table = Table(title="REAPER Tracks")
    table.add_column("Index", style="cyan", justify="right")
    table.add_column("Name", style="green")
    for track in tracks:
        table.add_row(str(track.index), track.name)
    console.print(table)


@app.command("process")
def process(
    video: Path = typer.Argument(..., help="Video file to process"),
    track: int = typer.Option(..., "--track", "-t", min=0, help="REAPER track index"),
    preset: str | None = typer.Option(None, "--preset", "-p", help="Render preset"),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help=f"Config file (default: nearest {CONFIG_FILENAME})"
    ),
    video_codec: str | None = typer.Option(None, "--video-codec", help="copy, libx264, ..."),
    video_bitrate: str | None = typer.Option(None, "--video-bitrate", help="e.g. 10M, 0 = auto"),
    audio_codec: str | None = typer.Option(None, "--audio-codec", help="aac, libopus, ..."),
    audio_bitrate: str | None = typer.Option(None, "--audio-bitrate", help="e.g. 320k"),
    sample_rate: int | None = typer.Option(None, "--sample-rate", help="Hz, e.g. 48000"),
) -> None:
    """Run a video's soundtrack through a REAPER track and remux the result."""
    from reaper_video_fx.validation import validate_video_file

    video = video.expanduser().absolute()
    overrides = {
        "video_codec": video_codec,
        "video_bitrate": video_bitrate,
        "audio_codec": audio_codec,
        "audio_bitrate": audio_bitrate,
        "sample_rate": sample_rate,
    }

    try:
        validation = validate_video_file(video)
        for warning in validation["warnings"]:
            console.print(f"[yellow]⚠ {warning}[/yellow]")

        config = load_app_config(config_path)
        if preset:
            presets_dir = config.config_path.parent / "presets" if config.config_path else None
            settings = build_render_settings(preset, overrides, presets_dir)
        else:
            settings = apply_overrides(config.render, overrides)
    except (ReaperVideoFxError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_settings(settings)

    processor = VideoProcessor(
        bridge=create_bridge(),
        work_dir=config.work_dir or state["comm_dir"],
        ffmpeg_path=config.ffmpeg_path,
    )

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task("Starting...", total=100)

        def on_progress(event: ProgressEvent) -> None:
            progress.update(task_id, description=event.step, completed=event.percent)

        try:
            output_path = asyncio.run(
                processor.process_video(video, track, settings, on_progress=on_progress)
            )
        except ReaperVideoFxError as e:
            progress.stop()
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    console.print(f"[green]✓[/green] Processed video: {output_path}")


def _print_settings(settings: RenderSettings) -> None:
    video = VIDEO_CODECS.get(settings.video_codec, settings.video_codec)
    if not settings.copies_video and settings.has_video_bitrate:
        video += f" @ {settings.video_bitrate}"
    audio = AUDIO_CODECS.get(settings.audio_codec, settings.audio_codec)
    console.print(
        f"[dim]Video: {video} | Audio: {audio} @ {settings.audio_bitrate}, "
        f"{settings.sample_rate} Hz[/dim]"
    )


@app.command("presets")
def show_presets(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """List the available render presets."""
    path = config_path or find_config()
    presets_dir = path.parent / "presets" if path else None

    try:
        presets = list_presets(presets_dir)
    except ReaperVideoFxError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Render Presets")
    table.add_column("Preset", style="cyan")
    table.add_column("Video", style="green")
    table.add_column("Audio", style="green")
    table.add_column("Sample Rate", justify="right")

    for name, values in presets.items():
        video = str(values.get("video_codec", "copy"))
        bitrate = str(values.get("video_bitrate", "0"))
        if video != "copy" and bitrate not in ("", "0"):
            video += f" @ {bitrate}"
        audio = f"{values.get('audio_codec', 'aac')} @ {values.get('audio_bitrate', '320k')}"
        table.add_row(name, video, audio, str(values.get("sample_rate", 48000)))

    console.print(table)


@extension_app.command("status")
def extension_status() -> None:
    """Show whether the bridge extension is installed."""
    from reaper_video_fx.extension import check_extension_status, extension_filename

    status = check_extension_status()
    table = Table(title="Bridge Extension")
    table.add_column("Item", style="cyan")
    table.add_column("Status")
    table.add_row("File", extension_filename())
    table.add_row("UserPlugins", status.path or "[red]unknown[/red]")
    installed = "[green]✓ Yes[/green]" if status.installed else "[red]✗ No[/red]"
    table.add_row("Installed", installed)
    table.add_row(
        "Bundled copy",
        "[green]✓ Available[/green]" if status.bundled_available else "[dim]Not found[/dim]",
    )
    console.print(table)


@extension_app.command("install")
def extension_install() -> None:
    """Copy the bundled bridge extension into REAPER's UserPlugins directory."""
    from reaper_video_fx.extension import install_extension

    try:
        dest = install_extension()
    except ReaperVideoFxError as e:
        console.print(f"[red]Error installing extension: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Installed {dest}")
    console.print("[dim]Restart REAPER to load the extension[/dim]")


@app.command("doctor")
def run_doctor(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
) -> None:
    """Check FFmpeg, the bridge extension, and the connection to REAPER."""
    console.print("[cyan]Running preflight checks...[/cyan]\n")

    from reaper_video_fx.exceptions import DependencyError
    from reaper_video_fx.extension import check_extension_status
    from reaper_video_fx.validation import check_ffmpeg

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Version/Details")

    all_passed = True

    try:
        config = load_app_config(config_path)
    except (ReaperVideoFxError, FileNotFoundError) as e:
        table.add_row("Config", "✗ Invalid", str(e))
        config = AppConfig()
        all_passed = False

    try:
        versions = check_ffmpeg(config.ffmpeg_path)
        table.add_row("FFmpeg", "✓ Installed", versions.get("ffmpeg_version", "unknown"))
    except DependencyError as e:
        table.add_row("FFmpeg", "✗ Missing", e.install_hint or "")
        all_passed = False

    status = check_extension_status()
    if status.installed:
        table.add_row("Bridge extension", "✓ Installed", status.path or "")
    else:
        table.add_row("Bridge extension", "✗ Not installed", status.path or "")
        all_passed = False

    if asyncio.run(create_bridge().ping()):
        table.add_row("REAPER", "✓ Connected", "")
    else:
        table.add_row("REAPER", "✗ Not responding", "Is REAPER running?")
        all_passed = False

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        console.print("[dim]Fix the issues above before processing videos[/dim]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
