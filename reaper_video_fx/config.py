"""
reaper_video_fx.config - Render settings, YAML config loading, presets.

Handles loading reaper-video-fx.yaml, applying render presets, and
validating the settings used for the final remux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from reaper_video_fx.exceptions import ConfigError

CONFIG_FILENAME = "reaper-video-fx.yaml"

COPY_CODEC = "copy"

VIDEO_CODECS = {
    "copy": "Copy (no re-encode)",
    "libx264": "H.264",
    "libx265": "H.265 (HEVC)",
    "libvpx-vp9": "VP9",
}
VIDEO_BITRATES = ["0", "2M", "5M", "10M", "20M", "50M"]
AUDIO_CODECS = {
    "aac": "AAC",
    "libmp3lame": "MP3",
    "flac": "FLAC",
    "libopus": "Opus",
}
AUDIO_BITRATES = ["128k", "192k", "256k", "320k"]
SAMPLE_RATES = [44100, 48000, 96000]


class RenderSettings(BaseModel):
    """Codec settings for the final remux. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    video_codec: str = COPY_CODEC
    video_bitrate: str = "0"
    audio_codec: str = "aac"
    audio_bitrate: str = "320k"
    sample_rate: int = Field(default=48000, gt=0)

    @field_validator("video_codec", "audio_codec", "audio_bitrate")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("video_bitrate")
    @classmethod
    def validate_video_bitrate(cls, v: str) -> str:
        return v.strip()

    @property
    def copies_video(self) -> bool:
        return self.video_codec == COPY_CODEC

    @property
    def has_video_bitrate(self) -> bool:
        return self.video_bitrate not in ("", "0")


class AppConfig(BaseModel):
    """Resolved configuration for a processing run."""

    preset: str = "default"
    ffmpeg_path: str = "ffmpeg"
    work_dir: Path | None = None
    render: RenderSettings = Field(default_factory=RenderSettings)

    config_path: Path | None = None


BUILTIN_PRESETS: dict[str, dict[str, Any]] = {
    "default": {
        "video_codec": "copy",
        "video_bitrate": "0",
        "audio_codec": "aac",
        "audio_bitrate": "320k",
        "sample_rate": 48000,
    },
    "h264": {
        "video_codec": "libx264",
        "video_bitrate": "10M",
        "audio_codec": "aac",
        "audio_bitrate": "320k",
        "sample_rate": 48000,
    },
    "hevc": {
        "video_codec": "libx265",
        "video_bitrate": "5M",
        "audio_codec": "aac",
        "audio_bitrate": "256k",
        "sample_rate": 48000,
    },
    "web": {
        "video_codec": "libvpx-vp9",
        "video_bitrate": "2M",
        "audio_codec": "libopus",
        "audio_bitrate": "128k",
        "sample_rate": 48000,
    },
}

RENDER_KEYS = set(RenderSettings.model_fields)


def load_preset(name: str, presets_dir: Path | None = None) -> dict[str, Any]:
    """Load a preset by name, checking custom presets first.

    Raises:
        ValueError: If no preset has this name
        ConfigError: If the custom preset file is malformed
    """
    if presets_dir and presets_dir.exists():
        preset_file = presets_dir / f"{name}.yaml"
        if preset_file.exists():
            with open(preset_file) as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in preset {preset_file}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Preset {preset_file} must contain a mapping")
            return data
    if name in BUILTIN_PRESETS:
        return BUILTIN_PRESETS[name].copy()
    raise ValueError(f"Unknown preset: {name}")


def list_presets(presets_dir: Path | None = None) -> dict[str, dict[str, Any]]:
    """Return all presets by name, custom presets overriding built-ins."""
    presets = {name: values.copy() for name, values in BUILTIN_PRESETS.items()}
    if presets_dir and presets_dir.exists():
        for preset_file in sorted(presets_dir.glob("*.yaml")):
            presets[preset_file.stem] = load_preset(preset_file.stem, presets_dir)
    return presets


def merge_settings(overrides: dict[str, Any], preset: dict[str, Any]) -> dict[str, Any]:
    """Merge explicit settings over preset defaults. Explicit values take precedence."""
    merged = preset.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def build_render_settings(
    preset: str = "default",
    overrides: dict[str, Any] | None = None,
    presets_dir: Path | None = None,
) -> RenderSettings:
    """Resolve a preset plus overrides into validated RenderSettings.

    Raises:
        ConfigError: If the preset is unknown or a value is invalid
    """
    try:
        base = load_preset(preset, presets_dir)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    unknown = set(base) - RENDER_KEYS
    if unknown:
        raise ConfigError(f"Unknown render setting(s) in preset '{preset}': {sorted(unknown)}")

    merged = merge_settings(overrides or {}, base)
    try:
        return RenderSettings(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid render settings: {e}") from e


def apply_overrides(settings: RenderSettings, overrides: dict[str, Any]) -> RenderSettings:
    """Return a copy of settings with the non-None overrides applied.

    Raises:
        ConfigError: If the result is invalid
    """
    merged = merge_settings(overrides, settings.model_dump())
    try:
        return RenderSettings(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid render settings: {e}") from e


def load_config(path: Path) -> AppConfig:
    """Load and validate configuration from a YAML file.

    The file may name a ``preset`` and override any render setting at the
    top level. A ``presets/`` directory next to the file holds custom presets.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file contains invalid values
    """
    if not path.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found at {path}")

    with open(path) as f:
        try:
            raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"{path} must contain a mapping")

    preset_name = raw_config.get("preset", "default")
    presets_dir = path.parent / "presets"
    overrides = {k: v for k, v in raw_config.items() if k in RENDER_KEYS}

    work_dir = raw_config.get("work_dir")
    if work_dir:
        if not isinstance(work_dir, str):
            raise ConfigError(f"work_dir in {path} must be a path")
        # relative to the config file, not the current directory
        work_dir = path.parent / Path(work_dir).expanduser()

    render = build_render_settings(
        preset_name, overrides, presets_dir if presets_dir.exists() else None
    )

    try:
        return AppConfig(
            preset=preset_name,
            ffmpeg_path=raw_config.get("ffmpeg_path") or "ffmpeg",
            work_dir=work_dir or None,
            render=render,
            config_path=path,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def find_config(start: Path | None = None) -> Path | None:
    """Find reaper-video-fx.yaml in the given directory or its parents."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def create_default_config(preset: str = "default") -> dict[str, Any]:
    """Create a default config mapping for a new setup."""
    defaults: dict[str, Any] = {"preset": preset, "ffmpeg_path": "ffmpeg"}
    if preset in BUILTIN_PRESETS:
        defaults = merge_settings(BUILTIN_PRESETS[preset], defaults)
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
