"""
reaper_video_fx.bridge.protocol - Command and response wire models.

Field names and casing match what the REAPER bridge extension reads from
command.json and writes to response.json.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CommandKind(str, Enum):
    """Commands understood by the REAPER bridge."""

    PING = "PING"
    GET_TRACKS = "GET_TRACKS"
    CLEAR_TRACK = "CLEAR_TRACK"
    LOAD_AUDIO = "LOAD_AUDIO"
    RENDER_TRACK = "RENDER_TRACK"


_TRACK_COMMANDS = {CommandKind.CLEAR_TRACK, CommandKind.LOAD_AUDIO, CommandKind.RENDER_TRACK}


class Track(BaseModel):
    """A track in the open REAPER project."""

    index: int
    name: str


class Command(BaseModel):
    """A single request to the REAPER bridge."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: CommandKind = Field(alias="command")
    track_index: int | None = Field(default=None, alias="trackIndex", ge=0)
    audio_path: str | None = Field(default=None, alias="audioPath")
    output_path: str | None = Field(default=None, alias="outputPath")

    @model_validator(mode="after")
    def check_fields(self) -> Command:
        if self.kind in _TRACK_COMMANDS and self.track_index is None:
            raise ValueError(f"{self.kind.value} requires trackIndex")
        if self.kind == CommandKind.LOAD_AUDIO and not self.audio_path:
            raise ValueError("LOAD_AUDIO requires audioPath")
        if self.kind == CommandKind.RENDER_TRACK and not self.output_path:
            raise ValueError("RENDER_TRACK requires outputPath")
        return self

    @classmethod
    def ping(cls) -> Command:
        return cls(kind=CommandKind.PING)

    @classmethod
    def get_tracks(cls) -> Command:
        return cls(kind=CommandKind.GET_TRACKS)

    @classmethod
    def clear_track(cls, track_index: int) -> Command:
        return cls(kind=CommandKind.CLEAR_TRACK, track_index=track_index)

    @classmethod
    def load_audio(cls, track_index: int, audio_path: str) -> Command:
        return cls(kind=CommandKind.LOAD_AUDIO, track_index=track_index, audio_path=audio_path)

    @classmethod
    def render_track(cls, track_index: int, output_path: str) -> Command:
        return cls(kind=CommandKind.RENDER_TRACK, track_index=track_index, output_path=output_path)

    def to_json(self) -> str:
        """Serialize to the bridge's JSON shape, omitting unset fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class Response(BaseModel):
    """The bridge's answer to the most recent command."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    tracks: list[Track] | None = None
    output_path: str | None = Field(default=None, alias="outputPath")

    @classmethod
    def from_json(cls, text: str) -> Response:
        """Parse response.json content.

        Raises:
            ValueError: If the text is not a complete, valid response
        """
        return cls.model_validate_json(text)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
