"""
reaper_video_fx.bridge.client - High-level REAPER bridge operations.

Wraps a Mailbox with the command vocabulary of the bridge extension and
turns unsuccessful responses into RemoteFailure where the caller cannot
continue without the result.
"""

from __future__ import annotations

import asyncio
import logging

from reaper_video_fx.bridge.mailbox import FileMailbox, Mailbox
from reaper_video_fx.bridge.protocol import Command, Response, Track
from reaper_video_fx.exceptions import BridgeError, RemoteFailure

logger = logging.getLogger(__name__)


class ReaperBridge:
    """Client for the REAPER bridge extension.

    Commands issued through one bridge are serialized, so there is never
    more than one outstanding command in its mailbox.
    """

    def __init__(self, mailbox: Mailbox | None = None) -> None:
        self.mailbox = mailbox if mailbox is not None else FileMailbox()
        self._lock = asyncio.Lock()

    async def send(self, command: Command) -> Response:
        async with self._lock:
            return await self.mailbox.send(command)

    async def ping(self) -> bool:
        """Return True if REAPER and the bridge extension are answering."""
        try:
            response = await self.send(Command.ping())
        except BridgeError as e:
            logger.debug("Ping failed: %s", e)
            return False
        return response.success

    async def list_tracks(self) -> list[Track]:
        """Get the tracks of the current REAPER project.

        Raises:
            RemoteFailure: If REAPER could not list its tracks
            BridgeTimeoutError: If REAPER does not answer
        """
        response = await self.send(Command.get_tracks())
        if not response.success:
            raise RemoteFailure(response.message or "Could not get track list")
        return list(response.tracks or [])

    async def clear_track(self, track_index: int) -> Response:
        """Remove all media items from a track."""
        response = await self.send(Command.clear_track(track_index))
        if not response.success:
            logger.warning(
                "Clearing track %d failed: %s", track_index, response.message or "no message"
            )
        return response

    async def load_audio(self, track_index: int, audio_path: str) -> Response:
        """Insert an audio file as a media item on a track.

        Raises:
            RemoteFailure: If REAPER could not load the file
        """
        response = await self.send(Command.load_audio(track_index, audio_path))
        if not response.success:
            raise RemoteFailure(response.message or "Could not load audio")
        return response

    async def render_track(self, track_index: int, output_path: str) -> Response:
        """Render a single track (others muted) to a WAV file.

        Raises:
            RemoteFailure: If the render failed
        """
        response = await self.send(Command.render_track(track_index, output_path))
        if not response.success:
            raise RemoteFailure(response.message or "Render failed")
        return response
