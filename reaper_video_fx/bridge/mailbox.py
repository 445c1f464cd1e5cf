"""
reaper_video_fx.bridge.mailbox - Single-slot file mailbox to REAPER.

The bridge extension inside REAPER polls ``command.json`` in a shared temp
directory and answers by writing ``response.json``. Stale files are purged
before every command and the response is deleted as soon as it is parsed,
so at most one command/response pair exists at any time.

Only one command may be outstanding per directory; callers serialize
access (see ReaperBridge).
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Protocol

from reaper_video_fx.bridge.protocol import Command, Response
from reaper_video_fx.exceptions import BridgeTimeoutError, DirectoryError, WriteError
from reaper_video_fx.io import read_text, remove_quietly, write_text

logger = logging.getLogger(__name__)

COMM_DIR_NAME = "reaper-video-fx"
COMMAND_FILENAME = "command.json"
RESPONSE_FILENAME = "response.json"

POLL_INTERVAL = 0.1
RESPONSE_TIMEOUT = 60.0

TIMEOUT_MESSAGE = "REAPER did not respond (timeout)"


def default_comm_dir() -> Path:
    """Directory shared with the bridge extension."""
    return Path(tempfile.gettempdir()) / COMM_DIR_NAME


class Mailbox(Protocol):
    """Anything that can deliver one command and return its response."""

    async def send(self, command: Command) -> Response: ...


class FileMailbox:
    """Mailbox backed by command.json / response.json in a directory."""

    def __init__(self, comm_dir: Path | None = None) -> None:
        self.comm_dir = comm_dir or default_comm_dir()
        self.command_file = self.comm_dir / COMMAND_FILENAME
        self.response_file = self.comm_dir / RESPONSE_FILENAME

    def clear(self) -> None:
        """Remove any command/response left over from an earlier exchange."""
        remove_quietly(self.command_file, self.response_file)

    def _ensure_dir(self) -> None:
        try:
            self.comm_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryError(
                f"Cannot create communication directory {self.comm_dir}: {e}"
            ) from e

    def _write_command(self, command: Command) -> None:
        try:
            write_text(self.command_file, command.to_json())
        except OSError as e:
            raise WriteError(f"Cannot write command file: {e}") from e

    def _try_read_response(self) -> Response | None:
        if not self.response_file.exists():
            return None
        try:
            content = read_text(self.response_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Response file not readable yet: %s", e)
            return None
        try:
            response = Response.from_json(content)
        except ValueError:
            # partially written by REAPER; pydantic.ValidationError is a ValueError
            return None
        remove_quietly(self.response_file)
        return response

    async def send(self, command: Command) -> Response:
        """Deliver a command and wait for REAPER's response.

        Raises:
            DirectoryError: If the communication directory cannot be created
            WriteError: If the command file cannot be written
            BridgeTimeoutError: If no parseable response arrives in time
        """
        self._ensure_dir()
        self.clear()
        self._write_command(command)
        logger.debug("Sent %s to %s", command.kind.value, self.command_file)

        start = time.monotonic()
        while True:
            await asyncio.sleep(POLL_INTERVAL)

            response = self._try_read_response()
            if response is not None:
                logger.debug(
                    "Received response to %s: success=%s", command.kind.value, response.success
                )
                return response

            if time.monotonic() - start >= RESPONSE_TIMEOUT:
                self.clear()
                logger.warning(
                    "No response to %s after %.0fs", command.kind.value, RESPONSE_TIMEOUT
                )
                raise BridgeTimeoutError(TIMEOUT_MESSAGE)


class InMemoryMailbox:
    """Mailbox answered by a Python callable instead of REAPER.

    The handler returns a Response for each command, or None to behave like
    a REAPER instance that never answers.
    """

    def __init__(self, handler: Callable[[Command], Response | None]) -> None:
        self.handler = handler
        self.sent: list[Command] = []

    async def send(self, command: Command) -> Response:
        self.sent.append(command)
        await asyncio.sleep(0)
        response = self.handler(command)
        if response is None:
            raise BridgeTimeoutError(TIMEOUT_MESSAGE)
        return response
