"""
reaper_video_fx.bridge - File-based command/response channel to REAPER.

The REAPER side is a native extension that polls a shared temp directory;
this package writes its commands and waits for its responses.
"""

from __future__ import annotations

from reaper_video_fx.bridge.client import ReaperBridge
from reaper_video_fx.bridge.mailbox import FileMailbox, InMemoryMailbox, Mailbox
from reaper_video_fx.bridge.protocol import Command, CommandKind, Response, Track

__all__ = [
    "Command",
    "CommandKind",
    "FileMailbox",
    "InMemoryMailbox",
    "Mailbox",
    "ReaperBridge",
    "Response",
    "Track",
]
