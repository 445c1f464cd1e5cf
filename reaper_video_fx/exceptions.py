"""
reaper_video_fx.exceptions - Custom exception classes.

All reaper-video-fx exceptions inherit from ReaperVideoFxError. Messages are
short and meant to be shown to the user as-is.
"""


class ReaperVideoFxError(Exception):
    """Base exception for all reaper-video-fx errors."""

    pass


class BridgeError(ReaperVideoFxError):
    """Communication with the REAPER bridge failed."""

    pass


class DirectoryError(BridgeError):
    """Communication directory could not be created or accessed."""

    pass


class WriteError(BridgeError):
    """Command file could not be written."""

    pass


class BridgeTimeoutError(BridgeError):
    """REAPER did not answer within the response timeout."""

    pass


class RemoteFailure(BridgeError):
    """REAPER answered a command with success=false."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MediaToolError(ReaperVideoFxError):
    """FFmpeg invocation error."""

    pass


class ToolLaunchError(MediaToolError):
    """FFmpeg could not be started (not found or not executable)."""

    pass


class ToolExecutionError(MediaToolError):
    """FFmpeg ran but exited with a non-zero status."""

    def __init__(self, message: str, returncode: int | None = None):
        self.returncode = returncode
        super().__init__(message)


class PipelineBusyError(ReaperVideoFxError):
    """A video is already being processed."""

    pass


class ConfigError(ReaperVideoFxError):
    """Configuration loading or validation error."""

    pass


class ExtensionError(ReaperVideoFxError):
    """REAPER bridge extension lookup or installation error."""

    pass


class ValidationError(ReaperVideoFxError):
    """Input validation error."""

    pass


class DependencyError(ReaperVideoFxError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
