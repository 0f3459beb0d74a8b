"""Exception hierarchy for video asset operations.

Job-level failures (probe, encode) are raised to the immediate caller, which
turns them into failed outcomes. Relocation failures abort the rename
request. Reclamation problems are reported as warnings and never abort a
delete.
"""

from typing import Optional


class VideoAssetError(Exception):
    """Base exception for video asset errors."""

    pass


class ProbeError(VideoAssetError):
    """Raised when the external prober fails or the file is unreadable."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EncodeError(VideoAssetError):
    """Raised when the engine fails to encode one resolution."""

    def __init__(
        self,
        message: str,
        resolution: Optional[int] = None,
        source_path: Optional[str] = None,
    ):
        super().__init__(message)
        self.resolution = resolution
        self.source_path = source_path


class RelocationError(VideoAssetError):
    """Raised when a file move fails during a rename.

    Moves already performed are not rolled back; they are listed in
    ``completed_moves`` as ``(old_path, new_path)`` pairs.
    """

    def __init__(
        self,
        message: str,
        completed_moves: Optional[list[tuple[str, str]]] = None,
    ):
        super().__init__(message)
        self.completed_moves = list(completed_moves or [])


class ReclamationWarning(Warning):
    """A deletion step that failed. Logged, never raised."""

    def __init__(self, step: str, target: str, cause: BaseException):
        super().__init__(f"Failed to remove {step} '{target}': {cause}")
        self.step = step
        self.target = target
        self.cause = cause


class VideoNotFoundError(VideoAssetError):
    """Raised when a video record is not found."""

    pass


class InvalidUploadError(VideoAssetError):
    """Raised when an uploaded file cannot be accepted."""

    pass
