"""Transcoding enumerations.

Resolutions are target vertical pixel heights; the engine computes the width
that preserves the source aspect ratio.
"""

from enum import Enum


class Resolution(int, Enum):
    """Supported derived-asset resolutions."""

    RES_1080P = 1080
    RES_720P = 720
    RES_480P = 480
    RES_360P = 360
    RES_240P = 240
    RES_144P = 144

    @property
    def label(self) -> str:
        """Folder-style label, e.g. ``720p``."""
        return f"{self.value}p"


# Highest first
SUPPORTED_RESOLUTIONS: tuple[Resolution, ...] = tuple(
    sorted(Resolution, key=lambda r: r.value, reverse=True)
)


class TranscodeStatus(str, Enum):
    """Terminal state of a single resolution's encode job."""

    COMPLETED = "completed"
    FAILED = "failed"
