"""Filesystem path layout for primary and derived video assets.

Pure string transforms: nothing here touches the filesystem. Layout::

    <folder>/<ts>_<name>.<ext>                  primary asset
    <folder>/<video id>/<resolution>p/          derived folder
    <folder>/<video id>/<resolution>p/<ts>_<name>.<ext>

``ts`` is a millisecond timestamp that only serves to keep names apart.
Two calls within the same millisecond with the same name produce the same
path; callers accept that risk.
"""

import time
import uuid
from typing import Callable, Union

from vidasset.modules.transcoding.models import Resolution

# Millisecond clock
Clock = Callable[[], int]


def current_timestamp() -> int:
    """Wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def _last_segment(path: str) -> str:
    return path.rstrip("/").rpartition("/")[2]


def _directory(path: str) -> str:
    """Everything before the last ``/``; ``.`` for a bare filename."""
    head, sep, _ = path.rpartition("/")
    if not sep:
        return "."
    return head if head else "/"


def _join(directory: str, name: str) -> str:
    if not directory:
        return name
    if directory == "/":
        return f"/{name}"
    return f"{directory.rstrip('/')}/{name}"


def file_extension(filename: str) -> str:
    """Text after the last ``.`` of the final path segment.

    A name without ``.`` yields ``""`` so the generated path ends in ``.``;
    this is the long-standing behavior and callers may rely on it.
    """
    name = _last_segment(filename)
    _, sep, ext = name.rpartition(".")
    return ext if sep else ""


def generate_primary_path(
    folder: str,
    declared_name: str,
    original_filename: str,
    clock: Clock = current_timestamp,
) -> str:
    """Path for a freshly uploaded primary asset.

    The extension comes from the uploaded file's own name, not from the
    declared display name, so the true container format is preserved.

    Args:
        folder: Storage folder for primary assets
        declared_name: User supplied display name
        original_filename: Name of the uploaded file
        clock: Millisecond clock

    Returns:
        ``<folder>/<ts>_<declaredName>.<ext>``
    """
    name = _last_segment(declared_name)
    return _join(folder, f"{clock()}_{name}.{file_extension(original_filename)}")


def get_source_directory(source: str) -> str:
    """Directory holding the primary asset."""
    return _directory(source)


def generate_derived_root(source: str, video_id: Union[uuid.UUID, str]) -> str:
    """``<sourceDir>/<id>/``, the tree holding every derived asset of a video."""
    return _join(get_source_directory(source), f"{video_id}") + "/"


def generate_derived_folder(
    source: str,
    video_id: Union[uuid.UUID, str],
    resolution: Union[Resolution, int],
) -> str:
    """``<sourceDir>/<id>/<resolution>p/`` for one resolution."""
    return f"{generate_derived_root(source, video_id)}{int(resolution)}p/"


def generate_derived_path(
    folder: str,
    file_name: str,
    clock: Clock = current_timestamp,
) -> str:
    """``<folder><ts>_<fileName>``; ``folder`` carries its trailing ``/``."""
    return f"{folder}{clock()}_{file_name}"


def generate_renamed_path(
    old_path: str,
    new_base_name: str,
    clock: Clock = current_timestamp,
) -> str:
    """Path for ``old_path`` after a rename.

    Keeps the directory and extension of ``old_path`` and substitutes a fresh
    timestamp and the last segment of ``new_base_name``.
    """
    name = _last_segment(new_base_name)
    return _join(_directory(old_path), f"{clock()}_{name}.{file_extension(old_path)}")


def get_video_name(source: str) -> str:
    """Display part of a stored filename: everything after the first ``_``.

    ``/data/42_clip.mp4`` gives ``clip.mp4``.
    """
    _, _, name = _last_segment(source).partition("_")
    return name
