"""Local filesystem storage for primary and derived video assets.

Every operation runs in a worker thread so callers suspend cooperatively
instead of blocking the event loop. Each call is treated as atomic; errors
from the underlying filesystem (``OSError`` and subclasses) propagate to the
caller, which decides whether they are fatal.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import BinaryIO

COPY_CHUNK_SIZE = 1024 * 1024


class LocalFileStore:
    """Filesystem operations on absolute or working-directory relative paths."""

    async def ensure_directory(self, path: str) -> None:
        """Create ``path`` and any missing parents. Idempotent."""
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)

    async def move(self, source: str, destination: str) -> None:
        """Move a file, falling back to copy-and-delete across devices."""
        await asyncio.to_thread(shutil.move, source, destination)

    async def remove_file(self, path: str) -> None:
        """Remove a single file. Raises FileNotFoundError if it is missing."""
        await asyncio.to_thread(os.remove, path)

    async def remove_tree(self, path: str) -> None:
        """Recursively remove a directory tree."""
        await asyncio.to_thread(shutil.rmtree, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def save_stream(self, fileobj: BinaryIO, path: str) -> int:
        """Write an uploaded byte stream to ``path``.

        Args:
            fileobj: Readable binary file object
            path: Destination file path

        Returns:
            Number of bytes written
        """
        return await asyncio.to_thread(self._copy_stream, fileobj, path)

    @staticmethod
    def _copy_stream(fileobj: BinaryIO, path: str) -> int:
        dest_path = Path(path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        with open(dest_path, "wb") as f:
            while True:
                chunk = fileobj.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                f.write(chunk)
                written += len(chunk)
        return written
