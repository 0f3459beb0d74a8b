"""Rename of a video asset across its primary and derived files.

The primary file moves first. If that fails nothing has changed and the
rename is aborted. Each derived file is then renamed from its own current
path. The record is updated once, after every move succeeded.

A failed derived move after the primary already moved is not rolled back:
the files already moved stay where they are and the record keeps its old
paths. The error lists the completed moves so they can be reconciled.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from vidasset.core.exceptions import RelocationError
from vidasset.core.logging import log_error, log_info
from vidasset.core.storage import LocalFileStore
from vidasset.modules.video.models import Video
from vidasset.modules.video.paths import Clock, current_timestamp, generate_renamed_path
from vidasset.modules.video.repository import VideoRepository

logger = logging.getLogger(__name__)


@dataclass
class RelocationResult:
    """Paths after a successful rename."""

    source: str
    format: dict[str, str]
    moves: list[tuple[str, str]] = field(default_factory=list)


class AssetRelocator:
    """Moves a video's files to a new name and persists the new paths."""

    def __init__(
        self,
        repository: VideoRepository,
        store: Optional[LocalFileStore] = None,
        clock: Clock = current_timestamp,
    ):
        self.repository = repository
        self.store = store or LocalFileStore()
        self.clock = clock

    async def rename(self, video: Video, new_name: str) -> RelocationResult:
        """Rename the primary and every derived file of ``video``.

        Args:
            video: Video to rename
            new_name: New display name; only its last path segment is used

        Returns:
            RelocationResult with the new paths and the moves performed

        Raises:
            RelocationError: If any move fails
        """
        moves: list[tuple[str, str]] = []
        old_source = video.source
        new_source = generate_renamed_path(old_source, new_name, clock=self.clock)

        try:
            await self.store.move(old_source, new_source)
        except OSError as e:
            log_error(
                logger,
                "Failed to move primary asset",
                e,
                video_id=str(video.id),
                old_path=old_source,
                new_path=new_source,
            )
            raise RelocationError(
                f"Could not move primary asset '{old_source}': {e}",
                completed_moves=moves,
            ) from e
        moves.append((old_source, new_source))

        new_format: dict[str, str] = {}
        for resolution, old_path in (video.format or {}).items():
            new_path = generate_renamed_path(old_path, new_name, clock=self.clock)
            try:
                await self.store.move(old_path, new_path)
            except OSError as e:
                log_error(
                    logger,
                    "Failed to move derived asset, earlier moves are kept",
                    e,
                    video_id=str(video.id),
                    resolution=f"{resolution}p",
                    old_path=old_path,
                    new_path=new_path,
                    completed_moves=len(moves),
                )
                raise RelocationError(
                    f"Could not move {resolution}p asset '{old_path}': {e}",
                    completed_moves=moves,
                ) from e
            moves.append((old_path, new_path))
            new_format[resolution] = new_path

        await self.repository.update(video, source=new_source, format=new_format)

        log_info(
            logger,
            "Renamed video assets",
            video_id=str(video.id),
            source_name=os.path.basename(new_source),
            moved_files=len(moves),
        )
        return RelocationResult(source=new_source, format=new_format, moves=moves)
