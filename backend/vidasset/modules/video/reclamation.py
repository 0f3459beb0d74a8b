"""Best-effort deletion of a video asset.

Three independent steps: the primary file, the derived-asset tree
``<sourceDir>/<id>/`` and the record. A step that fails is logged and
reported; it never stops the remaining steps, so a record whose files are
already gone is still removed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from vidasset.core.exceptions import ReclamationWarning
from vidasset.core.logging import log_info, log_warning
from vidasset.core.storage import LocalFileStore
from vidasset.modules.video.models import Video
from vidasset.modules.video.paths import generate_derived_root
from vidasset.modules.video.repository import VideoRepository

logger = logging.getLogger(__name__)


@dataclass
class ReclamationReport:
    """Per-step result of a delete. ``completed`` is always True."""

    video_id: str
    primary_removed: bool = False
    derived_removed: bool = False
    record_removed: bool = False
    warnings: list[ReclamationWarning] = field(default_factory=list)
    completed: bool = True


class AssetReclaimer:
    """Deletes a video's files and record."""

    def __init__(
        self,
        repository: VideoRepository,
        store: Optional[LocalFileStore] = None,
    ):
        self.repository = repository
        self.store = store or LocalFileStore()

    async def delete(self, video: Video) -> ReclamationReport:
        video_id = str(video.id)
        source = video.source
        derived_root = generate_derived_root(source, video.id)
        report = ReclamationReport(video_id=video_id)

        report.primary_removed = await self._attempt(
            report, "primary file", source, self.store.remove_file, source
        )
        report.derived_removed = await self._attempt(
            report, "derived directory", derived_root, self.store.remove_tree, derived_root
        )
        report.record_removed = await self._attempt(
            report, "record", video_id, self.repository.delete, video
        )

        log_info(
            logger,
            "Deleted video",
            video_id=video_id,
            primary_removed=report.primary_removed,
            derived_removed=report.derived_removed,
            record_removed=report.record_removed,
        )
        return report

    async def _attempt(
        self,
        report: ReclamationReport,
        step: str,
        target: str,
        action: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> bool:
        try:
            await action(*args)
        except Exception as e:
            warning = ReclamationWarning(step, target, e)
            report.warnings.append(warning)
            log_warning(
                logger,
                str(warning),
                video_id=report.video_id,
                step=step,
                target=target,
                error_type=type(e).__name__,
            )
            return False
        return True
