"""Celery tasks for transcoding.

Runs the encode set of a freshly uploaded video outside the request path.
"""

import asyncio
import logging
import uuid
from typing import Iterable, Optional

from celery import Task

from vidasset.core.celery_app import celery_app
from vidasset.core.database import async_session_maker, engine
from vidasset.core.exceptions import VideoNotFoundError
from vidasset.core.logging import log_error, set_correlation_id

logger = logging.getLogger(__name__)


class EncodeTask(Task):
    """Base task for encode jobs."""

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        video_id = args[0] if args else kwargs.get("video_id")
        log_error(logger, "Encode task failed", exc, video_id=video_id, task_id=task_id)


@celery_app.task(bind=True, base=EncodeTask, name="vidasset.encode_video")
def encode_video_task(
    self: EncodeTask,
    video_id: str,
    resolutions: Optional[list[int]] = None,
) -> dict:
    """Encode a video at each resolution.

    Args:
        video_id: UUID of the video
        resolutions: Target heights; configured defaults when omitted

    Returns:
        dict: Per-resolution outcomes
    """
    set_correlation_id(self.request.id or str(uuid.uuid4()))
    return asyncio.run(_encode_video_async(video_id, resolutions))


async def _encode_video_async(video_id: str, resolutions: Optional[list[int]]) -> dict:
    """Async implementation of the encode task."""
    # Imported here so the worker loads models only when a task runs
    from vidasset.modules.video.service import VideoService

    try:
        async with async_session_maker() as session:
            service = VideoService(session)
            try:
                outcomes = await service.encode_video(uuid.UUID(video_id), resolutions)
            except VideoNotFoundError:
                return {"success": False, "video_id": video_id, "error": "Video not found"}
            await session.commit()
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()

    return {
        "success": all(o.success for o in outcomes),
        "video_id": video_id,
        "outcomes": [o.model_dump(mode="json") for o in outcomes],
    }


def dispatch_encode(video_id: uuid.UUID, resolutions: Iterable[int]) -> str:
    """Queue an encode task.

    Returns:
        Celery task id
    """
    result = encode_video_task.delay(str(video_id), [int(r) for r in resolutions])
    return result.id
