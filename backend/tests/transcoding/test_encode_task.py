"""Tests for the background encode task."""

import os
import uuid

import pytest

from vidasset.modules.transcoding import tasks
from vidasset.modules.transcoding.ffmpeg import TranscodeOutput
from vidasset.modules.transcoding.service import TranscodingOrchestrator
from vidasset.modules.video import service as video_service
from vidasset.modules.video.repository import VideoRepository


class TouchTranscoder:
    async def encode(self, source_path, output_path, resolution, progress=None, duration=None):
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        open(output_path, "wb").close()
        return TranscodeOutput(resolution=resolution, output_path=output_path, file_size=0)


@pytest.fixture
def worker_session(monkeypatch, session_maker):
    """Point the task at the test database and a stub engine."""

    class WorkerVideoService(video_service.VideoService):
        def __init__(self, session):
            super().__init__(
                session,
                orchestrator=TranscodingOrchestrator(transcoder=TouchTranscoder()),
            )

    monkeypatch.setattr(tasks, "async_session_maker", session_maker)
    monkeypatch.setattr(video_service, "VideoService", WorkerVideoService)
    return session_maker


async def test_encode_task_records_outputs(worker_session, tmp_path) -> None:
    async with worker_session() as session:
        video = await VideoRepository(session).create(owner=1, source=str(tmp_path / "1_clip.mp4"))
        await session.commit()

    result = await tasks._encode_video_async(str(video.id), [720, 480])

    assert result["success"] is True
    assert [o["resolution"] for o in result["outcomes"]] == [720, 480]

    async with worker_session() as session:
        stored = await VideoRepository(session).get_by_id(video.id)
        assert set(stored.format) == {"720", "480"}


async def test_encode_task_unknown_video(worker_session) -> None:
    result = await tasks._encode_video_async(str(uuid.uuid4()), [720])

    assert result["success"] is False
    assert result["error"] == "Video not found"


def test_dispatch_encode_queues_task(monkeypatch) -> None:
    queued = []

    class Result:
        id = "task-1"

    class QueuedTask:
        def delay(self, *args):
            queued.append(args)
            return Result()

    monkeypatch.setattr(tasks, "encode_video_task", QueuedTask())
    video_id = uuid.uuid4()

    assert tasks.dispatch_encode(video_id, [720]) == "task-1"
    assert queued == [(str(video_id), [720])]
