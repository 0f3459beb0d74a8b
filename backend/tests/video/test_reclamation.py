"""Tests for best-effort deletion of a video."""

import os

from vidasset.core.exceptions import ReclamationWarning
from vidasset.core.storage import LocalFileStore
from vidasset.modules.video.reclamation import AssetReclaimer
from vidasset.modules.video.repository import VideoRepository


class BrokenStore(LocalFileStore):
    """Store whose removals always fail."""

    async def remove_file(self, path: str) -> None:
        raise PermissionError(f"Permission denied: '{path}'")

    async def remove_tree(self, path: str) -> None:
        raise PermissionError(f"Permission denied: '{path}'")


class BrokenRepository(VideoRepository):
    async def delete(self, video) -> None:
        raise RuntimeError("database is locked")


async def make_video(repo: VideoRepository, tmp_path, with_files: bool = True):
    video = await repo.create(owner=7, source=str(tmp_path / "1_clip.mp4"))
    if with_files:
        (tmp_path / "1_clip.mp4").write_bytes(b"video")
        derived = tmp_path / str(video.id) / "720p"
        derived.mkdir(parents=True)
        (derived / "2_clip.mp4").write_bytes(b"encoded")
        video.set_format_path(720, str(derived / "2_clip.mp4"))
    return video


async def test_delete_removes_everything(db_session, tmp_path) -> None:
    repo = VideoRepository(db_session)
    video = await make_video(repo, tmp_path)
    video_id = video.id

    report = await AssetReclaimer(repo).delete(video)

    assert report.completed
    assert report.primary_removed and report.derived_removed and report.record_removed
    assert report.warnings == []
    assert not os.path.exists(tmp_path / "1_clip.mp4")
    assert not os.path.exists(tmp_path / str(video_id))
    assert await repo.get_by_id(video_id) is None


async def test_missing_files_still_remove_record(db_session, tmp_path) -> None:
    repo = VideoRepository(db_session)
    video = await make_video(repo, tmp_path, with_files=False)
    video_id = video.id

    report = await AssetReclaimer(repo).delete(video)

    assert report.completed
    assert not report.primary_removed
    assert not report.derived_removed
    assert report.record_removed
    assert [w.step for w in report.warnings] == ["primary file", "derived directory"]
    assert await repo.get_by_id(video_id) is None


async def test_missing_primary_still_removes_derived_tree(db_session, tmp_path) -> None:
    repo = VideoRepository(db_session)
    video = await make_video(repo, tmp_path)
    os.remove(tmp_path / "1_clip.mp4")

    report = await AssetReclaimer(repo).delete(video)

    assert report.derived_removed
    assert report.record_removed
    assert not os.path.exists(tmp_path / str(video.id))


async def test_every_step_failing_is_reported(db_session, tmp_path) -> None:
    repo = BrokenRepository(db_session)
    video = await make_video(repo, tmp_path)

    report = await AssetReclaimer(repo, BrokenStore()).delete(video)

    assert report.completed
    assert not (report.primary_removed or report.derived_removed or report.record_removed)
    assert len(report.warnings) == 3
    assert all(isinstance(w, ReclamationWarning) for w in report.warnings)
    assert "database is locked" in str(report.warnings[-1])
    assert os.path.exists(tmp_path / "1_clip.mp4")
