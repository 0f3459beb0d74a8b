"""Video service for business logic.

Ties the path layout, prober, encode orchestrator, rename and delete
components to the record store.
"""

import logging
import uuid
from typing import BinaryIO, Iterable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from vidasset.core.config import settings
from vidasset.core.exceptions import InvalidUploadError, ProbeError, VideoNotFoundError
from vidasset.core.logging import log_info, log_warning
from vidasset.core.storage import LocalFileStore
from vidasset.modules.transcoding.ffmpeg import EngineLocator, FFmpegTranscoder, MetadataProber
from vidasset.modules.transcoding.models import Resolution
from vidasset.modules.transcoding.schemas import EncodeOutcome
from vidasset.modules.transcoding.service import (
    EncodeJob,
    JobProgressSink,
    TranscodingOrchestrator,
)
from vidasset.modules.video.models import Video
from vidasset.modules.video.paths import (
    Clock,
    current_timestamp,
    generate_derived_folder,
    generate_derived_path,
    generate_primary_path,
    get_video_name,
)
from vidasset.modules.video.reclamation import AssetReclaimer, ReclamationReport
from vidasset.modules.video.relocation import AssetRelocator
from vidasset.modules.video.repository import VideoRepository
from vidasset.modules.video.schemas import VideoFilter

logger = logging.getLogger(__name__)


class VideoService:
    """Service for video asset operations."""

    def __init__(
        self,
        session: AsyncSession,
        store: Optional[LocalFileStore] = None,
        prober: Optional[MetadataProber] = None,
        orchestrator: Optional[TranscodingOrchestrator] = None,
        storage_path: Optional[str] = None,
        clock: Clock = current_timestamp,
    ):
        """Initialize service with database session.

        Collaborators default to the engine and storage configured in
        settings.
        """
        self.session = session
        self.video_repo = VideoRepository(session)
        self.store = store or LocalFileStore()
        engine = EngineLocator.from_settings()
        self.prober = prober or MetadataProber(engine)
        self.orchestrator = orchestrator or TranscodingOrchestrator.from_settings(
            FFmpegTranscoder(engine, self.store)
        )
        self.storage_path = storage_path or settings.VIDEO_STORAGE_PATH
        self.clock = clock
        self.relocator = AssetRelocator(self.video_repo, self.store, clock=clock)
        self.reclaimer = AssetReclaimer(self.video_repo, self.store)

    async def create_video(
        self,
        owner: int,
        name: str,
        upload_filename: str,
        stream: BinaryIO,
    ) -> Video:
        """Store an uploaded file and create its record.

        Probing failures are not fatal: the video is created without a
        duration.

        Args:
            owner: Owning user id
            name: Declared display name
            upload_filename: Name of the uploaded file, supplies the extension
            stream: Uploaded bytes

        Returns:
            Video: Created video instance
        """
        if not upload_filename:
            raise InvalidUploadError("Uploaded file has no name")

        source = generate_primary_path(
            self.storage_path, name, upload_filename, clock=self.clock
        )
        size = await self.store.save_stream(stream, source)
        if size == 0:
            await self.store.remove_file(source)
            raise InvalidUploadError("Uploaded file is empty")

        duration = await self.probe_duration(source)
        video = await self.video_repo.create(owner=owner, source=source, duration=duration)

        log_info(
            logger,
            "Created video",
            video_id=str(video.id),
            owner=owner,
            source_path=source,
            file_size=size,
        )
        return video

    async def probe_duration(self, path: str) -> Optional[float]:
        """Duration of ``path`` in seconds, ``None`` if probing fails."""
        try:
            result = await self.prober.probe(path)
        except ProbeError as e:
            log_warning(logger, "Probe failed, continuing without duration", source_path=path, error=str(e))
            return None
        return result.duration

    async def get_video(self, video_id: uuid.UUID) -> Video:
        """Get a video by ID.

        Raises:
            VideoNotFoundError: If no record exists
        """
        video = await self.video_repo.get_by_id(video_id)
        if not video:
            raise VideoNotFoundError(f"Video {video_id} not found")
        return video

    async def list_videos(self, filters: VideoFilter) -> tuple[list[Video], int]:
        return await self.video_repo.search(
            name=filters.name,
            owner=filters.owner,
            min_duration=filters.duration,
            page=filters.page,
            per_page=filters.per_page,
        )

    async def get_videos_by_owner(
        self, owner: int, page: int = 1, per_page: int = 20
    ) -> tuple[list[Video], int]:
        return await self.video_repo.get_by_owner(owner, page=page, per_page=per_page)

    def plan_encode_jobs(
        self,
        video: Video,
        resolutions: Iterable[Union[Resolution, int]],
    ) -> list[EncodeJob]:
        """Output path for each requested resolution.

        Every resolution gets its own folder, so concurrent jobs never share
        an output path.
        """
        file_name = get_video_name(video.source)
        jobs = []
        for resolution in dict.fromkeys(Resolution(r) for r in resolutions):
            folder = generate_derived_folder(video.source, video.id, resolution)
            jobs.append(
                EncodeJob(
                    resolution=resolution,
                    output_path=generate_derived_path(folder, file_name, clock=self.clock),
                )
            )
        return jobs

    async def encode_video(
        self,
        video_id: uuid.UUID,
        resolutions: Optional[Iterable[Union[Resolution, int]]] = None,
        progress: Optional[JobProgressSink] = None,
    ) -> list[EncodeOutcome]:
        """Encode a video at each resolution and record successful outputs.

        The record is re-read once the engine is done, since another encode
        or a rename may have committed meanwhile. Only this run's outputs are
        merged into the current map. Outputs of a source that was renamed or
        deleted during the encode are discarded and reported as failed.

        Args:
            video_id: Video UUID
            resolutions: Target heights, defaults to TRANSCODE_RESOLUTIONS
            progress: Optional sink receiving (resolution, percent)

        Returns:
            One outcome per resolution
        """
        video = await self.get_video(video_id)
        if resolutions is None:
            resolutions = settings.TRANSCODE_RESOLUTIONS

        encoded_source = video.source
        jobs = self.plan_encode_jobs(video, resolutions)
        outcomes = await self.orchestrator.encode_all(
            encoded_source, jobs, progress=progress, duration=video.duration
        )

        if any(o.success for o in outcomes):
            outcomes = await self._record_outcomes(video_id, encoded_source, outcomes)

        log_info(
            logger,
            "Encode finished",
            video_id=str(video_id),
            succeeded=[int(o.resolution) for o in outcomes if o.success],
            failed=[int(o.resolution) for o in outcomes if not o.success],
        )
        return outcomes

    async def _record_outcomes(
        self,
        video_id: uuid.UUID,
        encoded_source: str,
        outcomes: list[EncodeOutcome],
    ) -> list[EncodeOutcome]:
        current = await self.video_repo.get_for_update(video_id)

        if current is None or current.source != encoded_source:
            reason = (
                "Video was deleted during encode"
                if current is None
                else "Video was renamed during encode"
            )
            log_warning(
                logger,
                f"{reason}, discarding outputs",
                video_id=str(video_id),
                source_path=encoded_source,
            )
            for outcome in outcomes:
                if outcome.success:
                    await self._discard(video_id, outcome.output_path)
            return [
                o.model_copy(update={"success": False, "error_message": reason})
                if o.success
                else o
                for o in outcomes
            ]

        replaced = []
        for outcome in outcomes:
            if not outcome.success:
                continue
            previous = current.get_format_path(outcome.resolution)
            if previous and previous != outcome.output_path:
                replaced.append(previous)
            current.set_format_path(outcome.resolution, outcome.output_path)
        await self.video_repo.update(current, format=current.format)

        for path in replaced:
            await self._discard(video_id, path)
        return outcomes

    async def _discard(self, video_id: uuid.UUID, path: str) -> None:
        """Remove a derived file no record points at. Best effort."""
        try:
            await self.store.remove_file(path)
        except OSError as e:
            log_warning(
                logger,
                "Could not remove unreferenced derived file",
                video_id=str(video_id),
                source_path=path,
                error=str(e),
            )
            return
        log_info(logger, "Removed unreferenced derived file", video_id=str(video_id), source_path=path)

    async def rename_video(self, video_id: uuid.UUID, new_name: str) -> Video:
        """Rename a video's files and record.

        Raises:
            VideoNotFoundError: If no record exists
            RelocationError: If a file move fails
        """
        video = await self.get_video(video_id)
        await self.relocator.rename(video, new_name)
        return video

    async def delete_video(self, video_id: uuid.UUID) -> ReclamationReport:
        """Delete a video's files and record, best effort.

        Raises:
            VideoNotFoundError: If no record exists
        """
        video = await self.get_video(video_id)
        return await self.reclaimer.delete(video)
