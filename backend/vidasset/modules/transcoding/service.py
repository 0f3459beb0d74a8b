"""Orchestration of per-resolution encode jobs.

Each resolution is an independent job. Jobs for one source run concurrently
and every job ends in its own outcome; one job failing, raising or timing
out never cancels or alters the others.
"""

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Union

from vidasset.core.config import settings
from vidasset.core.exceptions import EncodeError
from vidasset.core.logging import log_error
from vidasset.modules.transcoding.ffmpeg import FFmpegTranscoder
from vidasset.modules.transcoding.models import Resolution
from vidasset.modules.transcoding.schemas import EncodeOutcome

logger = logging.getLogger(__name__)

# Receives (resolution, percent) for every job of a batch
JobProgressSink = Callable[[Resolution, int], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class EncodeJob:
    """One resolution to produce at a caller-supplied path."""

    resolution: Resolution
    output_path: str


class TranscodingOrchestrator:
    """Runs encode jobs and aggregates their outcomes."""

    def __init__(
        self,
        transcoder: Optional[FFmpegTranscoder] = None,
        max_concurrent_jobs: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize orchestrator.

        Args:
            transcoder: Engine wrapper used for every job
            max_concurrent_jobs: Upper bound on engine processes this
                orchestrator runs at once; unbounded when ``None`` or 0.
                Each VideoService builds its own orchestrator, so the
                bound applies per encode batch, not per process.
            timeout: Per-job limit in seconds; a job exceeding it is
                killed and reported as failed
        """
        self.transcoder = transcoder or FFmpegTranscoder()
        self.timeout = timeout
        self._semaphore = (
            asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs else None
        )

    @classmethod
    def from_settings(cls, transcoder: Optional[FFmpegTranscoder] = None) -> "TranscodingOrchestrator":
        return cls(
            transcoder=transcoder,
            max_concurrent_jobs=settings.TRANSCODE_MAX_CONCURRENT_JOBS,
            timeout=settings.TRANSCODE_TIMEOUT_SECONDS,
        )

    async def encode_all(
        self,
        source_path: str,
        jobs: Iterable[EncodeJob],
        progress: Optional[JobProgressSink] = None,
        duration: Optional[float] = None,
    ) -> list[EncodeOutcome]:
        """Encode ``source_path`` once per job.

        Args:
            source_path: Primary media file
            jobs: Resolutions and their output paths
            progress: Optional sink receiving (resolution, percent)
            duration: Known source duration, forwarded to each job

        Returns:
            One outcome per job, in job order

        Raises:
            ValueError: If two jobs share an output path
        """
        jobs = list(jobs)
        output_paths = [job.output_path for job in jobs]
        if len(set(output_paths)) != len(output_paths):
            raise ValueError("Each encode job needs a distinct output path")

        return list(
            await asyncio.gather(
                *(self._run_job(source_path, job, progress, duration) for job in jobs)
            )
        )

    async def _run_job(
        self,
        source_path: str,
        job: EncodeJob,
        progress: Optional[JobProgressSink],
        duration: Optional[float],
    ) -> EncodeOutcome:
        resolution = Resolution(job.resolution)
        context = {
            "resolution": resolution.label,
            "source_name": os.path.basename(source_path),
        }

        sink = None
        if progress is not None:
            def sink(percent: int):
                return progress(resolution, percent)

        limiter = self._semaphore or contextlib.nullcontext()
        async with limiter:
            try:
                encode = self.transcoder.encode(
                    source_path,
                    job.output_path,
                    resolution,
                    progress=sink,
                    duration=duration,
                )
                if self.timeout:
                    await asyncio.wait_for(encode, timeout=self.timeout)
                else:
                    await encode
            except EncodeError as e:
                # Already logged with the engine diagnostic by the transcoder
                return self._failed(job, str(e))
            except asyncio.TimeoutError:
                message = f"Encode timed out after {self.timeout:g} seconds"
                log_error(logger, message, **context)
                return self._failed(job, message)
            except Exception as e:
                log_error(logger, "Unexpected encode failure", e, **context)
                return self._failed(job, str(e) or type(e).__name__)

        return EncodeOutcome(
            resolution=resolution,
            output_path=job.output_path,
            success=True,
        )

    @staticmethod
    def _failed(job: EncodeJob, message: str) -> EncodeOutcome:
        return EncodeOutcome(
            resolution=job.resolution,
            output_path=job.output_path,
            success=False,
            error_message=message,
        )
