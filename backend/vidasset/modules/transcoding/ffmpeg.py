"""FFmpeg probing and transcoding.

Both the prober and the transcoder run the engine as an asyncio subprocess,
so a running probe or encode suspends only the task that awaits it. Binary
locations are passed in through an ``EngineLocator`` built once from
settings.
"""

import asyncio
import contextlib
import inspect
import json
import logging
import os
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from vidasset.core.config import Settings, settings
from vidasset.core.exceptions import EncodeError, ProbeError
from vidasset.core.logging import log_error, log_info, log_warning
from vidasset.core.storage import LocalFileStore
from vidasset.modules.transcoding.models import Resolution

logger = logging.getLogger(__name__)

# Receives integer percentages. May be a plain or an async callable.
ProgressSink = Callable[[int], Union[None, Awaitable[None]]]

DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
STDERR_TAIL_LINES = 20


@dataclass(frozen=True)
class EngineLocator:
    """Locations of the encoding engine and its companion prober."""

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "EngineLocator":
        return cls(ffmpeg_path=config.FFMPEG_PATH, ffprobe_path=config.FFPROBE_PATH)


@dataclass
class ProbeResult:
    """Facts extracted from a media file."""

    duration: Optional[float]
    raw_metadata: dict = field(default_factory=dict)
    width: Optional[int] = None
    height: Optional[int] = None
    format_name: Optional[str] = None

    @classmethod
    def from_metadata(cls, metadata: dict) -> "ProbeResult":
        fmt = metadata.get("format") or {}

        width = height = None
        for stream in metadata.get("streams") or []:
            if stream.get("codec_type") == "video":
                width = stream.get("width")
                height = stream.get("height")
                break

        return cls(
            duration=parse_duration(fmt.get("duration")),
            raw_metadata=metadata,
            width=width,
            height=height,
            format_name=fmt.get("format_name"),
        )


@dataclass
class TranscodeOutput:
    """Result of a successful encode."""

    resolution: Resolution
    output_path: str
    file_size: int


def parse_duration(value: Any) -> Optional[float]:
    """Convert an ffprobe duration field to seconds, ``None`` if unusable."""
    if value is None:
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if duration != duration or duration < 0:  # NaN or negative
        return None
    return duration


def parse_banner_duration(line: str) -> Optional[float]:
    """Parse ``Duration: HH:MM:SS.xx`` from an engine stderr line."""
    match = DURATION_PATTERN.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_progress_seconds(line: str) -> Optional[float]:
    """Parse the encoded position from a ``-progress`` key=value line.

    Both ``out_time_us`` and ``out_time_ms`` carry microseconds.
    """
    key, sep, value = line.partition("=")
    if not sep or key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None


def compute_percent(position: float, duration: Optional[float]) -> Optional[int]:
    """Integer percent of ``duration`` reached at ``position``, clamped to 0-100."""
    if not duration or duration <= 0:
        return None
    return max(0, min(100, int(position / duration * 100)))


class MetadataProber:
    """Extracts duration and container facts with ffprobe."""

    def __init__(self, engine: Optional[EngineLocator] = None):
        self.engine = engine or EngineLocator.from_settings()

    def build_probe_command(self, path: str) -> list[str]:
        return [
            self.engine.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            path,
        ]

    async def probe(self, path: str) -> ProbeResult:
        """Probe a media file.

        Args:
            path: Path to the media file

        Returns:
            ProbeResult with duration and raw metadata

        Raises:
            ProbeError: If ffprobe cannot run, exits non-zero, or emits
                unparsable output
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_probe_command(path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(f"Could not start ffprobe: {e}", path=path) from e

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="ignore").strip()
            raise ProbeError(
                f"ffprobe exited with code {process.returncode}: {message or 'no diagnostic'}",
                path=path,
            )

        try:
            metadata = json.loads(stdout.decode("utf-8", errors="ignore") or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError(f"ffprobe returned invalid JSON: {e}", path=path) from e

        if not isinstance(metadata, dict) or "format" not in metadata:
            raise ProbeError("ffprobe returned no format information", path=path)

        return ProbeResult.from_metadata(metadata)


class FFmpegTranscoder:
    """Encodes a source video to a single target height."""

    def __init__(
        self,
        engine: Optional[EngineLocator] = None,
        store: Optional[LocalFileStore] = None,
    ):
        self.engine = engine or EngineLocator.from_settings()
        self.store = store or LocalFileStore()

    def build_encode_command(
        self,
        source_path: str,
        output_path: str,
        resolution: Resolution,
    ) -> list[str]:
        """Build the ffmpeg command line.

        Only the height is fixed; ``-2`` lets the engine pick the even width
        that keeps the aspect ratio.
        """
        return [
            self.engine.ffmpeg_path,
            "-y",
            "-i", source_path,
            "-vf", f"scale=-2:{int(resolution)}",
            "-progress", "pipe:1",
            "-nostats",
            output_path,
        ]

    async def encode(
        self,
        source_path: str,
        output_path: str,
        resolution: Union[Resolution, int],
        progress: Optional[ProgressSink] = None,
        duration: Optional[float] = None,
    ) -> TranscodeOutput:
        """Encode ``source_path`` into ``output_path`` at ``resolution``.

        Progress percentages are pushed to ``progress`` as they are parsed.
        Sink failures are logged and ignored. On failure the partially
        written output is left in place.

        Args:
            source_path: Primary media file
            output_path: Derived file to write; its directory is created
            resolution: Target height
            progress: Optional sink receiving integer percentages
            duration: Known source duration in seconds, if any

        Returns:
            TranscodeOutput for the written file

        Raises:
            EncodeError: If the engine cannot start or reports an error
        """
        resolution = Resolution(resolution)
        context = {
            "resolution": resolution.label,
            "source_name": os.path.basename(source_path),
        }

        await self.store.ensure_directory(os.path.dirname(output_path) or ".")

        cmd = self.build_encode_command(source_path, output_path, resolution)
        log_info(logger, "Starting encode", output_path=output_path, **context)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log_error(logger, "Could not start ffmpeg", e, **context)
            raise EncodeError(
                f"Could not start ffmpeg: {e}",
                resolution=int(resolution),
                source_path=source_path,
            ) from e

        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        state = {"duration": duration, "percent": -1}

        async def emit(percent: int) -> None:
            if percent <= state["percent"]:
                return
            state["percent"] = percent
            logger.debug("Processing: %s%% done", percent, extra=context)
            if progress is None:
                return
            try:
                result = progress(percent)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log_warning(logger, "Progress sink failed", error=str(e), **context)

        async def read_progress() -> None:
            while True:
                line = await process.stdout.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="ignore").strip()
                if text == "progress=end":
                    await emit(100)
                    continue
                position = parse_progress_seconds(text)
                if position is None:
                    continue
                percent = compute_percent(position, state["duration"])
                if percent is not None:
                    await emit(percent)

        async def read_stderr() -> None:
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="ignore").rstrip()
                if state["duration"] is None:
                    state["duration"] = parse_banner_duration(text)
                if text:
                    stderr_tail.append(text)

        try:
            await asyncio.gather(read_progress(), read_stderr())
            await process.wait()
        finally:
            # Cancelled or failed mid-encode: do not leave the engine running
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            diagnostic = "\n".join(stderr_tail) or f"ffmpeg exited with code {process.returncode}"
            log_error(
                logger,
                "Encode failed",
                exit_code=process.returncode,
                diagnostic=diagnostic,
                **context,
            )
            raise EncodeError(
                diagnostic,
                resolution=int(resolution),
                source_path=source_path,
            )

        file_size = os.path.getsize(output_path) if os.path.exists(output_path) else 0
        log_info(logger, "Finished processing", output_path=output_path, file_size=file_size, **context)

        return TranscodeOutput(
            resolution=resolution,
            output_path=output_path,
            file_size=file_size,
        )
