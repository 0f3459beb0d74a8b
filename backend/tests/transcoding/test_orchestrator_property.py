"""Property-based tests for encode job orchestration.

Jobs for one source are independent: each ends in its own outcome and a
failing, raising or slow job never changes the result of another.
"""

import asyncio

import pytest
from hypothesis import given, settings, strategies as st

from vidasset.core.exceptions import EncodeError
from vidasset.modules.transcoding.ffmpeg import TranscodeOutput
from vidasset.modules.transcoding.models import SUPPORTED_RESOLUTIONS, Resolution
from vidasset.modules.transcoding.service import EncodeJob, TranscodingOrchestrator


class ScriptedTranscoder:
    """Transcoder double whose behaviour is chosen per resolution."""

    def __init__(
        self,
        fail: frozenset = frozenset(),
        crash: frozenset = frozenset(),
        hang: frozenset = frozenset(),
        delay: float = 0,
    ):
        self.fail = fail
        self.crash = crash
        self.hang = hang
        self.delay = delay
        self.running = 0
        self.peak = 0
        self.started: list[Resolution] = []

    async def encode(self, source_path, output_path, resolution, progress=None, duration=None):
        self.started.append(resolution)
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            if progress is not None:
                progress(50)
            if resolution in self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
            if resolution in self.fail:
                raise EncodeError("Conversion failed!", resolution=int(resolution), source_path=source_path)
            if resolution in self.crash:
                raise RuntimeError("engine wrapper bug")
            if progress is not None:
                progress(100)
            return TranscodeOutput(resolution=resolution, output_path=output_path, file_size=1)
        finally:
            self.running -= 1


def jobs_for(resolutions) -> list[EncodeJob]:
    return [EncodeJob(resolution=r, output_path=f"/data/abc/{int(r)}p/1_clip.mp4") for r in resolutions]


resolution_sets = st.lists(
    st.sampled_from(SUPPORTED_RESOLUTIONS), min_size=1, max_size=len(SUPPORTED_RESOLUTIONS), unique=True
)


class TestFailureIsolation:
    """One outcome per job regardless of how other jobs end."""

    @given(resolutions=resolution_sets, data=st.data())
    @settings(max_examples=50, deadline=None)
    def test_outcome_per_job_matches_its_own_result(self, resolutions, data) -> None:
        failing = frozenset(data.draw(st.sets(st.sampled_from(resolutions))))
        transcoder = ScriptedTranscoder(fail=failing)
        orchestrator = TranscodingOrchestrator(transcoder=transcoder)

        outcomes = asyncio.run(orchestrator.encode_all("/data/1_clip.mp4", jobs_for(resolutions)))

        assert [o.resolution for o in outcomes] == resolutions
        for outcome in outcomes:
            assert outcome.success == (outcome.resolution not in failing)
            if outcome.success:
                assert outcome.error_message is None
            else:
                assert outcome.error_message

    async def test_unexpected_exception_becomes_failed_outcome(self) -> None:
        transcoder = ScriptedTranscoder(crash=frozenset({Resolution.RES_480P}))
        orchestrator = TranscodingOrchestrator(transcoder=transcoder)

        outcomes = await orchestrator.encode_all(
            "/data/1_clip.mp4", jobs_for([Resolution.RES_720P, Resolution.RES_480P])
        )

        by_res = {o.resolution: o for o in outcomes}
        assert by_res[Resolution.RES_720P].success
        assert not by_res[Resolution.RES_480P].success
        assert "engine wrapper bug" in by_res[Resolution.RES_480P].error_message

    async def test_timeout_fails_only_the_slow_job(self) -> None:
        transcoder = ScriptedTranscoder(hang=frozenset({Resolution.RES_720P}))
        orchestrator = TranscodingOrchestrator(transcoder=transcoder, timeout=0.2)

        outcomes = await orchestrator.encode_all(
            "/data/1_clip.mp4", jobs_for([Resolution.RES_720P, Resolution.RES_480P])
        )

        by_res = {o.resolution: o for o in outcomes}
        assert not by_res[Resolution.RES_720P].success
        assert "timed out" in by_res[Resolution.RES_720P].error_message
        assert by_res[Resolution.RES_480P].success

    async def test_empty_job_list(self) -> None:
        orchestrator = TranscodingOrchestrator(transcoder=ScriptedTranscoder())
        assert await orchestrator.encode_all("/data/1_clip.mp4", []) == []


class TestScheduling:
    """Concurrency and path validation."""

    async def test_jobs_run_concurrently(self) -> None:
        transcoder = ScriptedTranscoder(delay=0.05)
        orchestrator = TranscodingOrchestrator(transcoder=transcoder)

        await orchestrator.encode_all("/data/1_clip.mp4", jobs_for(SUPPORTED_RESOLUTIONS[:3]))

        assert transcoder.peak == 3

    @pytest.mark.parametrize("limit", [1, 2])
    async def test_concurrency_limit_holds(self, limit: int) -> None:
        transcoder = ScriptedTranscoder(delay=0.02)
        orchestrator = TranscodingOrchestrator(transcoder=transcoder, max_concurrent_jobs=limit)

        outcomes = await orchestrator.encode_all("/data/1_clip.mp4", jobs_for(SUPPORTED_RESOLUTIONS))

        assert transcoder.peak == limit
        assert all(o.success for o in outcomes)

    async def test_duplicate_output_paths_rejected(self) -> None:
        transcoder = ScriptedTranscoder()
        orchestrator = TranscodingOrchestrator(transcoder=transcoder)
        jobs = [
            EncodeJob(resolution=Resolution.RES_720P, output_path="/data/out.mp4"),
            EncodeJob(resolution=Resolution.RES_480P, output_path="/data/out.mp4"),
        ]

        with pytest.raises(ValueError):
            await orchestrator.encode_all("/data/1_clip.mp4", jobs)

        assert transcoder.started == []


class TestProgress:
    async def test_progress_is_tagged_with_resolution(self) -> None:
        received: list[tuple[Resolution, int]] = []
        orchestrator = TranscodingOrchestrator(transcoder=ScriptedTranscoder())

        await orchestrator.encode_all(
            "/data/1_clip.mp4",
            jobs_for([Resolution.RES_720P, Resolution.RES_480P]),
            progress=lambda resolution, percent: received.append((resolution, percent)),
        )

        assert sorted(received) == sorted(
            [
                (Resolution.RES_720P, 50),
                (Resolution.RES_720P, 100),
                (Resolution.RES_480P, 50),
                (Resolution.RES_480P, 100),
            ]
        )

    async def test_no_progress_sink(self) -> None:
        orchestrator = TranscodingOrchestrator(transcoder=ScriptedTranscoder())
        outcomes = await orchestrator.encode_all("/data/1_clip.mp4", jobs_for([Resolution.RES_360P]))
        assert outcomes[0].success
