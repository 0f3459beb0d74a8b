"""Shared fixtures.

Environment is pinned before any vidasset import so the module-level
settings, engine and Celery app never reach real infrastructure.
"""

import asyncio
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VIDEO_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "vidasset-tests"))
os.environ.setdefault("ENCODE_ON_UPLOAD", "false")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from vidasset.core.database import Base
from vidasset.modules.video import models  # noqa: F401


class FakeProcess:
    """Stand-in for an asyncio subprocess.

    ``stdout``/``stderr`` are real StreamReaders. A process created with
    ``hang=True`` never reaches EOF until killed.
    """

    def __init__(
        self,
        returncode: int = 0,
        stdout: bytes = b"",
        stderr: bytes = b"",
        hang: bool = False,
    ):
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stderr.feed_data(stderr)
        if not hang:
            self.stdout.feed_eof()
            self.stderr.feed_eof()
        self._exit_code = returncode
        self._done = asyncio.Event()
        if not hang:
            self._done.set()
        self.returncode: Optional[int] = None
        self.killed = False

    async def wait(self) -> int:
        await self._done.wait()
        if self.returncode is None:
            self.returncode = self._exit_code
        return self.returncode

    async def communicate(self) -> tuple[bytes, bytes]:
        out = await self.stdout.read()
        err = await self.stderr.read()
        await self.wait()
        return out, err

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._done.set()


def counter_clock(start: int = 1_700_000_000_000):
    """Deterministic, strictly increasing millisecond clock."""
    state = {"now": start}

    def clock() -> int:
        state["now"] += 1
        return state["now"]

    return clock


@pytest.fixture
def clock():
    return counter_clock()


@pytest.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_process():
    """The FakeProcess class, for tests that script engine runs."""
    return FakeProcess
