"""Video repository for database operations."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, func as sql_func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidasset.modules.video.models import Video


class VideoRepository:
    """Repository for Video CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self,
        owner: int,
        source: str,
        duration: Optional[float] = None,
        format: Optional[dict[str, str]] = None,
    ) -> Video:
        """Create a new video.

        Args:
            owner: Owning user id
            source: Path to the primary media file
            duration: Duration in seconds, if probed
            format: Initial derived paths, usually empty

        Returns:
            Video: Created video instance
        """
        video = Video(
            owner=owner,
            source=source,
            duration=duration,
            format=dict(format or {}),
        )

        self.session.add(video)
        await self.session.flush()
        return video

    async def get_by_id(self, video_id: uuid.UUID) -> Optional[Video]:
        result = await self.session.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    async def get_for_update(self, video_id: uuid.UUID) -> Optional[Video]:
        """Re-read a video from the database, locking its row.

        Overwrites any copy already in the session so changes committed by
        other sessions are visible. The lock is skipped on SQLite.
        """
        result = await self.session.execute(
            select(Video)
            .where(Video.id == video_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_owner(
        self,
        owner: int,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Video], int]:
        """Get one page of an owner's videos.

        Returns:
            tuple: (videos on the page, total matching videos)
        """
        query = select(Video).where(Video.owner == owner)
        return await self._paginate(query, page, per_page)

    async def search(
        self,
        name: Optional[str] = None,
        owner: Optional[int] = None,
        min_duration: Optional[float] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Video], int]:
        """Search videos.

        Args:
            name: Case-insensitive substring of the stored source path
            owner: Exact owner match
            min_duration: Only videos strictly longer than this
            page: 1-indexed page number
            per_page: Page size

        Returns:
            tuple: (videos on the page, total matching videos)
        """
        query = select(Video)
        if name:
            query = query.where(Video.source.ilike(f"%{name}%"))
        if owner:
            query = query.where(Video.owner == owner)
        if min_duration:
            query = query.where(Video.duration > min_duration)
        return await self._paginate(query, page, per_page)

    async def _paginate(
        self,
        query: Select,
        page: int,
        per_page: int,
    ) -> tuple[list[Video], int]:
        count_query = select(sql_func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            query.order_by(Video.created_at.desc(), Video.id)
            .limit(per_page)
            .offset(per_page * (page - 1))
        )
        return list(result.scalars().all()), total

    async def update(self, video: Video, **kwargs) -> Video:
        """Update video attributes in a single flush.

        Args:
            video: Video instance to update
            **kwargs: Attributes to update

        Returns:
            Video: Updated video instance
        """
        for key, value in kwargs.items():
            if hasattr(video, key):
                setattr(video, key, value)
        video.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return video

    async def delete(self, video: Video) -> None:
        await self.session.delete(video)
        await self.session.flush()
