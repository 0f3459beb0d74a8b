"""Video model.

A Video joins one primary media file (``source``) with the derived files
produced per resolution (``format``). ``id`` is the stable key shared by the
record and the derived-asset directory ``<sourceDir>/<id>/``.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import JSON, DateTime, Float, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidasset.core.database import Base
from vidasset.modules.transcoding.models import Resolution


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Video(Base):
    """Uploaded video asset and its derived per-resolution files."""

    __tablename__ = "videos"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Primary asset path, rewritten only by renames
    source: Mapped[str] = mapped_column(String(1024), nullable=False)
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # in seconds

    # Resolution (as decimal string) -> derived file path
    format: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def format_paths(self) -> dict[Resolution, str]:
        """Derived paths keyed by Resolution."""
        return {Resolution(int(key)): path for key, path in (self.format or {}).items()}

    def get_format_path(self, resolution: Union[Resolution, int]) -> Optional[str]:
        return (self.format or {}).get(str(int(resolution)))

    def set_format_path(self, resolution: Union[Resolution, int], path: str) -> None:
        """Record the derived path for a resolution.

        Reassigns the whole mapping so the JSON column is flagged dirty.
        """
        self.format = {**(self.format or {}), str(int(resolution)): path}

    def __repr__(self) -> str:
        return f"<Video(id={self.id}, owner={self.owner}, source={self.source})>"
