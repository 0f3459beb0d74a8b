"""Pydantic schemas for video module."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from vidasset.modules.video.paths import get_video_name

MAX_NAME_LENGTH = 200
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be blank")
    if "/" in v or "\\" in v:
        raise ValueError("Name must not contain path separators")
    return v


class VideoCreate(BaseModel):
    """Fields accompanying an upload."""

    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    owner: int = Field(..., ge=1)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class VideoRename(BaseModel):
    """Request schema for renaming a video."""

    name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class VideoFilter(BaseModel):
    """Query filter and pagination for listing videos."""

    name: Optional[str] = Field(None, description="Substring of the stored source name")
    owner: Optional[int] = None
    duration: Optional[float] = Field(None, ge=0, description="Only videos longer than this")
    page: int = Field(1, ge=1)
    per_page: int = Field(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE)


class VideoResponse(BaseModel):
    """Response schema for a video."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner: int
    source: str
    duration: Optional[float] = None
    format: dict[int, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def name(self) -> str:
        return get_video_name(self.source)


class VideoListResponse(BaseModel):
    """Paginated list of videos."""

    items: list[VideoResponse]
    total: int
    page: int
    per_page: int


class ReclamationResponse(BaseModel):
    """Per-step result of a delete."""

    video_id: uuid.UUID
    completed: bool
    primary_removed: bool
    derived_removed: bool
    record_removed: bool
    warnings: list[str] = Field(default_factory=list)
