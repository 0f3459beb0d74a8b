"""Video API router."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from vidasset.core.config import settings
from vidasset.core.database import get_db
from vidasset.core.exceptions import InvalidUploadError, RelocationError, VideoNotFoundError
from vidasset.core.logging import log_error
from vidasset.modules.transcoding.schemas import EncodeRequest, EncodeSummary
from vidasset.modules.transcoding.tasks import dispatch_encode
from vidasset.modules.video.schemas import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    ReclamationResponse,
    VideoCreate,
    VideoFilter,
    VideoListResponse,
    VideoRename,
    VideoResponse,
)
from vidasset.modules.video.service import VideoService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


def get_video_service(db: AsyncSession = Depends(get_db)) -> VideoService:
    return VideoService(db)


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    name: str = Form(...),
    owner: int = Form(...),
    source: UploadFile = File(...),
    service: VideoService = Depends(get_video_service),
):
    """Upload a video file and queue its encodes."""
    try:
        fields = VideoCreate(name=name, owner=owner)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors(include_url=False, include_context=False),
        )

    try:
        video = await service.create_video(
            owner=fields.owner,
            name=fields.name,
            upload_filename=source.filename or "",
            stream=source.file,
        )
    except InvalidUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # The worker must see the record
    await service.session.commit()

    if settings.ENCODE_ON_UPLOAD and settings.TRANSCODE_RESOLUTIONS:
        # Not fatal: the encode can still be requested via POST /{id}/encode
        try:
            dispatch_encode(video.id, settings.TRANSCODE_RESOLUTIONS)
        except Exception as e:
            log_error(logger, "Failed to queue encode", e, video_id=str(video.id))

    return video


@router.get("", response_model=VideoListResponse)
async def list_videos(
    name: Optional[str] = Query(None),
    owner: Optional[int] = Query(None),
    duration: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    service: VideoService = Depends(get_video_service),
):
    """List videos filtered by name, owner and minimum duration."""
    filters = VideoFilter(
        name=name, owner=owner, duration=duration, page=page, per_page=per_page
    )
    videos, total = await service.list_videos(filters)
    return VideoListResponse(
        items=[VideoResponse.model_validate(v) for v in videos],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{owner}", response_model=VideoListResponse)
async def list_user_videos(
    owner: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    service: VideoService = Depends(get_video_service),
):
    """List one user's videos."""
    videos, total = await service.get_videos_by_owner(owner, page=page, per_page=per_page)
    return VideoListResponse(
        items=[VideoResponse.model_validate(v) for v in videos],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: uuid.UUID,
    service: VideoService = Depends(get_video_service),
):
    """Get video by ID."""
    try:
        return await service.get_video(video_id)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{video_id}", response_model=VideoResponse)
async def rename_video(
    video_id: uuid.UUID,
    data: VideoRename,
    service: VideoService = Depends(get_video_service),
):
    """Rename a video and every derived file."""
    try:
        return await service.rename_video(video_id, data.name)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RelocationError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(e),
                "completed_moves": [list(move) for move in e.completed_moves],
            },
        )


@router.post("/{video_id}/encode", response_model=EncodeSummary)
async def encode_video(
    video_id: uuid.UUID,
    data: EncodeRequest,
    service: VideoService = Depends(get_video_service),
):
    """Encode a video now and return per-resolution outcomes."""
    try:
        outcomes = await service.encode_video(video_id, data.resolutions)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return EncodeSummary(video_id=str(video_id), outcomes=outcomes)


@router.delete("/{video_id}", response_model=ReclamationResponse)
async def delete_video(
    video_id: uuid.UUID,
    service: VideoService = Depends(get_video_service),
):
    """Delete a video, its files and its derived assets."""
    try:
        report = await service.delete_video(video_id)
    except VideoNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return ReclamationResponse(
        video_id=video_id,
        completed=report.completed,
        primary_removed=report.primary_removed,
        derived_removed=report.derived_removed,
        record_removed=report.record_removed,
        warnings=[str(w) for w in report.warnings],
    )
