"""Pydantic schemas for transcoding requests and outcomes."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from vidasset.modules.transcoding.models import Resolution, TranscodeStatus


class EncodeRequest(BaseModel):
    """Request schema for encoding a video at one or more resolutions."""

    resolutions: Optional[list[Resolution]] = Field(
        None,
        description="Target heights; the configured defaults are used when omitted",
    )

    @field_validator("resolutions")
    @classmethod
    def deduplicate(cls, v: Optional[list[Resolution]]) -> Optional[list[Resolution]]:
        if v is None:
            return v
        if not v:
            raise ValueError("At least one resolution is required")
        return list(dict.fromkeys(v))


class EncodeOutcome(BaseModel):
    """Terminal outcome of one resolution's encode job."""

    resolution: Resolution
    output_path: str
    success: bool
    error_message: Optional[str] = None

    @property
    def status(self) -> TranscodeStatus:
        return TranscodeStatus.COMPLETED if self.success else TranscodeStatus.FAILED


class EncodeSummary(BaseModel):
    """Aggregated outcomes of an encode request."""

    video_id: str
    outcomes: list[EncodeOutcome]

    @property
    def succeeded(self) -> list[Resolution]:
        return [o.resolution for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[Resolution]:
        return [o.resolution for o in self.outcomes if not o.success]
