from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoJobStatus(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_pending(self) -> bool:
        return self in (VideoJobStatus.SUBMITTED, VideoJobStatus.POLLING)


class VideoJob(BaseModel):
    recipe_key: str
    title: str
    status: VideoJobStatus = VideoJobStatus.SUBMITTED
    operation_name: Optional[str] = None
    video_data_uri: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class VideoJobRead(BaseModel):
    """VideoJob without the (large) encoded payload, for status polling."""

    recipe_key: str
    title: str
    status: VideoJobStatus
    operation_name: Optional[str] = None
    has_video: bool = False
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_job(cls, job: VideoJob) -> "VideoJobRead":
        return cls(
            recipe_key=job.recipe_key,
            title=job.title,
            status=job.status,
            operation_name=job.operation_name,
            has_video=job.video_data_uri is not None,
            error_code=job.error_code,
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class VideoResult(BaseModel):
    recipe_key: str
    video_data_uri: str


class OperationStatus(BaseModel):
    name: str
    done: bool = False
    error_message: Optional[str] = None
    media_uri: Optional[str] = None
