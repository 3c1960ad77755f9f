"""
Upload data models
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from edulearn.models.video import VideoRecord


class VideoUploadForm(BaseModel):
    title: str = ""
    description: str = ""
    subject: str = "Mathematics"
    grade_level: str = "High School (9-12)"
    tags: str = ""
    is_premium: bool = False
    premium_price: Optional[float] = None


class UploadPhase(str, Enum):
    VALIDATING = "validating"
    UPLOADING_MEDIA = "uploading_media"
    GENERATING_THUMBNAIL = "generating_thumbnail"
    PERSISTING_RECORD = "persisting_record"
    FINALIZING = "finalizing"


class UploadProgressState(BaseModel):
    upload_id: str
    phase: UploadPhase
    percentage: int = Field(ge=0, le=100)
    simulated: bool = False
    status: str = "in_progress"
    error_message: Optional[str] = None


class UploadResponse(BaseModel):
    upload_id: str
    status: str
    video: VideoRecord
    used_fallback: bool
    metadata: Optional[dict] = None
    progress: List[UploadProgressState] = []
