"""
AI assist request / response models
"""

from typing import Optional

from pydantic import BaseModel


class OptimizationRequest(BaseModel):
    context: Optional[str] = None
    subject: str = "Mathematics"
    grade_level: str = "High School (9-12)"
    title: str = ""
    description: str = ""
    tags: str = ""


class OptimizationResponse(BaseModel):
    success: bool
    title: str
    description: str
    tags: str
    error: Optional[str] = None


class TutorChatRequest(BaseModel):
    message: str
    subject: str = "Mathematics"
    context: Optional[str] = None


class SpeechResponse(BaseModel):
    audio_url: Optional[str] = None
    available: bool = True


class StudyPlanRequest(BaseModel):
    subject: str
    current_level: str = "beginner"
    goals: str
