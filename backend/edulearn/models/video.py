"""
Video record data models
"""

import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

SUBJECTS = ['Mathematics', 'Science', 'History', 'English', 'Art', 'Technology', 'Languages', 'Music']
GRADE_LEVELS = ['Elementary (K-5)', 'Middle School (6-8)', 'High School (9-12)', 'College', 'Adult Learning']

# premium_price is NUMERIC(10, 2)
MAX_PREMIUM_PRICE = 99_999_999.99


def normalize_premium_price(price: Optional[float]) -> Optional[float]:
    """Price rounded to cents, or None when it is not a positive amount that fits the column"""
    if price is None or not math.isfinite(price):
        return None
    cents = round(price, 2)
    if cents <= 0 or cents > MAX_PREMIUM_PRICE:
        return None
    return cents


class VideoRecord(BaseModel):
    id: str
    title: str
    description: str = ""
    subject: str
    grade_level: str
    video_url: str
    thumbnail_url: str
    duration: int = 0
    uploader_id: Optional[str] = None
    view_count: int = 0
    is_premium: bool = False
    premium_price: Optional[float] = None
    tags: str = ""
    created_at: datetime
    updated_at: datetime
