"""
Caller identity and upload entitlements
"""

from typing import List, Optional

from pydantic import BaseModel


class UploadLimits(BaseModel):
    tier: str
    max_file_size: int  # in bytes
    monthly_limit: Optional[int]  # None for unlimited
    formats: List[str]


FREE_LIMITS = UploadLimits(
    tier="free",
    max_file_size=100 * 1024 * 1024,
    monthly_limit=5,
    formats=["mp4", "avi", "mov"],
)
PREMIUM_LIMITS = UploadLimits(
    tier="premium",
    max_file_size=250 * 1024 * 1024,
    monthly_limit=15,
    formats=["mp4", "avi", "mov", "wmv", "mkv", "webm"],
)
CREATOR_LIMITS = UploadLimits(
    tier="creator",
    max_file_size=500 * 1024 * 1024,
    monthly_limit=None,
    formats=["mp4", "avi", "mov", "wmv", "mkv", "webm", "flv"],
)


class Identity(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str = "student"
    subscription_status: str = "free"
    is_trial: bool = False
    upload_count_this_month: int = 0

    def upload_limits(self) -> UploadLimits:
        if self.subscription_status == "creator" or self.role in ("teacher", "admin"):
            return CREATOR_LIMITS
        if self.subscription_status == "premium":
            return PREMIUM_LIMITS
        return FREE_LIMITS

    def has_upload_role(self) -> bool:
        return (
            self.role in ("teacher", "admin")
            or self.subscription_status in ("creator", "premium")
            or self.is_trial
        )

    def can_upload(self) -> bool:
        if not self.has_upload_role():
            return False
        limits = self.upload_limits()
        if limits.monthly_limit is None:
            return True
        return self.upload_count_this_month < limits.monthly_limit
