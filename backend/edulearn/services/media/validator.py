"""
Pre-flight checks for a selected media file and the upload form
"""

import os
from typing import Iterable, Optional

from edulearn.models.upload import VideoUploadForm
from edulearn.models.user import UploadLimits
from edulearn.models.video import GRADE_LEVELS, SUBJECTS, normalize_premium_price
from edulearn.services.errors import (
    FileTooLarge,
    InvalidPremiumPrice,
    MissingTitle,
    UnsupportedFormat,
    UploadValidationError,
)
from edulearn.services.media.core import MediaCandidate

CONTENT_TYPES = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
}


def infer_extension(filename: str) -> str:
    """Lowercase extension without the dot, empty string when there is none"""
    _, ext = os.path.splitext(filename or "")
    return ext.lstrip(".").lower()


class MediaValidator:
    """Pure, synchronous file policy checks"""

    def __init__(self, allowed_extensions: Iterable[str], max_bytes: int):
        self.allowed_extensions = [ext.strip().lstrip(".").lower() for ext in allowed_extensions]
        self.max_bytes = max_bytes

    def check_extension(self, filename: str) -> str:
        extension = infer_extension(filename)
        if not extension or extension not in self.allowed_extensions:
            raise UnsupportedFormat(
                f"Unsupported format. Please use: {', '.join(self.allowed_extensions).upper()}",
                details={"filename": filename, "extension": extension or None},
            )
        return extension

    def check_size(self, size_bytes: int) -> None:
        if size_bytes > self.max_bytes:
            raise FileTooLarge(
                f"File too large. Maximum size is {round(self.max_bytes / (1024 * 1024))}MB",
                details={"size_bytes": size_bytes, "max_bytes": self.max_bytes},
            )

    def restricted_to(self, limits: UploadLimits) -> "MediaValidator":
        """Policy for one uploader: the formats both allow and the smaller size limit"""
        tier_formats = {fmt.lower() for fmt in limits.formats}
        return MediaValidator(
            [ext for ext in self.allowed_extensions if ext in tier_formats],
            min(self.max_bytes, limits.max_file_size),
        )

    def validate(self, filename: str, size_bytes: int, path: Optional[str] = None) -> MediaCandidate:
        """Accept the file as a MediaCandidate or raise UnsupportedFormat / FileTooLarge"""
        extension = self.check_extension(filename)
        self.check_size(size_bytes)
        return MediaCandidate(
            filename=filename,
            extension=extension,
            size_bytes=size_bytes,
            path=path,
            content_type=CONTENT_TYPES.get(extension, "application/octet-stream"),
        )


def validate_form(form: VideoUploadForm) -> VideoUploadForm:
    """Check the submitted fields; returns a normalized copy"""
    title = (form.title or "").strip()
    if not title:
        raise MissingTitle("Title is required")

    if form.subject not in SUBJECTS:
        raise UploadValidationError(
            f"Unknown subject: {form.subject}",
            error_code="INVALID_SUBJECT",
            details={"allowed": SUBJECTS},
        )
    if form.grade_level not in GRADE_LEVELS:
        raise UploadValidationError(
            f"Unknown grade level: {form.grade_level}",
            error_code="INVALID_GRADE_LEVEL",
            details={"allowed": GRADE_LEVELS},
        )

    if form.is_premium:
        premium_price = normalize_premium_price(form.premium_price)
        if premium_price is None:
            raise InvalidPremiumPrice(
                "Premium price is required for premium content",
                details={"premium_price": repr(form.premium_price)},
            )
    else:
        premium_price = None

    return form.model_copy(update={"title": title, "premium_price": premium_price})
