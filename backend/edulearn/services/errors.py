"""
Error taxonomy for the upload pipeline and its collaborators
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class UploadError(Exception):
    """Base exception carrying a stable error code for the HTTP layer"""

    error_code = "UPLOAD_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Pre-flight validation. Raised before any network call.

class UploadValidationError(UploadError):
    error_code = "VALIDATION_ERROR"


class UnsupportedFormat(UploadValidationError):
    error_code = "UNSUPPORTED_FORMAT"


class FileTooLarge(UploadValidationError):
    error_code = "FILE_TOO_LARGE"


class MissingTitle(UploadValidationError):
    error_code = "MISSING_TITLE"


class InvalidPremiumPrice(UploadValidationError):
    error_code = "INVALID_PREMIUM_PRICE"


class UploadNotPermitted(UploadValidationError):
    error_code = "UPLOAD_NOT_PERMITTED"


class StorageError(UploadError):
    """Blob upload or URL resolution against object storage failed"""

    error_code = "STORAGE_ERROR"


class PersistenceCategory(str, Enum):
    AUTHORIZATION = "authorization"
    IDENTITY_MISMATCH = "identity_mismatch"
    CONSTRAINT = "constraint"
    UNAVAILABLE = "unavailable"
    GENERIC = "generic"


CATEGORY_MESSAGES = {
    PersistenceCategory.AUTHORIZATION: "Upload permission denied. Please check your account permissions or try again.",
    PersistenceCategory.IDENTITY_MISMATCH: "Authentication error. Please sign out and sign back in.",
    PersistenceCategory.CONSTRAINT: "The video record was rejected by the database.",
    PersistenceCategory.UNAVAILABLE: "The database is unavailable right now. Please try again shortly.",
    PersistenceCategory.GENERIC: "Database error. Please try again.",
}


class PersistenceError(UploadError):
    """Relational store write failed; category tells the caller what to do next"""

    error_code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        category: PersistenceCategory = PersistenceCategory.GENERIC,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, f"PERSISTENCE_{category.value.upper()}", details)
        self.category = category

    @property
    def user_message(self) -> str:
        return CATEGORY_MESSAGES[self.category]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["category"] = self.category.value
        data["user_message"] = self.user_message
        return data


class OptimizationUnavailable(UploadError):
    error_code = "OPTIMIZATION_UNAVAILABLE"


class MetadataUnavailable(UploadError):
    error_code = "METADATA_UNAVAILABLE"
