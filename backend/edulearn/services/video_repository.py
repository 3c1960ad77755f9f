"""
Video and profile rows in the relational store
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import asyncpg

from edulearn.models.video import VideoRecord, normalize_premium_price
from edulearn.services.database import DatabaseManager
from edulearn.services.errors import InvalidPremiumPrice, PersistenceCategory, PersistenceError
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

VIDEO_COLUMNS = (
    "id, title, description, subject, grade_level, video_url, thumbnail_url, duration, "
    "uploader_id, view_count, is_premium, premium_price, tags, created_at, updated_at"
)


def classify_database_error(error: Exception) -> PersistenceCategory:
    """Map a driver error onto the category the caller acts on"""
    if isinstance(error, asyncpg.exceptions.InsufficientPrivilegeError):
        return PersistenceCategory.AUTHORIZATION
    if "row-level security" in str(error):
        return PersistenceCategory.AUTHORIZATION
    if isinstance(error, asyncpg.exceptions.ForeignKeyViolationError) or "uploader_id" in str(error):
        return PersistenceCategory.IDENTITY_MISMATCH
    if isinstance(error, asyncpg.exceptions.IntegrityConstraintViolationError):
        return PersistenceCategory.CONSTRAINT
    return PersistenceCategory.GENERIC


def _to_record(row: Dict[str, Any]) -> VideoRecord:
    row = dict(row)
    row["id"] = str(row["id"])
    if row.get("uploader_id") is not None:
        row["uploader_id"] = str(row["uploader_id"])
    if row.get("premium_price") is not None:
        row["premium_price"] = float(row["premium_price"])
    return VideoRecord(**row)


class VideoRepository:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def insert_video(self, fields: Dict[str, Any]) -> VideoRecord:
        """
        Insert a published video. view_count and timestamps are set by the database.

        Raises:
            InvalidPremiumPrice: premium flag without a positive price
            PersistenceError: the insert was rejected or the store is unreachable
        """
        is_premium = bool(fields.get("is_premium", False))
        premium_price = normalize_premium_price(fields.get("premium_price")) if is_premium else None
        if is_premium and premium_price is None:
            raise InvalidPremiumPrice(
                "Premium price is required for premium content",
                details={"premium_price": repr(fields.get("premium_price"))},
            )

        uploader_id = fields.get("uploader_id")
        if not uploader_id:
            raise PersistenceError(
                "Missing uploader_id on video record",
                PersistenceCategory.IDENTITY_MISMATCH,
            )

        query = f"""
        INSERT INTO videos (
            title, description, subject, grade_level, video_url, thumbnail_url,
            duration, uploader_id, view_count, is_premium, premium_price, tags,
            created_at, updated_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 0, $9, $10, $11, now(), now())
        RETURNING {VIDEO_COLUMNS}
        """
        try:
            row = await self.db.fetch_one(
                query,
                fields["title"],
                fields.get("description") or "",
                fields["subject"],
                fields["grade_level"],
                fields["video_url"],
                fields["thumbnail_url"],
                int(fields.get("duration") or 0),
                uploader_id,
                is_premium,
                Decimal(str(premium_price)) if premium_price is not None else None,
                fields.get("tags") or "",
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            category = classify_database_error(e)
            logger.error(f"Database insert error ({category.value}): {str(e)}")
            raise PersistenceError(str(e), category, details={"table": "videos"}) from e

        record = _to_record(row)
        logger.info(f"Video saved successfully: {record.id} ({record.title})")
        return record

    async def get_video(self, video_id: str) -> Optional[VideoRecord]:
        row = await self.db.fetch_one(f"SELECT {VIDEO_COLUMNS} FROM videos WHERE id = $1", video_id)
        return _to_record(row) if row else None

    async def list_videos(
        self,
        subject: Optional[str] = None,
        grade_level: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[VideoRecord]:
        """List videos newest first, optionally filtered"""
        conditions = []
        params: List[Any] = []

        if subject:
            params.append(subject)
            conditions.append(f"subject = ${len(params)}")

        if grade_level:
            params.append(grade_level)
            conditions.append(f"grade_level = ${len(params)}")

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.extend([limit, offset])
        query = (
            f"SELECT {VIDEO_COLUMNS} FROM videos {where} "
            f"ORDER BY created_at DESC LIMIT ${len(params) - 1} OFFSET ${len(params)}"
        )
        rows = await self.db.fetch_all(query, *params)
        return [_to_record(row) for row in rows]

    async def increment_view_count(self, video_id: str) -> Optional[int]:
        """Atomically add one view; returns the new count or None if the video does not exist"""
        return await self.db.fetch_val(
            "UPDATE videos SET view_count = view_count + 1 WHERE id = $1 RETURNING view_count",
            video_id,
        )

    async def increment_upload_count(self, user_id: str) -> None:
        try:
            await self.db.execute(
                "UPDATE profiles SET upload_count_this_month = upload_count_this_month + 1, "
                "updated_at = now() WHERE id = $1",
                user_id,
            )
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise PersistenceError(str(e), classify_database_error(e), details={"table": "profiles"}) from e

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.db.fetch_one(
            "SELECT id, email, full_name, role, subscription_status, is_trial, trial_end_date, "
            "upload_count_this_month FROM profiles WHERE id = $1",
            user_id,
        )
