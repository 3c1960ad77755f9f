"""
S3 object storage for video, thumbnail and audio blobs
"""

import io
import secrets
import string
import time
from typing import BinaryIO, Callable, Optional, Union

import aioboto3
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from edulearn.config.base import Settings
from edulearn.services.errors import StorageError
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

BASE36 = string.digits + string.ascii_lowercase


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(BASE36) for _ in range(length))


def generate_storage_key(filename: str, prefix: str = "videos") -> str:
    """<prefix>/<epoch ms>-<random suffix>.<original extension>"""
    extension = filename.rsplit('.', 1)[-1] if '.' in filename else 'bin'
    return f"{prefix}/{int(time.time() * 1000)}-{_random_suffix()}.{extension}"


class StorageService:
    def __init__(self, settings: Settings):
        self.bucket = settings.S3_BUCKET
        self.region = settings.AWS_REGION
        self.endpoint_url = settings.AWS_ENDPOINT_URL
        self.public_base_url = settings.STORAGE_PUBLIC_BASE_URL
        self.signed_urls = settings.STORAGE_SIGNED_URLS
        self.signed_url_expiry = settings.STORAGE_SIGNED_URL_EXPIRY

        # Check if S3 is configured
        if not all([settings.AWS_ACCESS_KEY_ID, settings.AWS_SECRET_ACCESS_KEY, settings.S3_BUCKET]):
            logger.warning("S3 credentials not configured - storage uploads disabled")
            self.enabled = False
            self.session = None
            self.client = None
            return

        self.enabled = True
        self.session = aioboto3.Session(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=self.region
        )

        # Sync client for URL signing
        self.client = boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=self.region,
            endpoint_url=self.endpoint_url
        )

        logger.info(f"Storage service initialized for bucket: {self.bucket}")

    async def put(
        self,
        key: str,
        data: Union[bytes, BinaryIO],
        content_type: str,
        cache_control: str = "max-age=3600",
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> str:
        """
        Upload a blob and resolve its URL

        Args:
            key: Storage key, never reused
            data: Raw bytes or a readable binary file object
            content_type: MIME type stored with the object
            cache_control: Cache-Control header stored with the object
            progress_callback: Called with the byte count of each transferred chunk

        Returns:
            URL the object can be fetched from

        Raises:
            StorageError: storage is not configured or the upload failed
        """
        if not self.enabled:
            raise StorageError("Object storage is not configured", details={"key": key})

        fileobj = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else data

        try:
            async with self.session.client('s3', endpoint_url=self.endpoint_url) as s3:
                await s3.upload_fileobj(
                    fileobj,
                    self.bucket,
                    key,
                    ExtraArgs={
                        'ContentType': content_type,
                        'CacheControl': cache_control,
                    },
                    Callback=progress_callback
                )
        except (BotoCoreError, ClientError, OSError) as e:
            logger.error(f"Failed to upload {key} to S3: {str(e)}")
            raise StorageError(f"Upload failed: {str(e)}", details={"key": key, "bucket": self.bucket}) from e

        logger.info(f"Successfully uploaded {key} to S3")
        return self.get_public_url(key)

    def get_public_url(self, key: str) -> str:
        """URL for a stored object: signed when the bucket is private"""
        if self.signed_urls:
            return self.generate_presigned_url(key, expires_in=self.signed_url_expiry)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        """Generate presigned URL for file access"""
        if not self.enabled:
            raise StorageError("Object storage is not configured", details={"key": key})

        try:
            url = self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=expires_in
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to generate presigned URL: {str(e)}")
            raise StorageError(f"Could not sign URL: {str(e)}", details={"key": key}) from e

        logger.debug(f"Generated presigned URL for {key} (expires in {expires_in}s)")
        return url
