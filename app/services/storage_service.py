"""
Object storage for listing media (S3)
"""

import asyncio
import logging
from datetime import datetime, UTC
from typing import Any, Optional

import boto3
from botocore.client import Config
from pydantic import BaseModel

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://via.placeholder.com/400x300/cccccc/666666?text=Generator+Image"
UPLOAD_FAILED_URL = "https://via.placeholder.com/400x300/cccccc/666666?text=Upload+Failed"


class UploadResult(BaseModel):
    """Where an uploaded object ended up"""
    url: str
    key: str
    bucket: str
    etag: Optional[str] = None
    error: Optional[str] = None


class StorageService:
    """Uploads media bytes to S3 and returns a stable public URL.

    ``upload`` never raises: on any failure it returns a placeholder URL with
    ``error`` set, so callers do not branch on storage exceptions.
    """

    def __init__(self, config: Settings = default_settings, s3_client: Any = None) -> None:
        self.bucket = config.AWS_S3_BUCKET
        self.region = config.AWS_REGION
        self.enabled = config.storage_enabled
        self._config = config
        self._s3_client = s3_client

    @property
    def s3_client(self) -> Any:
        if self._s3_client is None:
            self._s3_client = boto3.client(
                "s3",
                aws_access_key_id=self._config.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=self._config.AWS_SECRET_ACCESS_KEY,
                region_name=self.region,
                config=Config(signature_version="s3v4"),
            )
        return self._s3_client

    def build_key(self, filename: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(UTC)
        return f"uploads/{now.year}/{now.month}/{filename}"

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def upload(self, data: bytes, filename: str, mimetype: Optional[str] = None) -> UploadResult:
        """Upload bytes under ``filename``"""
        if not self.enabled:
            logger.info("Storage disabled, using placeholder URL for %s", filename)
            return UploadResult(url=PLACEHOLDER_URL, key=f"dev/{filename}", bucket=self.bucket)

        key = self.build_key(filename)
        try:
            response = await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mimetype or "application/octet-stream",
                ACL="public-read",
                Metadata={
                    "uploaded-at": datetime.now(UTC).isoformat(),
                    "service": "generator-marketplace",
                },
            )
            url = self.public_url(key)
            logger.info("File uploaded successfully: %s", url)
            return UploadResult(url=url, key=key, bucket=self.bucket, etag=response.get("ETag"))

        except Exception as e:
            logger.error("Error uploading %s to S3: %s", filename, e)
            return UploadResult(url=UPLOAD_FAILED_URL, key=f"error/{filename}", bucket=self.bucket, error=str(e))
