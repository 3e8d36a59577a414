"""
Tests for media re-hosting and object storage
"""

import re
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.core.config import Settings
from app.models.whatsapp import MediaReference
from app.services.media_service import MediaService, build_media_filename
from app.services.storage_service import PLACEHOLDER_URL, UPLOAD_FAILED_URL, StorageService, UploadResult


def storage_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "production",
        "AWS_ACCESS_KEY_ID": "test-key",
        "AWS_SECRET_ACCESS_KEY": "test-secret",
        "AWS_REGION": "ap-south-1",
        "AWS_S3_BUCKET": "generator-media",
    }
    values.update(overrides)
    return Settings(**values)


class TestBuildMediaFilename:

    def test_extension_from_mimetype(self):
        assert re.fullmatch(r"\d+_[0-9a-f]{8}\.png", build_media_filename("image/png"))

    def test_default_extension(self):
        assert build_media_filename(None).endswith(".jpg")
        assert build_media_filename("garbage").endswith(".jpg")

    def test_unique(self):
        assert build_media_filename("image/jpeg") != build_media_filename("image/jpeg")


class TestStorageService:

    @pytest.mark.asyncio
    async def test_disabled_storage_returns_placeholder(self):
        storage = StorageService(storage_settings(ENVIRONMENT="development"), s3_client=MagicMock())

        result = await storage.upload(b"data", "a.jpg", "image/jpeg")

        assert result.url == PLACEHOLDER_URL
        assert result.key == "dev/a.jpg"
        assert result.error is None
        storage.s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload(self):
        s3_client = MagicMock()
        s3_client.put_object.return_value = {"ETag": '"abc"'}
        storage = StorageService(storage_settings(), s3_client=s3_client)

        result = await storage.upload(b"data", "a.jpg", "image/jpeg")

        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "generator-media"
        assert kwargs["Key"].startswith("uploads/")
        assert kwargs["Key"].endswith("/a.jpg")
        assert kwargs["ContentType"] == "image/jpeg"
        assert result.url == f"https://generator-media.s3.ap-south-1.amazonaws.com/{kwargs['Key']}"
        assert result.etag == '"abc"'
        assert result.error is None

    @pytest.mark.asyncio
    async def test_upload_failure_returns_placeholder(self):
        s3_client = MagicMock()
        s3_client.put_object.side_effect = RuntimeError("access denied")
        storage = StorageService(storage_settings(), s3_client=s3_client)

        result = await storage.upload(b"data", "a.jpg")

        assert result.url == UPLOAD_FAILED_URL
        assert result.error == "access denied"


class TestMediaService:

    @pytest.fixture
    def storage(self):
        storage = AsyncMock()

        async def upload(data, filename, mimetype=None):
            return UploadResult(url=f"https://cdn.example.com/{filename}", key=filename, bucket="generator-media")

        storage.upload.side_effect = upload
        return storage

    def make_client(self, handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_rehosts_media(self, storage):
        client = self.make_client(lambda request: httpx.Response(200, content=b"jpeg-bytes"))
        service = MediaService(storage, http_client=client)

        items = await service.process_media(
            [MediaReference(url="https://wa.example.com/1", mimetype="image/jpeg")]
        )

        assert len(items) == 1
        assert items[0].size == len(b"jpeg-bytes")
        assert items[0].mimetype == "image/jpeg"
        assert items[0].url == f"https://cdn.example.com/{items[0].filename}"
        storage.upload.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_items_are_skipped(self, storage):
        def handler(request):
            if request.url.path == "/broken":
                return httpx.Response(404)
            return httpx.Response(200, content=b"ok", headers={"content-type": "image/png"})

        service = MediaService(storage, http_client=self.make_client(handler))
        references = [
            MediaReference(url="https://wa.example.com/first"),
            MediaReference(url="https://wa.example.com/broken"),
            MediaReference(media_id="no-url"),
            MediaReference(url="https://wa.example.com/last"),
        ]

        items = await service.process_media(references)

        assert len(items) == 2
        assert all(item.filename.endswith(".png") for item in items)
        assert storage.upload.await_count == 2

    @pytest.mark.asyncio
    async def test_upload_error_drops_item(self):
        storage = AsyncMock()
        storage.upload.return_value = UploadResult(
            url=UPLOAD_FAILED_URL, key="error/a.jpg", bucket="generator-media", error="boom"
        )
        client = self.make_client(lambda request: httpx.Response(200, content=b"x"))
        service = MediaService(storage, http_client=client)

        assert await service.process_media([MediaReference(url="https://wa.example.com/1")]) == []

    @pytest.mark.asyncio
    async def test_no_media(self, storage):
        service = MediaService(storage)

        assert await service.process_media([]) == []
        storage.upload.assert_not_awaited()
