"""
Re-hosting of media attached to WhatsApp listings
"""

import logging
import secrets
import time
from typing import List, Optional, Sequence

import httpx

from app.models.generator import MediaItem
from app.models.whatsapp import MediaReference
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


def build_media_filename(mimetype: Optional[str] = None) -> str:
    """Timestamp plus random suffix, with the extension taken from the MIME subtype"""
    extension = DEFAULT_EXTENSION
    if mimetype and "/" in mimetype:
        subtype = mimetype.split("/", 1)[1].split(";", 1)[0].strip().lower()
        if subtype.isalnum():
            extension = subtype
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}.{extension}"


class MediaService:
    """Downloads media by URL and uploads it to object storage"""

    def __init__(
        self,
        storage: StorageService,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.storage = storage
        self.timeout = timeout
        self.http_client = http_client

    async def process_media(self, media: Sequence[MediaReference]) -> List[MediaItem]:
        """Re-host every downloadable item, skipping the ones that fail.

        Never raises. The result keeps the input order of the items that made it.
        """
        if not media:
            return []

        if self.http_client is not None:
            return await self._process_all(self.http_client, media)

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await self._process_all(client, media)

    async def _process_all(self, client: httpx.AsyncClient, media: Sequence[MediaReference]) -> List[MediaItem]:
        uploaded: List[MediaItem] = []
        for reference in media:
            if not reference.url:
                logger.warning("Skipping media %s without a download URL", reference.media_id)
                continue
            try:
                item = await self._process_one(client, reference)
            except Exception as e:
                logger.warning("Error processing media %s: %s", reference.url, e)
                continue
            if item is not None:
                uploaded.append(item)
        return uploaded

    async def _process_one(self, client: httpx.AsyncClient, reference: MediaReference) -> Optional[MediaItem]:
        response = await client.get(reference.url, timeout=self.timeout)
        response.raise_for_status()
        data = response.content

        mimetype = reference.mimetype or response.headers.get("content-type")
        filename = build_media_filename(mimetype)

        result = await self.storage.upload(data, filename, mimetype)
        if result.error:
            logger.warning("Dropping media %s, upload failed: %s", reference.url, result.error)
            return None

        return MediaItem(url=result.url, filename=filename, size=len(data), mimetype=mimetype)
