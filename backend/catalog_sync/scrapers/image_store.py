"""Local storage for downloaded cover images."""

import asyncio
import os
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import structlog

from catalog_sync.config import settings
from catalog_sync.core.exceptions import UpstreamFetchError
from catalog_sync.scrapers.base import BaseSourceAdapter


logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def guess_extension(url: str, content_type: Optional[str] = None) -> str:
    """Pick a file extension from the URL path, then the content type."""
    suffix = os.path.splitext(urlparse(url).path)[1].lstrip(".").lower()
    if suffix in ALLOWED_EXTENSIONS:
        return suffix
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime in CONTENT_TYPE_EXTENSIONS:
            return CONTENT_TYPE_EXTENSIONS[mime]
    return "jpg"


class ImageStore:
    """Download cover images into IMAGE_DIR.

    Files are named ``{prefix}_{resource_id}_{timestamp}.{ext}`` and exposed
    under IMAGE_URL_PREFIX by whatever serves the directory.
    """

    def __init__(
        self,
        adapter: BaseSourceAdapter,
        image_dir: Optional[str] = None,
        url_prefix: Optional[str] = None,
        filename_prefix: Optional[str] = None,
    ):
        self.adapter = adapter
        self.image_dir = Path(image_dir or settings.IMAGE_DIR)
        self.url_prefix = (url_prefix or settings.IMAGE_URL_PREFIX).rstrip("/")
        self.filename_prefix = filename_prefix or settings.IMAGE_FILENAME_PREFIX

    def build_filename(self, resource_id: int, extension: str) -> str:
        timestamp = int(time.time() * 1000)
        return f"{self.filename_prefix}_{resource_id}_{timestamp}.{extension}"

    async def download(self, image_url: str, resource_id: int) -> Optional[str]:
        """Download an image and return its public path.

        Returns:
            Public path such as ``/images/resource_12_1700000000000.jpg``,
            or None when the download or the write fails
        """
        try:
            content, content_type = await self.adapter.fetch_bytes(image_url)
        except UpstreamFetchError as e:
            logger.warning("image_download_failed", url=image_url, resource_id=resource_id, error=e.message)
            return None

        filename = self.build_filename(resource_id, guess_extension(image_url, content_type))
        target = self.image_dir / filename

        try:
            await asyncio.to_thread(self._write, target, content)
        except OSError as e:
            logger.warning("image_write_failed", path=str(target), resource_id=resource_id, error=str(e))
            return None

        logger.info("image_saved", path=str(target), resource_id=resource_id, size=len(content))
        return f"{self.url_prefix}/{filename}"

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
