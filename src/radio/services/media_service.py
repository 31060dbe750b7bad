"""
Media Storage Service
Downloads generated audio and cover art so the backend holds its own copy
"""

import logging
import mimetypes
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import httpx

from ..core.config import get_settings
from ..database.schemas import TrackRecord

logger = logging.getLogger(__name__)

# record file field -> (url field, fallback extension)
MEDIA_FIELDS = {
    "audio_file": ("audio_url", ".mp3"),
    "image_file": ("image_url", ".jpeg"),
}

FileUpload = Tuple[str, bytes, str]


class MediaService:
    """Fetch-and-attach for track media, skipped for files already attached"""

    def __init__(self, http: Optional[httpx.AsyncClient] = None, enabled: Optional[bool] = None):
        settings = get_settings()
        self.enabled = settings.STORE_MEDIA_FILES if enabled is None else enabled
        self.timeout = settings.MEDIA_FETCH_TIMEOUT_SECONDS
        self._http = http

    async def initialize(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), follow_redirects=True, transport=transport
        )

    async def cleanup(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def fetch(self, url: str, default_ext: str) -> Optional[FileUpload]:
        """Download one media URL; returns None on failure"""
        try:
            if self._http is not None:
                response = await self._http.get(url, timeout=self.timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Media fetch failed for {url}: {e}")
            return None

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        name = PurePosixPath(urlparse(url).path).name or "media"
        if not PurePosixPath(name).suffix:
            name += mimetypes.guess_extension(content_type) or default_ext
        return name, response.content, content_type or "application/octet-stream"

    async def collect_files(self, track: Optional[TrackRecord], fields: Dict[str, Any]) -> Dict[str, FileUpload]:
        """Build the multipart files to attach for a track about to be written"""
        if not self.enabled:
            return {}

        files: Dict[str, FileUpload] = {}
        for file_field, (url_field, default_ext) in MEDIA_FIELDS.items():
            if track is not None and getattr(track, file_field):
                continue
            url = fields.get(url_field) or (getattr(track, url_field) if track else None)
            if not url:
                continue
            upload = await self.fetch(url, default_ext)
            if upload:
                files[file_field] = upload
        return files


# Global media service instance
media_service = MediaService()
