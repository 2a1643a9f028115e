"""
Media Downloader Service - fetches the source media for a highlight request.

Remote URLs are streamed to the request's working directory with httpx; local
paths and file:// URLs are used in place.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Literal, Optional
from urllib.parse import unquote, urlparse

import httpx

from highlight_renderer.config import Settings, get_settings

logger = logging.getLogger(__name__)


MediaSourceType = Literal["direct_url", "local"]


@dataclass
class DownloadResult:
    """Result of fetching the source media."""

    media_path: str
    file_size_bytes: int
    source_type: MediaSourceType


class MediaDownloaderService:
    """Service for fetching source media once per request."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def download(self, url: str, work_dir: str) -> DownloadResult:
        """
        Make ``url`` available as a local file.

        Args:
            url: http(s) URL, file:// URL or local path
            work_dir: Directory for downloaded files

        Returns:
            DownloadResult pointing at the local file

        Raises:
            DownloadError: Unreachable URL, HTTP error, or missing local file
        """
        parsed = urlparse(url)

        if parsed.scheme in ("http", "https"):
            return await self._download_direct_url(url, work_dir)

        if parsed.scheme == "file":
            local_path = unquote(parsed.path)
        elif not parsed.scheme or os.path.isabs(url):
            local_path = url
        else:
            raise DownloadError(f"Unsupported media URL scheme: {parsed.scheme}")

        if not os.path.isfile(local_path):
            raise DownloadError(f"Media file not found: {local_path}")

        logger.info(f"Using local media file: {local_path}")
        return DownloadResult(
            media_path=local_path,
            file_size_bytes=os.path.getsize(local_path),
            source_type="local",
        )

    async def _download_direct_url(self, url: str, work_dir: str) -> DownloadResult:
        """Stream a remote file into ``work_dir`` under a unique name."""
        os.makedirs(work_dir, exist_ok=True)
        ext = os.path.splitext(urlparse(url).path)[1].lower()
        output_path = os.path.join(work_dir, f"source_{uuid.uuid4().hex}{ext}")

        logger.info(f"Downloading media from direct URL: {url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.download_timeout_seconds,
                follow_redirects=True,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()

                    with open(output_path, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
        except httpx.HTTPStatusError as e:
            raise DownloadError(
                f"Download failed with HTTP {e.response.status_code}: {url}"
            ) from e
        except httpx.RequestError as e:
            raise DownloadError(f"Download failed: {e}") from e

        if not os.path.isfile(output_path):
            raise DownloadError(f"Direct download completed but file not found: {output_path}")

        file_size = os.path.getsize(output_path)
        if file_size == 0:
            raise DownloadError(f"Downloaded file is empty: {url}")

        logger.info(f"Media downloaded: {output_path} ({file_size / 1024 / 1024:.1f} MB)")

        return DownloadResult(
            media_path=output_path,
            file_size_bytes=file_size,
            source_type="direct_url",
        )


class DownloadError(Exception):
    """Exception raised when the source media cannot be fetched."""
    pass
