"""
Font Provider - keeps a local copy of the caption font for drawtext.
"""

import logging
import os
import uuid
from typing import Optional

import httpx

from highlight_renderer.config import Settings, get_settings

logger = logging.getLogger(__name__)


class FontProvider:
    """
    Downloads the caption font once and caches it under the data directory.

    The file is written under a unique temporary name and moved into place,
    so concurrent requests never read a partially written font.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def font_path(self) -> str:
        return os.path.join(self.settings.fonts_directory, self.settings.caption_font_filename)

    async def ensure_font(self) -> str:
        """Return the local font path, downloading it if missing."""
        path = self.font_path
        if os.path.isfile(path) and os.path.getsize(path) > 0:
            logger.debug(f"Font already cached: {path}")
            return path

        tmp_path = f"{path}.{uuid.uuid4().hex}.tmp"
        url = self.settings.caption_font_url

        logger.info(f"Downloading caption font from {url}")
        try:
            os.makedirs(self.settings.fonts_directory, exist_ok=True)
            async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()

            with open(tmp_path, "wb") as f:
                f.write(response.content)
            os.replace(tmp_path, path)
        except httpx.HTTPError as e:
            raise FontDownloadError(f"Failed to download font from {url}: {e}") from e
        except OSError as e:
            raise FontDownloadError(f"Failed to store font at {path}: {e}") from e
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.info(f"Caption font saved: {path}")
        return path


class FontDownloadError(Exception):
    """Exception raised when the caption font cannot be fetched."""
    pass
