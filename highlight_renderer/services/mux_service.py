"""
Mux Service - registers uploaded highlight videos with Mux and returns their
public playback IDs.
"""

import logging
import random
import string
import time
from typing import Optional

import httpx

from highlight_renderer.config import Settings, get_settings

logger = logging.getLogger(__name__)

_MOCK_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_mock_playback_id() -> str:
    """Playback ID used when storage is local MinIO and Mux can't reach it."""
    suffix = "".join(random.choices(_MOCK_ID_ALPHABET, k=6))
    return f"MOCK_{int(time.time() * 1000)}_{suffix}"


class MuxService:
    """Creates Mux assets from public video URLs."""

    def __init__(self, settings: Optional[Settings] = None, timeout: float = 30.0):
        self.settings = settings or get_settings()
        self.timeout = timeout

    async def get_playback_id(self, video_url: str) -> str:
        """
        Create an asset for ``video_url`` and return its first playback ID.

        Raises:
            MuxError: Credentials missing, request failed, or the response
                carries no playback ID
        """
        if self.settings.use_minio:
            mock_id = generate_mock_playback_id()
            logger.info(f"Using MinIO - generating mock Mux playback ID: {mock_id}")
            return mock_id

        if not self.settings.mux_token_id or not self.settings.mux_token_secret:
            raise MuxError("MUX_TOKEN_ID or MUX_TOKEN_SECRET is not set")

        payload = {
            "input": video_url,
            "playback_policy": ["public"],
            "video_quality": "basic",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.settings.mux_api_url,
                    json=payload,
                    auth=(self.settings.mux_token_id, self.settings.mux_token_secret),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise MuxError(
                f"Mux returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise MuxError(f"Mux request failed: {e}") from e
        except ValueError as e:
            raise MuxError(f"Mux returned invalid JSON: {e}") from e

        try:
            playback_id = data["data"]["playback_ids"][0]["id"]
        except (KeyError, IndexError, TypeError) as e:
            raise MuxError(f"Mux response has no playback ID: {str(data)[:200]}") from e

        logger.info(f"Got Mux asset {data['data'].get('id')} with playback ID {playback_id}")
        return playback_id


class MuxError(Exception):
    """Exception raised when a Mux playback ID cannot be obtained."""
    pass
