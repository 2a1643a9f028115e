"""
Spaces Upload Service - uploads rendered highlights to S3-compatible object
storage (DigitalOcean Spaces, or MinIO locally) and returns their CDN URLs.
"""

import asyncio
import logging
import mimetypes
import os
from typing import Callable, Optional, Sequence, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from highlight_renderer.config import Settings, get_settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

# Error codes boto3 reports for a missing object on HEAD
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class SpacesUploadService:
    """
    Service for uploading files to Spaces.

    Features:
    - Skips objects that already exist under the same key
    - Public-read objects with a content type guessed from the file name
    - URLs built from the CDN base, in input order
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client = None

    @property
    def client(self):
        """Lazy-initialize the S3 client."""
        if self._client is None:
            config = {
                "region_name": self.settings.do_spaces_region,
            }
            if self.settings.do_spaces_endpoint:
                config["endpoint_url"] = self.settings.do_spaces_endpoint
            if self.settings.do_spaces_key and self.settings.do_spaces_secret:
                config["aws_access_key_id"] = self.settings.do_spaces_key
                config["aws_secret_access_key"] = self.settings.do_spaces_secret

            self._client = boto3.client("s3", **config)

        return self._client

    @property
    def bucket(self) -> str:
        if not self.settings.do_spaces_bucket:
            raise UploadError("DO_SPACES_BUCKET environment variable is not set")
        return self.settings.do_spaces_bucket

    def public_url(self, spaces_path: str, file_name: str) -> str:
        return f"{self.settings.cdn_base_url.rstrip('/')}/{spaces_path}/{file_name}"

    async def upload_files(
        self,
        files: Union[str, Sequence[str]],
        spaces_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[str]:
        """
        Upload ``files`` under ``spaces_path``.

        Args:
            files: A local path or a list of them
            spaces_path: Key prefix (no trailing slash)
            on_progress: Called with ``("uploading", percent)`` after each file

        Returns:
            Public URLs, one per input file, in input order

        Raises:
            UploadError: Missing configuration, unreadable file, or storage error
        """
        file_list = [files] if isinstance(files, str) else list(files)
        spaces_path = spaces_path.strip("/")
        bucket = self.bucket

        for path in file_list:
            if not os.path.isfile(path):
                raise UploadError(f"File not found: {path}")

        loop = asyncio.get_event_loop()

        try:
            # Folder marker so the prefix shows up in the Spaces browser
            await loop.run_in_executor(
                None,
                lambda: self.client.put_object(
                    Bucket=bucket,
                    Key=f"{spaces_path}/",
                    Body=b"",
                    ACL="public-read",
                ),
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"Failed to create {spaces_path}/ in {bucket}: {e}") from e

        urls: list[str] = []
        for i, path in enumerate(file_list):
            file_name = os.path.basename(path)
            key = f"{spaces_path}/{file_name}"
            url = self.public_url(spaces_path, file_name)

            if await self.check_file_exists(key):
                logger.info(f"File {file_name} already exists. Skipping upload.")
            else:
                await self._upload_file(path, key)
                logger.info(f"Upload complete: {url}")

            urls.append(url)
            if on_progress:
                on_progress("uploading", (i + 1) / len(file_list) * 100)

        return urls

    async def _upload_file(self, local_path: str, key: str) -> None:
        content_type, _ = mimetypes.guess_type(local_path)
        if not content_type:
            raise UploadError(f"Content type for file {local_path} not found")

        file_size = os.path.getsize(local_path)
        logger.info(
            f"Uploading {os.path.basename(local_path)} to {self.bucket}/{key} "
            f"({file_size / 1024 / 1024:.1f} MB, {content_type})"
        )

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self.client.upload_file(
                    local_path,
                    self.bucket,
                    key,
                    ExtraArgs={"ContentType": content_type, "ACL": "public-read"},
                ),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error uploading file {local_path}: {e}")
            raise UploadError(f"Failed to upload {os.path.basename(local_path)}: {e}") from e

    async def check_file_exists(self, key: str) -> bool:
        """Check if an object exists in the bucket."""
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self.client.head_object(
                    Bucket=self.bucket,
                    Key=key,
                ),
            )
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                return False
            raise UploadError(f"Error checking existence of {key}: {e}") from e
        except BotoCoreError as e:
            raise UploadError(f"Error checking existence of {key}: {e}") from e


class UploadError(Exception):
    """Exception raised when an upload to Spaces fails."""
    pass
