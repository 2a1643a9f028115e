"""
Unit tests for the media downloader and font provider (HTTP is mocked).
"""

import os

import httpx
import pytest

from highlight_renderer.services.font_provider import FontDownloadError, FontProvider
from highlight_renderer.services.media_downloader import DownloadError, MediaDownloaderService


def _mock_http(mocker, module, handler):
    real_client = httpx.AsyncClient
    mocker.patch(
        f"highlight_renderer.services.{module}.httpx.AsyncClient",
        side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestMediaDownloader:
    """Tests for MediaDownloaderService."""

    @pytest.mark.asyncio
    async def test_download_direct_url(self, settings, mocker, tmp_path):
        _mock_http(mocker, "media_downloader", lambda request: httpx.Response(200, content=b"mp4data"))

        result = await MediaDownloaderService(settings).download(
            "https://cdn.example.com/meeting.mp4", str(tmp_path / "work")
        )

        assert result.source_type == "direct_url"
        assert result.media_path.endswith(".mp4")
        assert result.file_size_bytes == 7
        with open(result.media_path, "rb") as f:
            assert f.read() == b"mp4data"

    @pytest.mark.asyncio
    async def test_http_error(self, settings, mocker, tmp_path):
        _mock_http(mocker, "media_downloader", lambda request: httpx.Response(404))
        with pytest.raises(DownloadError, match="404"):
            await MediaDownloaderService(settings).download(
                "https://cdn.example.com/missing.mp4", str(tmp_path)
            )

    @pytest.mark.asyncio
    async def test_empty_body(self, settings, mocker, tmp_path):
        _mock_http(mocker, "media_downloader", lambda request: httpx.Response(200, content=b""))
        with pytest.raises(DownloadError, match="empty"):
            await MediaDownloaderService(settings).download(
                "https://cdn.example.com/empty.mp4", str(tmp_path)
            )

    @pytest.mark.asyncio
    async def test_local_path_used_in_place(self, settings, tmp_path):
        source = tmp_path / "local.mp4"
        source.write_bytes(b"data")

        result = await MediaDownloaderService(settings).download(str(source), str(tmp_path / "work"))

        assert result.media_path == str(source)
        assert result.source_type == "local"

    @pytest.mark.asyncio
    async def test_file_url(self, settings, tmp_path):
        source = tmp_path / "local.mp3"
        source.write_bytes(b"data")

        result = await MediaDownloaderService(settings).download(f"file://{source}", str(tmp_path))
        assert result.media_path == str(source)

    @pytest.mark.asyncio
    async def test_missing_local_file(self, settings, tmp_path):
        with pytest.raises(DownloadError, match="not found"):
            await MediaDownloaderService(settings).download(str(tmp_path / "nope.mp4"), str(tmp_path))

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self, settings, tmp_path):
        with pytest.raises(DownloadError, match="scheme"):
            await MediaDownloaderService(settings).download("ftp://host/a.mp4", str(tmp_path))


class TestFontProvider:
    """Tests for FontProvider."""

    @pytest.mark.asyncio
    async def test_downloads_once(self, settings, mocker):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(200, content=b"ttf")

        _mock_http(mocker, "font_provider", handler)
        provider = FontProvider(settings)

        first = await provider.ensure_font()
        second = await provider.ensure_font()

        assert first == second == provider.font_path
        assert first.endswith("relative-book-pro.ttf")
        assert calls == [settings.caption_font_url]

    @pytest.mark.asyncio
    async def test_failure_leaves_no_partial_file(self, settings, mocker):
        _mock_http(mocker, "font_provider", lambda request: httpx.Response(500))
        provider = FontProvider(settings)

        with pytest.raises(FontDownloadError):
            await provider.ensure_font()

        assert not os.path.exists(provider.font_path)
        assert not [f for f in os.listdir(settings.fonts_directory) if f.endswith(".tmp")]

    @pytest.mark.asyncio
    async def test_unwritable_fonts_directory(self, settings, mocker):
        _mock_http(mocker, "font_provider", lambda request: httpx.Response(200, content=b"ttf"))
        mocker.patch(
            "highlight_renderer.services.font_provider.os.replace",
            side_effect=PermissionError("read-only file system"),
        )
        provider = FontProvider(settings)

        with pytest.raises(FontDownloadError, match="read-only"):
            await provider.ensure_font()

        assert not os.path.exists(provider.font_path)
        assert not [f for f in os.listdir(settings.fonts_directory) if f.endswith(".tmp")]
