"""
Unit tests for the Mux service (HTTP is served by httpx.MockTransport).
"""

import json
import re

import httpx
import pytest

from highlight_renderer.services.mux_service import MuxError, MuxService, generate_mock_playback_id


def _mock_http(mocker, handler):
    real_client = httpx.AsyncClient
    mocker.patch(
        "highlight_renderer.services.mux_service.httpx.AsyncClient",
        side_effect=lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestGetPlaybackId:
    """Tests for MuxService.get_playback_id."""

    @pytest.mark.asyncio
    async def test_creates_asset(self, settings, mocker):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"data": {"id": "asset1", "playback_ids": [{"id": "pb123"}]}})

        _mock_http(mocker, handler)

        playback_id = await MuxService(settings).get_playback_id("https://cdn.example.com/highlights/a.mp4")

        assert playback_id == "pb123"
        assert seen["url"] == "https://api.mux.com/video/v1/assets"
        assert seen["auth"].startswith("Basic ")
        assert seen["body"] == {
            "input": "https://cdn.example.com/highlights/a.mp4",
            "playback_policy": ["public"],
            "video_quality": "basic",
        }

    @pytest.mark.asyncio
    async def test_minio_returns_mock_id(self, settings, mocker):
        settings.use_minio = True
        client = mocker.patch("highlight_renderer.services.mux_service.httpx.AsyncClient")

        playback_id = await MuxService(settings).get_playback_id("http://localhost:9000/a.mp4")

        assert playback_id.startswith("MOCK_")
        client.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credentials(self, settings):
        settings.mux_token_secret = None
        with pytest.raises(MuxError, match="MUX_TOKEN"):
            await MuxService(settings).get_playback_id("https://cdn.example.com/a.mp4")

    @pytest.mark.asyncio
    async def test_http_error(self, settings, mocker):
        _mock_http(mocker, lambda request: httpx.Response(401, text="unauthorized"))
        with pytest.raises(MuxError, match="401"):
            await MuxService(settings).get_playback_id("https://cdn.example.com/a.mp4")

    @pytest.mark.asyncio
    async def test_connection_error(self, settings, mocker):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        _mock_http(mocker, handler)
        with pytest.raises(MuxError, match="request failed"):
            await MuxService(settings).get_playback_id("https://cdn.example.com/a.mp4")

    @pytest.mark.asyncio
    async def test_response_without_playback_id(self, settings, mocker):
        _mock_http(mocker, lambda request: httpx.Response(201, json={"data": {"playback_ids": []}}))
        with pytest.raises(MuxError, match="no playback ID"):
            await MuxService(settings).get_playback_id("https://cdn.example.com/a.mp4")


def test_mock_playback_id_format():
    assert re.fullmatch(r"MOCK_\d+_[a-z0-9]{6}", generate_mock_playback_id())
