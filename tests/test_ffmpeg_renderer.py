"""
Unit tests for the ffmpeg renderer. ffmpeg itself is never invoked.
"""

import subprocess

import pytest

from highlight_renderer.services.ffmpeg_renderer import (
    FFmpegRenderer,
    ProbeError,
    RenderError,
    build_filter_complex,
)
from highlight_renderer.services.filter_graph import FilterFragment, FilterGraph, FilterStage
from highlight_renderer.services.preset_resolver import Dimensions
from highlight_renderer.services.timeline import Segment


def _completed(returncode=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestBuildFilterComplex:
    """Tests for build_filter_complex."""

    def test_video_without_graph(self):
        filter_complex, outputs = build_filter_complex([Segment(100, 105), Segment(200, 203.5)], "video")

        assert filter_complex == (
            "[0:v]trim=start=100:end=105,setpts=PTS-STARTPTS[v0];"
            "[0:a]atrim=start=100:end=105,asetpts=PTS-STARTPTS[a0];"
            "[0:v]trim=start=200:end=203.5,setpts=PTS-STARTPTS[v1];"
            "[0:a]atrim=start=200:end=203.5,asetpts=PTS-STARTPTS[a1];"
            "[v0][a0][v1][a1]concat=n=2:v=1:a=1[concatv][concata]"
        )
        assert outputs == ["[concatv]", "[concata]"]

    def test_video_with_graph(self):
        graph = FilterGraph(captions=FilterFragment(FilterStage.CAPTIONS, ("drawtext=x",)))
        filter_complex, outputs = build_filter_complex([Segment(0, 5)], "video", graph)

        assert filter_complex.endswith(";[concatv]drawtext=x[outv]")
        assert outputs == ["[outv]", "[concata]"]

    def test_empty_graph_skips_filtering(self):
        filter_complex, outputs = build_filter_complex([Segment(0, 5)], "video", FilterGraph())
        assert "[outv]" not in filter_complex
        assert outputs == ["[concatv]", "[concata]"]

    def test_audio(self):
        filter_complex, outputs = build_filter_complex([Segment(0, 5), Segment(10, 12)], "audio")

        assert "[0:v]" not in filter_complex
        assert filter_complex.endswith("[a0][a1]concat=n=2:v=0:a=1[outa]")
        assert outputs == ["[outa]"]

    def test_no_segments(self):
        with pytest.raises(ValueError):
            build_filter_complex([], "video")


class TestBuildCommand:
    """Tests for FFmpegRenderer.build_command."""

    def test_video_codecs(self, settings):
        cmd = FFmpegRenderer(settings).build_command("in.mp4", [Segment(0, 5)], "video", "out.mp4")
        assert cmd[0] == "ffmpeg"
        assert cmd[-2:] == ["-y", "out.mp4"]
        assert "libx264" in cmd
        assert cmd[cmd.index("-c:a") + 1] == "aac"

    def test_audio_codecs(self, settings):
        cmd = FFmpegRenderer(settings).build_command("in.mp3", [Segment(0, 5)], "audio", "out.mp3")
        assert cmd[cmd.index("-c:a") + 1] == "libmp3lame"
        assert cmd[cmd.index("-b:a") + 1] == "128k"
        assert "-c:v" not in cmd

    def test_binary_from_settings(self, settings):
        settings.ffmpeg_path = "/nix/store/bin/ffmpeg"
        cmd = FFmpegRenderer(settings).build_command("in.mp4", [Segment(0, 5)], "video", "out.mp4")
        assert cmd[0] == "/nix/store/bin/ffmpeg"


class TestProbeDimensions:
    """Tests for FFmpegRenderer.probe_dimensions."""

    @pytest.mark.asyncio
    async def test_parses_output(self, settings, mocker):
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            return_value=_completed(stdout=b"1920x1080\n"),
        )
        assert await FFmpegRenderer(settings).probe_dimensions("in.mp4") == Dimensions(1920, 1080)

    @pytest.mark.asyncio
    async def test_failure_raises_probe_error(self, settings, mocker):
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            return_value=_completed(returncode=1, stderr=b"No such file"),
        )
        with pytest.raises(ProbeError):
            await FFmpegRenderer(settings).probe_dimensions("missing.mp4")

    @pytest.mark.asyncio
    async def test_garbage_output_raises_probe_error(self, settings, mocker):
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            return_value=_completed(stdout=b""),
        )
        with pytest.raises(ProbeError):
            await FFmpegRenderer(settings).probe_dimensions("audio-only.mp4")


class TestRender:
    """Tests for FFmpegRenderer.render."""

    @pytest.mark.asyncio
    async def test_success(self, settings, mocker, tmp_path):
        output = tmp_path / "out.mp4"

        def fake_run(cmd, capture_output, timeout):
            output.write_bytes(b"video")
            return _completed()

        run = mocker.patch("highlight_renderer.services.ffmpeg_renderer.subprocess.run", side_effect=fake_run)
        result = await FFmpegRenderer(settings).render(
            "in.mp4", [Segment(0, 5), Segment(10, 12)], "video", str(output)
        )

        assert result.output_path == str(output)
        assert result.duration == pytest.approx(7)
        assert result.file_size_bytes == 5
        assert run.call_args.kwargs["timeout"] is None

    @pytest.mark.asyncio
    async def test_nonzero_exit_carries_diagnostics(self, settings, mocker, tmp_path):
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            return_value=_completed(returncode=1, stdout=b"out", stderr=b"Invalid filter"),
        )
        with pytest.raises(RenderError) as exc_info:
            await FFmpegRenderer(settings).render(
                "in.mp4", [Segment(0, 5)], "video", str(tmp_path / "out.mp4")
            )

        assert exc_info.value.returncode == 1
        assert exc_info.value.stdout == "out"
        assert exc_info.value.stderr == "Invalid filter"
        assert "Invalid filter" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self, settings, mocker, tmp_path):
        settings.render_timeout_seconds = 5
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5),
        )
        with pytest.raises(RenderError, match="timed out"):
            await FFmpegRenderer(settings).render(
                "in.mp4", [Segment(0, 5)], "video", str(tmp_path / "out.mp4")
            )

    @pytest.mark.asyncio
    async def test_missing_output(self, settings, mocker, tmp_path):
        mocker.patch(
            "highlight_renderer.services.ffmpeg_renderer.subprocess.run",
            return_value=_completed(),
        )
        with pytest.raises(RenderError, match="not created"):
            await FFmpegRenderer(settings).render(
                "in.mp4", [Segment(0, 5)], "video", str(tmp_path / "out.mp4")
            )

    @pytest.mark.asyncio
    async def test_wrong_extension(self, settings, tmp_path):
        with pytest.raises(RenderError):
            await FFmpegRenderer(settings).render(
                "in.mp3", [Segment(0, 5)], "audio", str(tmp_path / "out.mp4")
            )
