"""
FFmpeg Renderer - extracts highlight segments from the source media and applies
the compiled filter graph in a single ffmpeg run.
"""

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from highlight_renderer.config import Settings, get_settings
from highlight_renderer.schemas.requests import MediaType
from highlight_renderer.services.filter_graph import FilterGraph
from highlight_renderer.services.preset_resolver import Dimensions
from highlight_renderer.services.timeline import Segment

logger = logging.getLogger(__name__)


# Output container per media type
OUTPUT_EXTENSIONS = {
    "video": ".mp4",
    "audio": ".mp3",
}


@dataclass
class RenderResult:
    """Result of rendering one highlight part."""

    output_path: str
    file_size_bytes: int
    duration: float


def _format_time(seconds: float) -> str:
    return f"{seconds:.6f}".rstrip("0").rstrip(".") or "0"


def build_filter_complex(
    segments: Sequence[Segment],
    media_type: MediaType,
    graph: Optional[FilterGraph] = None,
) -> tuple[str, list[str]]:
    """
    Build the ``-filter_complex`` text and the output labels to map.

    Every segment is trimmed from input 0 and reset to start at zero, then all
    of them are concatenated in order. For video, the serialized graph (if any)
    is chained after the concat: ``[concatv]<graph>[outv]``.
    """
    if not segments:
        raise ValueError("At least one segment is required")

    chains: list[str] = []
    for index, segment in enumerate(segments):
        start = _format_time(segment.start_timestamp)
        end = _format_time(segment.end_timestamp)
        if media_type == "video":
            chains.append(f"[0:v]trim=start={start}:end={end},setpts=PTS-STARTPTS[v{index}]")
        chains.append(f"[0:a]atrim=start={start}:end={end},asetpts=PTS-STARTPTS[a{index}]")

    n = len(segments)
    if media_type == "audio":
        inputs = "".join(f"[a{i}]" for i in range(n))
        chains.append(f"{inputs}concat=n={n}:v=0:a=1[outa]")
        return ";".join(chains), ["[outa]"]

    inputs = "".join(f"[v{i}][a{i}]" for i in range(n))
    chains.append(f"{inputs}concat=n={n}:v=1:a=1[concatv][concata]")

    video_filters = graph.serialize() if graph is not None else None
    if video_filters:
        chains.append(f"[concatv]{video_filters}[outv]")
        return ";".join(chains), ["[outv]", "[concata]"]

    return ";".join(chains), ["[concatv]", "[concata]"]


class FFmpegRenderer:
    """
    Service for probing and rendering highlight parts with ffmpeg.

    Commands run through ``subprocess.run`` in the default executor so the
    event loop is never blocked.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def ffmpeg_path(self) -> str:
        return self.settings.ffmpeg_path

    @property
    def ffprobe_path(self) -> str:
        return self.settings.ffprobe_path

    async def probe_dimensions(self, media_path: str) -> Dimensions:
        """Read the first video stream's width and height."""
        cmd = [
            self.ffprobe_path,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "csv=s=x:p=0",
            media_path,
        ]

        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True)
            )
        except OSError as e:
            raise ProbeError(f"Failed to run ffprobe: {e}") from e

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="replace").strip() if result.stderr else "Unknown error"
            raise ProbeError(f"ffprobe failed: {error_msg}")

        output = result.stdout.decode(errors="replace").strip()
        try:
            # Multiple lines appear when a container lists side data; first one wins
            width, height = output.splitlines()[0].split("x")[:2]
            dimensions = Dimensions(int(width), int(height))
        except (IndexError, ValueError) as e:
            raise ProbeError(f"Unexpected ffprobe output: {output!r}") from e

        if dimensions.width <= 0 or dimensions.height <= 0:
            raise ProbeError(f"Invalid dimensions from ffprobe: {dimensions}")

        logger.info(f"Probed {os.path.basename(media_path)}: {dimensions}")
        return dimensions

    def build_command(
        self,
        input_path: str,
        segments: Sequence[Segment],
        media_type: MediaType,
        output_path: str,
        graph: Optional[FilterGraph] = None,
    ) -> list[str]:
        """Assemble the ffmpeg argument list for one part."""
        filter_complex, outputs = build_filter_complex(segments, media_type, graph)

        cmd = [self.ffmpeg_path, "-i", input_path, "-filter_complex", filter_complex]
        for label in outputs:
            cmd.extend(["-map", label])

        if media_type == "audio":
            cmd.extend(["-c:a", "libmp3lame", "-b:a", "128k"])
        else:
            cmd.extend(["-c:v", "libx264", "-c:a", "aac"])

        cmd.extend(["-y", output_path])
        return cmd

    async def render(
        self,
        input_path: str,
        segments: Sequence[Segment],
        media_type: MediaType,
        output_path: str,
        graph: Optional[FilterGraph] = None,
    ) -> RenderResult:
        """
        Render ``segments`` of ``input_path`` into ``output_path``.

        Raises:
            RenderError: ffmpeg could not be started, timed out, exited
                non-zero, or produced no output file.
        """
        expected_ext = OUTPUT_EXTENSIONS[media_type]
        if not output_path.lower().endswith(expected_ext):
            raise RenderError(f"{media_type} output must be {expected_ext}: {output_path}")

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        duration = sum(s.duration for s in segments)
        logger.info(
            f"Rendering {media_type} part: {len(segments)} segment(s) "
            f"({', '.join(f'{s.start_timestamp:.2f}-{s.end_timestamp:.2f}' for s in segments)}), "
            f"{duration:.2f}s total"
        )

        cmd = self.build_command(input_path, segments, media_type, output_path, graph)
        await self._run_cmd(cmd)

        if not os.path.isfile(output_path):
            raise RenderError(f"Render failed: output file not created: {output_path}")

        file_size = os.path.getsize(output_path)
        logger.info(f"Part rendered: {output_path} ({file_size / 1024 / 1024:.1f} MB)")

        return RenderResult(
            output_path=output_path,
            file_size_bytes=file_size,
            duration=duration,
        )

    async def _run_cmd(self, cmd: list[str]) -> None:
        """Run ffmpeg in the default executor and raise on failure."""
        logger.debug(f"Running: {' '.join(cmd)}")
        timeout = self.settings.render_timeout_seconds

        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True, timeout=timeout)
            )
        except subprocess.TimeoutExpired as e:
            raise RenderError(
                f"FFmpeg timed out after {timeout}s",
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
            ) from e
        except OSError as e:
            raise RenderError(f"Failed to start ffmpeg ({cmd[0]}): {e}") from e

        if result.returncode != 0:
            stderr = _decode(result.stderr)
            logger.error(f"FFmpeg exited with code {result.returncode}: {stderr[-1000:]}")
            raise RenderError(
                f"FFmpeg process exited with code {result.returncode}",
                returncode=result.returncode,
                stdout=_decode(result.stdout),
                stderr=stderr,
            )


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    if isinstance(data, str):
        return data
    return data.decode(errors="replace")


class ProbeError(Exception):
    """Exception raised when media dimensions cannot be read."""
    pass


class RenderError(Exception):
    """Exception raised when ffmpeg fails to render a part."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        message = super().__str__()
        if self.stderr:
            return f"{message}: {self.stderr.strip()[-500:]}"
        return message
