"""
Highlight Pipeline - orchestrates rendering of highlight clips.

For each requested part:
1. Bridge small gaps between utterances and build extraction segments
2. Rebuild the utterance timeline relative to the extracted clip
3. Compile the filter graph (aspect transform, speaker overlay, captions)
4. Render with ffmpeg
5. Upload to Spaces and register video outputs with Mux

The source media is downloaded and probed once per request. Parts render
sequentially because they share the downloaded source and ffmpeg is already
CPU heavy.
"""

import logging
import os
import shutil
import time
import uuid
from typing import Any, Callable, Optional, Union

from highlight_renderer.config import Settings, get_settings
from highlight_renderer.schemas.requests import GenerateHighlightRequest, HighlightPart
from highlight_renderer.schemas.responses import (
    GenerateHighlightResult,
    PartFailure,
    RenderedPart,
)
from highlight_renderer.services.ffmpeg_renderer import (
    OUTPUT_EXTENSIONS,
    FFmpegRenderer,
    ProbeError,
    RenderError,
)
from highlight_renderer.services.font_provider import FontDownloadError, FontProvider
from highlight_renderer.services.graph_compiler import compile_filter_graph
from highlight_renderer.services.media_downloader import MediaDownloaderService
from highlight_renderer.services.mux_service import MuxError, MuxService
from highlight_renderer.services.payload_capture import PayloadCapture
from highlight_renderer.services.preset_resolver import Dimensions
from highlight_renderer.services.spaces_upload_service import SpacesUploadService, UploadError
from highlight_renderer.services.timeline import (
    Speaker,
    Utterance,
    bridge_utterance_gaps,
    normalize_utterance_timestamps,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

TASK_TYPE = "generateHighlight"

# Overall progress milestones (percent)
PROGRESS_DOWNLOADING = 1
PROGRESS_PREPARING = 3
PROGRESS_PARTS_START = 5
PROGRESS_PARTS_SPAN = 90

# Intra-part milestones (percent of one part)
PART_PROGRESS_COMPILED = 10
PART_PROGRESS_RENDERED = 60
PART_PROGRESS_UPLOADED = 90
PART_PROGRESS_DONE = 100


class ProgressReporter:
    """
    Forwards progress to the caller, never letting the reported value go
    down or above 100.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.last_percent = 0.0

    def report(self, stage: str, percent: float) -> None:
        percent = min(100.0, max(self.last_percent, percent))
        self.last_percent = percent

        logger.debug(f"Progress: {stage} ({percent:.1f}%)")
        if self.callback:
            try:
                self.callback(stage, percent)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def part(self, index: int, total: int) -> Callable[[float], None]:
        """Reporter for one part, mapping its 0-100 onto its share of the run."""
        stage = f"processing highlight {index + 1}/{total}"

        def report_part(current: float) -> None:
            self.report(
                stage,
                PROGRESS_PARTS_START
                + (index / total) * PROGRESS_PARTS_SPAN
                + current / total * (PROGRESS_PARTS_SPAN / 100),
            )

        return report_part


def to_utterances(part: HighlightPart) -> list[Utterance]:
    """Convert a request part into timeline utterances."""
    utterances = []
    for u in part.utterances:
        speaker = None
        if u.speaker is not None:
            speaker = Speaker(
                id=u.speaker.id,
                name=u.speaker.name,
                role_label=u.speaker.role_label,
                party_label=u.speaker.party_label,
                party_color_hex=u.speaker.party_color_hex,
            )
        utterances.append(
            Utterance(
                text=u.text,
                start_timestamp=u.start_timestamp,
                end_timestamp=u.end_timestamp,
                speaker=speaker,
                utterance_id=u.utterance_id,
            )
        )
    return utterances


class HighlightPipeline:
    """
    Renders every part of a highlight request and collects per-part outcomes.

    Collaborators default to the real services and can be injected for tests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        downloader: Optional[MediaDownloaderService] = None,
        renderer: Optional[FFmpegRenderer] = None,
        uploader: Optional[SpacesUploadService] = None,
        mux_service: Optional[MuxService] = None,
        font_provider: Optional[FontProvider] = None,
        payload_capture: Optional[PayloadCapture] = None,
    ):
        self.settings = settings or get_settings()
        self.downloader = downloader or MediaDownloaderService(self.settings)
        self.renderer = renderer or FFmpegRenderer(self.settings)
        self.uploader = uploader or SpacesUploadService(self.settings)
        self.mux_service = mux_service or MuxService(self.settings)
        self.font_provider = font_provider or FontProvider(self.settings)
        self.payload_capture = payload_capture or PayloadCapture(settings=self.settings)

    async def generate_highlight(
        self,
        request: Union[GenerateHighlightRequest, dict[str, Any]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerateHighlightResult:
        """
        Render, upload and register every part of ``request``.

        Args:
            request: Validated request, or a raw camelCase payload
            on_progress: Called as ``on_progress(stage, percent)``

        Returns:
            GenerateHighlightResult with rendered parts and any part failures

        Raises:
            pydantic.ValidationError: Malformed payload (before any I/O)
            DownloadError: Source media could not be fetched
            RenderError, UploadError: A part failed and
                ``continue_on_part_error`` is disabled
        """
        if isinstance(request, dict):
            payload = request
            request = GenerateHighlightRequest.model_validate(request)
        else:
            payload = request.model_dump(mode="json", by_alias=True)

        self.payload_capture.capture(TASK_TYPE, payload)

        progress = ProgressReporter(on_progress)
        progress.report("starting", 0)

        start_time = time.time()
        work_dir = os.path.join(self.settings.work_directory, uuid.uuid4().hex)

        try:
            os.makedirs(work_dir, exist_ok=True)
            logger.info(
                f"Generating {len(request.parts)} highlight(s) from {request.media.type} "
                f"{request.media.video_url}"
            )
            logger.info(
                f"Render options: aspect={request.render.aspect_ratio}, "
                f"captions={request.render.include_captions}, "
                f"speaker_overlay={request.render.include_speaker_overlay}"
            )

            progress.report("downloading", PROGRESS_DOWNLOADING)
            download = await self.downloader.download(request.media.video_url, work_dir)

            progress.report("preparing", PROGRESS_PREPARING)
            source = await self._probe_source(download.media_path, request)
            font_path = await self._resolve_font(request)

            result = GenerateHighlightResult()
            total = len(request.parts)

            for i, part in enumerate(request.parts):
                report_part = progress.part(i, total)
                try:
                    rendered = await self._process_part(
                        part, request, download.media_path, source, font_path, work_dir, report_part
                    )
                except (RenderError, UploadError) as e:
                    stage = "render" if isinstance(e, RenderError) else "upload"
                    logger.error(f"Highlight {part.id} failed during {stage}: {e}")
                    if not self.settings.continue_on_part_error:
                        raise
                    result.failures.append(PartFailure(id=part.id, stage=stage, error=str(e)))
                    report_part(PART_PROGRESS_DONE)
                    continue

                result.parts.append(rendered)

            progress.report("processing complete", 100)

            logger.info(
                f"Highlight request completed in {time.time() - start_time:.1f}s: "
                f"{len(result.parts)} rendered, {len(result.failures)} failed"
            )
            return result

        finally:
            if os.path.isdir(work_dir):
                try:
                    shutil.rmtree(work_dir)
                except OSError as e:
                    logger.warning(f"Failed to cleanup work dir: {e}")

    async def _probe_source(
        self, media_path: str, request: GenerateHighlightRequest
    ) -> Optional[Dimensions]:
        """Source frame size for video; None for audio."""
        if request.media.type != "video":
            return None

        try:
            return await self.renderer.probe_dimensions(media_path)
        except ProbeError as e:
            fallback = Dimensions(*self.settings.fallback_dimensions)
            logger.warning(f"Could not detect resolution, using {fallback}: {e}")
            return fallback

    async def _resolve_font(self, request: GenerateHighlightRequest) -> Optional[str]:
        if not request.render.needs_font:
            return None

        try:
            return await self.font_provider.ensure_font()
        except FontDownloadError as e:
            logger.warning(f"Caption font unavailable, using ffmpeg's default font: {e}")
            return None

    async def _process_part(
        self,
        part: HighlightPart,
        request: GenerateHighlightRequest,
        media_path: str,
        source: Optional[Dimensions],
        font_path: Optional[str],
        work_dir: str,
        report_part: Callable[[float], None],
    ) -> RenderedPart:
        media_type = request.media.type
        report_part(0)

        bridged = bridge_utterance_gaps(
            to_utterances(part), self.settings.utterance_gap_threshold_seconds
        )
        segments = bridged.segments
        if not segments:
            raise RenderError(f"Highlight {part.id} has no extractable segments")

        graph = None
        if media_type == "video" and source is not None:
            normalized = normalize_utterance_timestamps(bridged.adjusted_utterances)
            overlay_mode = (
                request.render.speaker_overlay_mode
                or self.settings.default_speaker_overlay_mode
            )
            graph = compile_filter_graph(
                normalized, request.render, source, font_path, overlay_mode
            )
        report_part(PART_PROGRESS_COMPILED)

        output_path = os.path.join(work_dir, f"{uuid.uuid4().hex}{OUTPUT_EXTENSIONS[media_type]}")
        try:
            rendered = await self.renderer.render(
                media_path, segments, media_type, output_path, graph
            )
            report_part(PART_PROGRESS_RENDERED)

            upload_span = PART_PROGRESS_UPLOADED - PART_PROGRESS_RENDERED
            urls = await self.uploader.upload_files(
                [rendered.output_path],
                self.settings.highlights_spaces_path,
                lambda _stage, pct: report_part(PART_PROGRESS_RENDERED + pct / 100 * upload_span),
            )
            if len(urls) != 1:
                raise UploadError(f"Expected 1 uploaded URL, got {len(urls)}!")
            report_part(PART_PROGRESS_UPLOADED)
        finally:
            if os.path.isfile(output_path):
                try:
                    os.remove(output_path)
                except OSError as e:
                    logger.warning(f"Failed to clean up {output_path}: {e}")

        mux_playback_id = None
        if media_type == "video":
            mux_playback_id = await self._get_playback_id(part.id, urls[0])
        report_part(PART_PROGRESS_DONE)

        logger.info(f"Highlight {part.id} ready: {urls[0]} ({rendered.duration:.2f}s)")

        return RenderedPart(
            id=part.id,
            url=urls[0],
            duration=rendered.duration,
            start_timestamp=segments[0].start_timestamp,
            end_timestamp=segments[-1].end_timestamp,
            mux_playback_id=mux_playback_id,
        )

    async def _get_playback_id(self, part_id: str, url: str) -> Optional[str]:
        try:
            return await self.mux_service.get_playback_id(url)
        except MuxError as e:
            logger.error(f"Mux registration failed for highlight {part_id}: {e}")
            return None
