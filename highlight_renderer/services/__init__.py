"""
Services for the highlight renderer.

Includes:
- Filter composition (timeline, text layout, presets, composers)
- Rendering and publishing (ffmpeg, Spaces, Mux)
"""

from highlight_renderer.services.ffmpeg_renderer import FFmpegRenderer
from highlight_renderer.services.filter_graph import FilterFragment, FilterGraph, FilterStage
from highlight_renderer.services.font_provider import FontProvider
from highlight_renderer.services.graph_compiler import compile_filter_graph
from highlight_renderer.services.highlight_pipeline import HighlightPipeline
from highlight_renderer.services.media_downloader import MediaDownloaderService
from highlight_renderer.services.mux_service import MuxService
from highlight_renderer.services.payload_capture import CaptureConfig, PayloadCapture
from highlight_renderer.services.spaces_upload_service import SpacesUploadService

__all__ = [
    # Filter composition
    "FilterFragment",
    "FilterGraph",
    "FilterStage",
    "compile_filter_graph",
    # Rendering and publishing
    "FFmpegRenderer",
    "FontProvider",
    "HighlightPipeline",
    "MediaDownloaderService",
    "MuxService",
    "SpacesUploadService",
    # Development
    "CaptureConfig",
    "PayloadCapture",
]
