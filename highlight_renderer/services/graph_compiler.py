"""
Compiles render options into a FilterGraph for one highlight part.

Stage order is fixed: the aspect transform changes the frame that overlay and
caption positions are computed against, and captions go last so nothing is
drawn over them.
"""

import logging
from typing import Optional, Sequence

from highlight_renderer.schemas.requests import RenderOptions
from highlight_renderer.services.caption_filter import generate_caption_filters
from highlight_renderer.services.filter_graph import FilterGraph
from highlight_renderer.services.preset_resolver import (
    Dimensions,
    ResolvedPreset,
    format_resolution,
    get_preset_config,
)
from highlight_renderer.services.social_filter import generate_social_filter
from highlight_renderer.services.speaker_overlay import DisplayMode, generate_speaker_overlay_filter
from highlight_renderer.services.timeline import NormalizedUtterance

logger = logging.getLogger(__name__)


def resolve_preset(source: Dimensions, render: RenderOptions) -> ResolvedPreset:
    return get_preset_config(format_resolution(source.width, source.height), render.aspect_ratio)


def compile_filter_graph(
    utterances: Sequence[NormalizedUtterance],
    render: RenderOptions,
    source: Dimensions,
    font_path: Optional[str] = None,
    overlay_mode: DisplayMode = "always",
) -> FilterGraph:
    """
    Build the graph for ``utterances`` on the extracted clip's timeline.

    Disabled stages are left empty; a graph with no active stage serializes
    to None and the renderer skips filtering.
    """
    preset = resolve_preset(source, render)
    style = render.aspect_ratio

    aspect = None
    if render.is_social:
        aspect = generate_social_filter(
            render.resolved_social_options(),
            source.width,
            source.height,
            preset.dimensions,
        )

    speaker_overlay = None
    if render.include_speaker_overlay:
        speaker_overlay = generate_speaker_overlay_filter(
            utterances,
            preset.speaker_overlay_for(style),
            preset.dimensions,
            style,
            font_path,
            overlay_mode,
        )

    captions = None
    if render.include_captions:
        captions = generate_caption_filters(
            utterances,
            preset.caption_for(style),
            preset.dimensions,
            style,
            font_path,
        )

    graph = FilterGraph(aspect=aspect, speaker_overlay=speaker_overlay, captions=captions)
    logger.info(
        f"Filter graph for {len(utterances)} utterance(s): "
        f"stages={[s.value for s in graph.stages] or 'none'}, frame={preset.dimensions}"
    )
    return graph
