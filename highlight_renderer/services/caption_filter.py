"""
Caption Burn-in - drawtext captions timed against the extracted clip.

Each utterance gets the largest font that keeps its text within the preset's
line limit, centred horizontally and anchored above the frame bottom.
"""

import logging
from typing import Optional, Sequence

from highlight_renderer.services.filter_graph import (
    FilterFragment,
    FilterStage,
    enable_window,
    escape_filter_path,
)
from highlight_renderer.services.preset_resolver import CaptionPreset, Dimensions
from highlight_renderer.services.text_layout import (
    FontFit,
    calculate_optimal_font_size_with_start_and_cap,
    escape_text_for_ffmpeg,
)
from highlight_renderer.services.timeline import NormalizedUtterance

logger = logging.getLogger(__name__)


# Caption styling
FONT_COLOR = "white"
BOX_COLOR = "black@0.7"
BOX_BORDER_WIDTH = 5
BORDER_WIDTH = 2
BORDER_COLOR = "black"
LINE_SPACING = 4


def fit_caption_text(
    text: str,
    preset: CaptionPreset,
    frame: Dimensions,
    aspect_ratio: str,
) -> FontFit:
    """Font size and wrapped text for one caption."""
    available_width = frame.width - 2 * preset.side_padding
    return calculate_optimal_font_size_with_start_and_cap(
        text,
        aspect_ratio,
        preset.start_font,
        preset.max_font,
        preset.min_font,
        available_width,
        preset.max_lines,
    )


def generate_caption_filters(
    utterances: Sequence[NormalizedUtterance],
    preset: CaptionPreset,
    frame: Dimensions,
    aspect_ratio: str,
    font_path: Optional[str],
) -> Optional[FilterFragment]:
    """
    Build one drawtext filter per utterance, active during its
    ``[normalized_start, normalized_end)`` window.

    Returns None when there is nothing to draw.
    """
    font_option = f"fontfile={escape_filter_path(font_path)}:" if font_path else ""
    filters: list[str] = []

    for utterance in utterances:
        if not utterance.text.strip():
            continue

        fit = fit_caption_text(utterance.text, preset, frame, aspect_ratio)
        escaped = escape_text_for_ffmpeg(fit.wrapped_text)
        enable = enable_window(utterance.normalized_start, utterance.normalized_end)

        logger.debug(
            f"Caption {utterance.normalized_start:.1f}s-{utterance.normalized_end:.1f}s: "
            f"{fit.font_size}px, {fit.line_count} line(s)"
        )

        filters.append(
            f"drawtext={font_option}"
            f"text='{escaped}':"
            f"enable='{enable}':"
            f"x=(w-text_w)/2:"
            f"y=h-text_h-{preset.bottom_margin}:"
            f"fontsize={fit.font_size}:"
            f"fontcolor={FONT_COLOR}:"
            f"line_spacing={LINE_SPACING}:"
            f"box=1:"
            f"boxcolor={BOX_COLOR}:"
            f"boxborderw={BOX_BORDER_WIDTH}:"
            f"borderw={BORDER_WIDTH}:"
            f"bordercolor={BORDER_COLOR}"
        )

    if not filters:
        return None

    return FilterFragment(stage=FilterStage.CAPTIONS, filters=tuple(filters))
