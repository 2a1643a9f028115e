"""
Speaker Overlay - lower-third identity cards (name, role, party colour) drawn
while each speaker is talking.
"""

import logging
import math
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from highlight_renderer.services.filter_graph import (
    FilterFragment,
    FilterStage,
    enable_window,
    escape_filter_path,
    normalize_color,
)
from highlight_renderer.services.preset_resolver import Dimensions, SpeakerOverlayPreset
from highlight_renderer.services.text_layout import (
    escape_text_for_ffmpeg,
    estimate_text_width,
    wrap_words,
)
from highlight_renderer.services.timeline import NormalizedUtterance, Speaker

logger = logging.getLogger(__name__)


UNKNOWN_SPEAKER_NAME = "Unknown Speaker"

# Characters per role/party line
SPEAKER_TEXT_MAX_CHARS = 40
SOCIAL_SPEAKER_TEXT_MAX_CHARS = 28

DETAIL_SEPARATOR = " | "
BOX_COLOR = "black@0.6"
NAME_COLOR = "white"
DETAIL_COLOR = "white@0.85"

DisplayMode = Literal["always", "on_speaker_change"]


@dataclass(frozen=True)
class SpeakerDisplayInfo:
    """What the overlay shows for a speaker."""

    name: str
    role: Optional[str] = None
    party: Optional[str] = None
    party_color: Optional[str] = None

    @property
    def detail_text(self) -> str:
        return DETAIL_SEPARATOR.join(p for p in (self.role, self.party) if p)


@dataclass(frozen=True)
class SpeakerDisplaySegment:
    """A window on the clip timeline and whether the overlay shows in it."""

    start_timestamp: float
    end_timestamp: float
    speaker: Optional[Speaker]
    show_overlay: bool


def format_speaker_info(speaker: Optional[Speaker]) -> SpeakerDisplayInfo:
    """Display identity for a speaker; a missing speaker shows as unknown."""
    if speaker is None:
        return SpeakerDisplayInfo(name=UNKNOWN_SPEAKER_NAME)

    return SpeakerDisplayInfo(
        name=speaker.name or UNKNOWN_SPEAKER_NAME,
        role=speaker.role_label or None,
        party=speaker.party_label or None,
        party_color=speaker.party_color_hex or None,
    )


def wrap_speaker_text(text: str, is_social: bool, max_chars: Optional[int] = None) -> str:
    """
    Wrap role/party text to the overlay's line length.

    A single word longer than the limit is put on its own line rather than
    cut, so nothing is dropped silently.
    """
    if max_chars is None:
        max_chars = SOCIAL_SPEAKER_TEXT_MAX_CHARS if is_social else SPEAKER_TEXT_MAX_CHARS
    return "\n".join(wrap_words(text, max_chars))


def _speaker_key(speaker: Optional[Speaker]) -> Optional[str]:
    if speaker is None:
        return None
    return speaker.id or speaker.name


def calculate_speaker_display_segments(
    utterances: Sequence[NormalizedUtterance],
    mode: DisplayMode,
) -> list[SpeakerDisplaySegment]:
    """
    Decide overlay visibility per utterance on the clip timeline.

    ``always`` shows the overlay for every utterance. ``on_speaker_change``
    shows it only when the speaker differs from the previous utterance's
    (compared by id, falling back to name); the first utterance always shows.
    """
    if mode not in ("always", "on_speaker_change"):
        raise ValueError(f"Unknown speaker overlay mode: {mode}")

    segments: list[SpeakerDisplaySegment] = []
    previous_key: Optional[str] = None

    for i, utterance in enumerate(utterances):
        key = _speaker_key(utterance.speaker)
        if mode == "always":
            show = True
        else:
            show = i == 0 or key != previous_key
        previous_key = key

        segments.append(
            SpeakerDisplaySegment(
                start_timestamp=utterance.normalized_start,
                end_timestamp=utterance.normalized_end,
                speaker=utterance.speaker,
                show_overlay=show,
            )
        )

    return segments


def _overlay_filters(
    segment: SpeakerDisplaySegment,
    preset: SpeakerOverlayPreset,
    frame: Dimensions,
    is_social: bool,
    font_option: str,
) -> list[str]:
    info = format_speaker_info(segment.speaker)
    detail = info.detail_text
    detail_wrapped = (
        wrap_speaker_text(detail, is_social, preset.max_chars_per_line) if detail else ""
    )
    detail_lines = detail_wrapped.split("\n") if detail_wrapped else []

    bar_width = preset.bar_width if info.party_color else 0
    text_width = max(
        estimate_text_width(info.name, preset.name_font),
        estimate_text_width(detail_wrapped, preset.detail_font),
    )

    box_x = preset.margin_x
    box_w = min(
        math.ceil(bar_width + 2 * preset.padding + text_width),
        frame.width - 2 * preset.margin_x,
    )
    box_h = 2 * preset.padding + preset.name_font
    if detail_lines:
        box_h += len(detail_lines) * (preset.detail_font + preset.line_spacing)
    box_y = max(0, frame.height - preset.margin_bottom - box_h)

    text_x = box_x + bar_width + preset.padding
    name_y = box_y + preset.padding
    enable = enable_window(segment.start_timestamp, segment.end_timestamp)

    filters = [
        f"drawbox=x={box_x}:y={box_y}:w={box_w}:h={box_h}:"
        f"color={BOX_COLOR}:t=fill:enable='{enable}'",
    ]
    if info.party_color:
        filters.append(
            f"drawbox=x={box_x}:y={box_y}:w={bar_width}:h={box_h}:"
            f"color={normalize_color(info.party_color)}:t=fill:enable='{enable}'"
        )
    filters.append(
        f"drawtext={font_option}text='{escape_text_for_ffmpeg(info.name)}':"
        f"x={text_x}:y={name_y}:fontsize={preset.name_font}:fontcolor={NAME_COLOR}:"
        f"enable='{enable}'"
    )
    if detail_lines:
        detail_y = name_y + preset.name_font + preset.line_spacing
        filters.append(
            f"drawtext={font_option}text='{escape_text_for_ffmpeg(detail_wrapped)}':"
            f"x={text_x}:y={detail_y}:fontsize={preset.detail_font}:fontcolor={DETAIL_COLOR}:"
            f"line_spacing={preset.line_spacing}:enable='{enable}'"
        )
    return filters


def generate_speaker_overlay_filter(
    utterances: Sequence[NormalizedUtterance],
    preset: SpeakerOverlayPreset,
    frame: Dimensions,
    aspect_ratio: str,
    font_path: Optional[str],
    mode: DisplayMode = "always",
) -> Optional[FilterFragment]:
    """
    Build timed overlay cards for ``utterances`` (already normalized).

    Returns None when no segment is visible.
    """
    is_social = aspect_ratio == "social-9x16"
    font_option = f"fontfile={escape_filter_path(font_path)}:" if font_path else ""

    filters: list[str] = []
    display_segments = calculate_speaker_display_segments(utterances, mode)
    for segment in display_segments:
        if segment.show_overlay:
            filters.extend(_overlay_filters(segment, preset, frame, is_social, font_option))

    if not filters:
        return None

    visible = sum(1 for s in display_segments if s.show_overlay)
    logger.debug(f"Speaker overlay: {visible}/{len(display_segments)} segments visible ({mode})")
    return FilterFragment(stage=FilterStage.SPEAKER_OVERLAY, filters=tuple(filters))
