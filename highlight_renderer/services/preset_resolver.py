"""
Preset Resolver - maps a source resolution and target aspect ratio to an
output frame size and the layout constants used by the caption and speaker
overlay composers.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


PORTRAIT_ASPECT_RATIOS = {"social-9x16"}


@dataclass(frozen=True)
class Dimensions:
    """Frame size in pixels."""

    width: int
    height: int

    def swapped(self) -> "Dimensions":
        return Dimensions(width=self.height, height=self.width)

    def __str__(self) -> str:
        return format_resolution(self.width, self.height)


@dataclass(frozen=True)
class CaptionPreset:
    """Caption font bounds and placement for one style."""

    start_font: int
    max_font: int
    min_font: int
    max_lines: int
    bottom_margin: int  # Distance from the frame bottom to the caption baseline box
    side_padding: int  # Horizontal space kept free on each side


@dataclass(frozen=True)
class SpeakerOverlayPreset:
    """Speaker lower-third sizes and placement for one style."""

    name_font: int
    detail_font: int
    margin_x: int
    margin_bottom: int  # Distance from the frame bottom to the overlay box
    padding: int
    bar_width: int
    line_spacing: int
    max_chars_per_line: int


@dataclass(frozen=True)
class PresetConfig:
    """All layout constants for one source resolution."""

    resolution: str
    dimensions: Dimensions
    caption: dict[str, CaptionPreset]
    speaker_overlay: dict[str, SpeakerOverlayPreset]


@dataclass(frozen=True)
class ResolvedPreset:
    """Preset plus the output frame dimensions for the requested aspect ratio."""

    config: PresetConfig
    dimensions: Dimensions

    def caption_for(self, style: str) -> CaptionPreset:
        return self.config.caption[style]

    def speaker_overlay_for(self, style: str) -> SpeakerOverlayPreset:
        return self.config.speaker_overlay[style]


# Ordered: the first entry is the fallback for unknown resolutions.
# Social styles are laid out against the swapped (portrait) frame, with
# captions and the overlay sitting in the margin below the centred video.
RESOLUTION_PRESETS: dict[str, PresetConfig] = {
    "1280x720": PresetConfig(
        resolution="1280x720",
        dimensions=Dimensions(1280, 720),
        caption={
            "default": CaptionPreset(
                start_font=32, max_font=36, min_font=24, max_lines=2,
                bottom_margin=50, side_padding=80,
            ),
            "social-9x16": CaptionPreset(
                start_font=36, max_font=40, min_font=26, max_lines=3,
                bottom_margin=300, side_padding=40,
            ),
        },
        speaker_overlay={
            "default": SpeakerOverlayPreset(
                name_font=28, detail_font=20, margin_x=40, margin_bottom=150,
                padding=12, bar_width=8, line_spacing=6, max_chars_per_line=40,
            ),
            "social-9x16": SpeakerOverlayPreset(
                name_font=30, detail_font=22, margin_x=30, margin_bottom=950,
                padding=12, bar_width=8, line_spacing=6, max_chars_per_line=28,
            ),
        },
    ),
    "1920x1080": PresetConfig(
        resolution="1920x1080",
        dimensions=Dimensions(1920, 1080),
        caption={
            "default": CaptionPreset(
                start_font=48, max_font=54, min_font=36, max_lines=2,
                bottom_margin=75, side_padding=120,
            ),
            "social-9x16": CaptionPreset(
                start_font=54, max_font=60, min_font=40, max_lines=3,
                bottom_margin=450, side_padding=60,
            ),
        },
        speaker_overlay={
            "default": SpeakerOverlayPreset(
                name_font=42, detail_font=30, margin_x=60, margin_bottom=225,
                padding=18, bar_width=12, line_spacing=9, max_chars_per_line=40,
            ),
            "social-9x16": SpeakerOverlayPreset(
                name_font=45, detail_font=33, margin_x=45, margin_bottom=1425,
                padding=18, bar_width=12, line_spacing=9, max_chars_per_line=28,
            ),
        },
    ),
    "854x480": PresetConfig(
        resolution="854x480",
        dimensions=Dimensions(854, 480),
        caption={
            "default": CaptionPreset(
                start_font=22, max_font=24, min_font=16, max_lines=2,
                bottom_margin=34, side_padding=54,
            ),
            "social-9x16": CaptionPreset(
                start_font=24, max_font=28, min_font=18, max_lines=3,
                bottom_margin=200, side_padding=26,
            ),
        },
        speaker_overlay={
            "default": SpeakerOverlayPreset(
                name_font=19, detail_font=14, margin_x=26, margin_bottom=100,
                padding=8, bar_width=6, line_spacing=4, max_chars_per_line=40,
            ),
            "social-9x16": SpeakerOverlayPreset(
                name_font=20, detail_font=15, margin_x=20, margin_bottom=633,
                padding=8, bar_width=6, line_spacing=4, max_chars_per_line=28,
            ),
        },
    ),
}


def format_resolution(width: int, height: int) -> str:
    """Format a resolution key, e.g. ``1280x720``."""
    return f"{width}x{height}"


def get_preset_config(resolution: str, aspect_ratio: str) -> ResolvedPreset:
    """
    Resolve layout constants and output dimensions.

    An exact resolution match returns that preset; anything else (including
    malformed strings) falls back to the first table entry. Portrait targets
    get the preset's dimensions with width and height swapped. Never raises.
    """
    config = RESOLUTION_PRESETS.get(resolution.strip().lower())
    if config is None:
        config = next(iter(RESOLUTION_PRESETS.values()))
        logger.info(
            f"No preset for resolution {resolution!r}, falling back to {config.resolution}"
        )

    dimensions = config.dimensions
    if aspect_ratio in PORTRAIT_ASPECT_RATIOS:
        dimensions = dimensions.swapped()

    return ResolvedPreset(config=config, dimensions=dimensions)
