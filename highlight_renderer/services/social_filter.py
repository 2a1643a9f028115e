"""
Aspect Transform - reformats landscape video into a 9:16 portrait frame with
blurred or solid-colour margins.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from highlight_renderer.schemas.requests import SocialOptions
from highlight_renderer.services.filter_graph import FilterFragment, FilterStage, normalize_color
from highlight_renderer.services.preset_resolver import (
    Dimensions,
    format_resolution,
    get_preset_config,
)

logger = logging.getLogger(__name__)


MIN_ZOOM_FACTOR = 0.6
MAX_ZOOM_FACTOR = 1.0
BACKGROUND_BLUR_SIGMA = 20
SOCIAL_DAR = "9/16"


@dataclass(frozen=True)
class ForegroundGeometry:
    """Scale and centre-crop applied to the sharp foreground video."""

    scaled_width: int
    scaled_height: int
    crop_width: int
    crop_height: int

    @property
    def needs_crop(self) -> bool:
        return self.crop_width < self.scaled_width or self.crop_height < self.scaled_height

    @property
    def crop_x(self) -> int:
        return (self.scaled_width - self.crop_width) // 2

    @property
    def crop_y(self) -> int:
        return (self.scaled_height - self.crop_height) // 2

    def filters(self) -> list[str]:
        parts = [f"scale={self.scaled_width}:{self.scaled_height}"]
        if self.needs_crop:
            parts.append(
                f"crop={self.crop_width}:{self.crop_height}:{self.crop_x}:{self.crop_y}"
            )
        return parts


def clamp_zoom_factor(zoom_factor: float) -> float:
    """Clamp caller input to the supported zoom band."""
    return max(MIN_ZOOM_FACTOR, min(MAX_ZOOM_FACTOR, zoom_factor))


def _even(value: float) -> int:
    # yuv420p needs even dimensions
    return max(2, 2 * round(value / 2))


def calculate_foreground_geometry(
    zoom_factor: float,
    input_width: int,
    input_height: int,
    output: Dimensions,
) -> ForegroundGeometry:
    """
    Size the foreground for the portrait frame.

    At zoom 1.0 the whole source fits inside the frame. Lower values keep
    only ``zoom_factor`` of the fitted width visible: the source is enlarged
    by ``1 / zoom_factor`` and centre-cropped to the frame.
    """
    zoom = clamp_zoom_factor(zoom_factor)
    fit_scale = min(output.width / input_width, output.height / input_height)
    scale = fit_scale / zoom

    scaled_width = _even(input_width * scale)
    scaled_height = _even(input_height * scale)

    return ForegroundGeometry(
        scaled_width=scaled_width,
        scaled_height=scaled_height,
        crop_width=min(scaled_width, output.width),
        crop_height=min(scaled_height, output.height),
    )


def _resolve_output(
    input_width: int, input_height: int, output: Optional[Dimensions]
) -> Dimensions:
    if output is not None:
        return output
    return get_preset_config(format_resolution(input_width, input_height), "social-9x16").dimensions


def generate_blurred_margin_filter(
    zoom_factor: float,
    input_width: int,
    input_height: int,
    output: Optional[Dimensions] = None,
) -> FilterFragment:
    """Sharp video centred on a blurred, frame-filling copy of itself."""
    frame = _resolve_output(input_width, input_height, output)
    geometry = calculate_foreground_geometry(zoom_factor, input_width, input_height, frame)

    subgraph = ";".join([
        "split=2[bg][video]",
        f"[bg]scale={frame.width}:{frame.height}:force_original_aspect_ratio=increase,"
        f"crop={frame.width}:{frame.height},gblur=sigma={BACKGROUND_BLUR_SIGMA}[blurred]",
        f"[video]{','.join(geometry.filters())}[fg]",
        "[blurred][fg]overlay=(W-w)/2:(H-h)/2",
    ])

    return FilterFragment(
        stage=FilterStage.ASPECT,
        filters=(subgraph, "setsar=1", f"setdar={SOCIAL_DAR}"),
    )


def generate_solid_margin_filter(
    zoom_factor: float,
    background_color: str,
    input_width: int,
    input_height: int,
    output: Optional[Dimensions] = None,
) -> FilterFragment:
    """Video centred on a solid-colour portrait canvas."""
    frame = _resolve_output(input_width, input_height, output)
    geometry = calculate_foreground_geometry(zoom_factor, input_width, input_height, frame)

    return FilterFragment(
        stage=FilterStage.ASPECT,
        filters=(
            *geometry.filters(),
            f"pad={frame.width}:{frame.height}:(ow-iw)/2:(oh-ih)/2:{normalize_color(background_color)}",
            "format=yuv420p",
            "setsar=1",
            f"setdar={SOCIAL_DAR}",
        ),
    )


def generate_social_filter(
    options: SocialOptions,
    input_width: int,
    input_height: int,
    output: Optional[Dimensions] = None,
) -> FilterFragment:
    """Build the portrait transform selected by ``options.margin_type``."""
    zoom = clamp_zoom_factor(options.zoom_factor)
    if zoom != options.zoom_factor:
        logger.warning(f"zoomFactor {options.zoom_factor} clamped to {zoom}")

    logger.debug(
        f"Social filter: margin={options.margin_type}, zoom={zoom}, "
        f"input={format_resolution(input_width, input_height)}"
    )

    if options.margin_type == "blur":
        return generate_blurred_margin_filter(zoom, input_width, input_height, output)
    return generate_solid_margin_filter(
        zoom, options.background_color, input_width, input_height, output
    )
