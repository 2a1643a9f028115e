"""
Filter graph model shared by the composers and the ffmpeg renderer.

Composers return typed fragments; the graph holds them in a fixed slot order
(aspect transform, speaker overlay, captions) and is only turned into
filtergraph text when the ffmpeg command is built.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional


class FilterStage(str, Enum):
    """Stages of the highlight filter graph, in application order."""

    ASPECT = "aspect"
    SPEAKER_OVERLAY = "speaker_overlay"
    CAPTIONS = "captions"


@dataclass(frozen=True)
class FilterFragment:
    """
    One stage of the graph: a linear run of filters applied to the output of
    the previous stage.

    An element of ``filters`` may itself be a labelled sub-graph
    (``split=2[a][b];[a]...``) as long as it ends in a single unlabelled output.
    """

    stage: FilterStage
    filters: tuple[str, ...]

    def render(self) -> str:
        return ",".join(self.filters)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class FilterGraph:
    """Ordered slots for the three optional stages."""

    aspect: Optional[FilterFragment] = None
    speaker_overlay: Optional[FilterFragment] = None
    captions: Optional[FilterFragment] = None

    def __post_init__(self):
        for expected, fragment in (
            (FilterStage.ASPECT, self.aspect),
            (FilterStage.SPEAKER_OVERLAY, self.speaker_overlay),
            (FilterStage.CAPTIONS, self.captions),
        ):
            if fragment is not None and fragment.stage != expected:
                raise ValueError(
                    f"{fragment.stage.value} fragment placed in the {expected.value} slot"
                )

    def fragments(self) -> Iterator[FilterFragment]:
        """Active fragments in application order."""
        for fragment in (self.aspect, self.speaker_overlay, self.captions):
            if fragment is not None and fragment.filters:
                yield fragment

    @property
    def stages(self) -> list[FilterStage]:
        return [f.stage for f in self.fragments()]

    @property
    def is_empty(self) -> bool:
        return not any(True for _ in self.fragments())

    def serialize(self) -> Optional[str]:
        """Filtergraph text, or None when no stage is active."""
        if self.is_empty:
            return None
        return ",".join(f.render() for f in self.fragments())


def enable_window(start: float, end: float) -> str:
    """Half-open ``[start, end)`` timeline expression for ``enable=``."""
    return f"gte(t,{start:.3f})*lt(t,{end:.3f})"


def normalize_color(color: str) -> str:
    """Convert ``#RRGGBB`` to ffmpeg's ``0xRRGGBB``; colour names pass through."""
    color = color.strip()
    if color.startswith("#"):
        return f"0x{color[1:]}"
    return color


def escape_filter_path(path: str) -> str:
    """
    Quote a file path for use as a filter option value.

    Backslashes become forward slashes (ffmpeg accepts them on every
    platform), a Windows drive colon is escaped, and the result is wrapped in
    single quotes.
    """
    import sys

    escaped = path.replace("\\", "/")
    if sys.platform == "win32" and len(escaped) >= 2 and escaped[1] == ":":
        escaped = escaped[0] + "\\:" + escaped[2:]
    escaped = escaped.replace("'", "'\\''")
    return f"'{escaped}'"
