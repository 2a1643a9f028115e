"""
Pydantic schemas for request/response models.
"""

from highlight_renderer.schemas.requests import (
    GenerateHighlightRequest,
    HighlightPart,
    MediaInput,
    RenderOptions,
    SocialOptions,
    SpeakerInput,
    UtteranceInput,
)
from highlight_renderer.schemas.responses import (
    GenerateHighlightResult,
    PartFailure,
    RenderedPart,
)

__all__ = [
    "GenerateHighlightRequest",
    "HighlightPart",
    "MediaInput",
    "RenderOptions",
    "SocialOptions",
    "SpeakerInput",
    "UtteranceInput",
    "GenerateHighlightResult",
    "PartFailure",
    "RenderedPart",
]
