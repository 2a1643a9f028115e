"""
Response schemas for highlight generation.

These are serialized with camelCase aliases for the task scheduler.
"""

from typing import Optional

from pydantic import Field

from highlight_renderer.schemas.requests import CamelModel


class RenderedPart(CamelModel):
    """A rendered and uploaded highlight part."""

    id: str = Field(..., description="Highlight identifier from the request")
    url: str = Field(..., description="Public URL of the uploaded artifact")
    duration: float = Field(..., description="Total extracted duration in seconds")
    start_timestamp: float = Field(..., description="Start of the first extracted segment")
    end_timestamp: float = Field(..., description="End of the last extracted segment")
    mux_playback_id: Optional[str] = Field(
        default=None, description="Playback identifier (video outputs only)"
    )


class PartFailure(CamelModel):
    """A part that could not be rendered or uploaded."""

    id: str = Field(..., description="Highlight identifier from the request")
    stage: str = Field(..., description="Stage that failed: 'render' or 'upload'")
    error: str = Field(..., description="Error message with diagnostics")


class GenerateHighlightResult(CamelModel):
    """Result of the generate-highlight task."""

    parts: list[RenderedPart] = Field(default_factory=list)
    failures: list[PartFailure] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures
