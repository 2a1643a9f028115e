"""
Request schemas for highlight generation.

Field names are snake_case in Python and camelCase on the wire, matching the
payloads produced by the task scheduler.
"""

from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

AspectRatio = Literal["default", "social-9x16"]
MediaType = Literal["video", "audio"]
SpeakerOverlayMode = Literal["always", "on_speaker_change"]

# Expected container per media type
MEDIA_EXTENSIONS = {
    "video": ".mp4",
    "audio": ".mp3",
}


class CamelModel(BaseModel):
    """Base model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SpeakerInput(CamelModel):
    """Speaker identity attached to an utterance."""

    id: Optional[str] = None
    name: Optional[str] = None
    role_label: Optional[str] = None
    party_label: Optional[str] = None
    party_color_hex: Optional[str] = None


class UtteranceInput(CamelModel):
    """A single utterance on the source media timeline."""

    utterance_id: Optional[str] = None
    text: str = ""
    start_timestamp: float = Field(..., ge=0, description="Start in seconds on the source timeline")
    end_timestamp: float = Field(..., ge=0, description="End in seconds on the source timeline")
    speaker: Optional[SpeakerInput] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "UtteranceInput":
        if self.end_timestamp <= self.start_timestamp:
            raise ValueError(
                f"endTimestamp ({self.end_timestamp}) must be greater than "
                f"startTimestamp ({self.start_timestamp})"
            )
        return self


class HighlightPart(CamelModel):
    """One output artifact, assembled from one or more utterances."""

    id: str = Field(..., description="Highlight identifier")
    utterances: list[UtteranceInput] = Field(..., min_length=1)


class MediaInput(CamelModel):
    """Source media to cut highlights from."""

    type: MediaType = "video"
    video_url: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_extension(self) -> "MediaInput":
        expected = MEDIA_EXTENSIONS[self.type]
        path = urlparse(self.video_url).path or self.video_url
        if not path.lower().endswith(expected):
            raise ValueError(f"{self.type} files must be {expected[1:].upper()} format")
        return self


class SocialOptions(CamelModel):
    """Portrait reformatting options (only used for social-9x16)."""

    margin_type: Literal["blur", "solid"] = "blur"
    background_color: str = "#000000"
    # Clamped to [0.6, 1.0] when the filter is built
    zoom_factor: float = Field(default=1.0, allow_inf_nan=False)


class RenderOptions(CamelModel):
    """Declarative render options for every part in the request."""

    aspect_ratio: AspectRatio = "default"
    social_options: Optional[SocialOptions] = None
    include_captions: bool = False
    include_speaker_overlay: bool = False
    speaker_overlay_mode: Optional[SpeakerOverlayMode] = None

    @property
    def is_social(self) -> bool:
        return self.aspect_ratio == "social-9x16"

    @property
    def needs_font(self) -> bool:
        return self.include_captions or self.include_speaker_overlay

    def resolved_social_options(self) -> SocialOptions:
        """Social options with defaults filled in."""
        return self.social_options or SocialOptions()


class GenerateHighlightRequest(CamelModel):
    """Request body for the generate-highlight task."""

    media: MediaInput
    parts: list[HighlightPart] = Field(..., min_length=1)
    render: RenderOptions = Field(default_factory=RenderOptions)

    # Development options
    skip_capture: bool = False

    @model_validator(mode="after")
    def _check_render_for_media(self) -> "GenerateHighlightRequest":
        if self.media.type == "audio":
            if self.render.is_social or self.render.include_captions or self.render.include_speaker_overlay:
                raise ValueError("Video render options cannot be applied to audio media")
        return self

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "media": {"type": "video", "videoUrl": "https://cdn.example.com/meetings/1234.mp4"},
                "parts": [
                    {
                        "id": "highlight-1",
                        "utterances": [
                            {
                                "utteranceId": "u1",
                                "text": "We approve the budget.",
                                "startTimestamp": 100.0,
                                "endTimestamp": 105.0,
                                "speaker": {"id": "s1", "name": "Alice", "roleLabel": "Mayor"},
                            }
                        ],
                    }
                ],
                "render": {
                    "aspectRatio": "social-9x16",
                    "socialOptions": {"marginType": "blur", "zoomFactor": 0.8},
                    "includeCaptions": True,
                    "includeSpeakerOverlay": True,
                },
            }
        },
    )
