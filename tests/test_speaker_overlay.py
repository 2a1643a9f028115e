"""
Unit tests for the speaker overlay composer.
"""

import pytest

from highlight_renderer.services.filter_graph import FilterStage
from highlight_renderer.services.preset_resolver import get_preset_config
from highlight_renderer.services.speaker_overlay import (
    UNKNOWN_SPEAKER_NAME,
    calculate_speaker_display_segments,
    format_speaker_info,
    generate_speaker_overlay_filter,
    wrap_speaker_text,
)
from highlight_renderer.services.timeline import Speaker, Utterance, normalize_utterance_timestamps


def _normalized(*speakers):
    return normalize_utterance_timestamps([
        Utterance(text="x", start_timestamp=i * 10.0, end_timestamp=i * 10.0 + 2, speaker=s)
        for i, s in enumerate(speakers)
    ])


class TestFormatSpeakerInfo:
    """Tests for format_speaker_info."""

    def test_missing_speaker(self):
        info = format_speaker_info(None)
        assert info.name == UNKNOWN_SPEAKER_NAME == "Unknown Speaker"
        assert info.role is None
        assert info.party is None
        assert info.detail_text == ""

    def test_full_speaker(self, alice):
        info = format_speaker_info(alice)
        assert info.name == "Alice"
        assert info.detail_text == "Mayor | Civic"
        assert info.party_color == "#1E90FF"

    def test_speaker_without_name(self):
        assert format_speaker_info(Speaker(id="s9")).name == UNKNOWN_SPEAKER_NAME


class TestWrapSpeakerText:
    """Tests for wrap_speaker_text."""

    def test_short_text_unchanged(self):
        assert wrap_speaker_text("Mayor | Civic", is_social=False) == "Mayor | Civic"

    def test_social_wraps_narrower(self):
        text = "Deputy Mayor for Planning | Independent Group"
        assert wrap_speaker_text(text, is_social=False) == (
            "Deputy Mayor for Planning | Independent\nGroup"
        )
        assert wrap_speaker_text(text, is_social=True) == (
            "Deputy Mayor for Planning |\nIndependent Group"
        )

    def test_overlong_word_kept_whole(self):
        word = "x" * 50
        assert wrap_speaker_text(word, is_social=True) == word


class TestSpeakerDisplaySegments:
    """Tests for calculate_speaker_display_segments."""

    def test_on_speaker_change(self, alice, bob):
        segments = calculate_speaker_display_segments(_normalized(alice, alice, bob), "on_speaker_change")
        assert [s.show_overlay for s in segments] == [True, False, True]

    def test_always(self, alice, bob):
        segments = calculate_speaker_display_segments(_normalized(alice, alice, bob), "always")
        assert [s.show_overlay for s in segments] == [True, True, True]

    def test_uses_normalized_times(self, alice, bob):
        segments = calculate_speaker_display_segments(_normalized(alice, bob), "always")
        assert (segments[1].start_timestamp, segments[1].end_timestamp) == (2, 4)

    def test_empty(self):
        assert calculate_speaker_display_segments([], "on_speaker_change") == []

    def test_unknown_mode(self, alice):
        with pytest.raises(ValueError):
            calculate_speaker_display_segments(_normalized(alice), "sometimes")


class TestGenerateSpeakerOverlayFilter:
    """Tests for generate_speaker_overlay_filter."""

    def test_filters_gated_by_window(self, alice, bob):
        preset = get_preset_config("1280x720", "default")
        fragment = generate_speaker_overlay_filter(
            _normalized(alice, bob),
            preset.speaker_overlay_for("default"),
            preset.dimensions,
            "default",
            "/fonts/font.ttf",
        )
        rendered = fragment.render()

        assert fragment.stage == FilterStage.SPEAKER_OVERLAY
        assert "text='Alice'" in rendered
        assert "text='Bob'" in rendered
        assert "enable='gte(t,0.000)*lt(t,2.000)'" in rendered
        assert "enable='gte(t,2.000)*lt(t,4.000)'" in rendered
        assert "fontfile='/fonts/font.ttf'" in rendered

    def test_party_colour_bar(self, alice, bob):
        preset = get_preset_config("1280x720", "default")
        rendered = generate_speaker_overlay_filter(
            _normalized(alice),
            preset.speaker_overlay_for("default"),
            preset.dimensions,
            "default",
            None,
        ).render()
        assert "color=0x1E90FF" in rendered
        assert "fontfile" not in rendered

    def test_on_speaker_change_skips_repeats(self, alice):
        preset = get_preset_config("1280x720", "default")
        rendered = generate_speaker_overlay_filter(
            _normalized(alice, alice),
            preset.speaker_overlay_for("default"),
            preset.dimensions,
            "default",
            None,
            mode="on_speaker_change",
        ).render()
        assert rendered.count("text='Alice'") == 1

    def test_empty_returns_none(self):
        preset = get_preset_config("1280x720", "default")
        assert generate_speaker_overlay_filter(
            [], preset.speaker_overlay_for("default"), preset.dimensions, "default", None
        ) is None
