"""
Text Layout Engine - escaping, pixel-width wrapping and font-size fitting for
ffmpeg drawtext.

Glyph widths are estimated rather than measured: every character is assumed
to be ``font_size * CHAR_WIDTH_RATIO`` pixels wide.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


# Average glyph width as a fraction of the font size
CHAR_WIDTH_RATIO = 0.6

# Font sizes are tried from largest to smallest in this step
FONT_SIZE_STEP = 2

ELLIPSIS = "..."

# Characters with special meaning in filtergraph / drawtext syntax.
# The backslash is escaped first so the escapes below are not doubled.
_FFMPEG_SPECIAL_CHARS = ("[", "]", ":", ";", "%", ",")


@dataclass
class FontFit:
    """Chosen font size and the text wrapped for it."""

    font_size: int
    wrapped_text: str

    @property
    def line_count(self) -> int:
        return len(self.wrapped_text.split("\n")) if self.wrapped_text else 0


def escape_text_for_ffmpeg(text: str) -> str:
    """
    Escape text for a quoted drawtext ``text='...'`` argument.

    ASCII apostrophes would close the quoted argument, so they are replaced
    by a typographic apostrophe instead of being escaped.
    """
    escaped = text.replace("\\", "\\\\")
    for char in _FFMPEG_SPECIAL_CHARS:
        escaped = escaped.replace(char, f"\\{char}")
    return escaped.replace("'", "’")


def char_width_px(font_size: float) -> float:
    """Estimated width of one character at ``font_size``."""
    return font_size * CHAR_WIDTH_RATIO


def estimate_text_width(text: str, font_size: float) -> float:
    """Estimated pixel width of the widest line in ``text``."""
    if not text:
        return 0.0
    return max(len(line) for line in text.split("\n")) * char_width_px(font_size)


def chars_per_line(font_size: float, available_width_px: float) -> int:
    """How many characters fit on one line (always at least one)."""
    return max(1, math.floor(available_width_px / char_width_px(font_size)))


def wrap_words(text: str, max_chars: int) -> list[str]:
    """
    Greedily pack whitespace-delimited words into lines of ``max_chars``.

    A word longer than ``max_chars`` is never broken; it gets a line to itself.
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
        elif current:
            lines.append(current)
            current = word
        else:
            lines.append(word)

    if current:
        lines.append(current)

    return lines


def wrap_text_by_pixel_width(text: str, font_size: float, available_width_px: float) -> str:
    """Wrap ``text`` to the character budget implied by the font size and width."""
    return "\n".join(wrap_words(text, chars_per_line(font_size, available_width_px)))


def _fits(
    wrapped: str,
    font_size: int,
    available_width_px: float,
    max_lines: Optional[int],
) -> bool:
    lines = wrapped.split("\n") if wrapped else []
    if max_lines is not None and len(lines) > max_lines:
        return False
    return estimate_text_width(wrapped, font_size) <= available_width_px


def _truncate_lines(wrapped: str, max_lines: int, max_chars: int) -> str:
    """Keep the first ``max_lines`` lines and mark the cut with an ellipsis."""
    lines = wrapped.split("\n")[:max_lines]
    last = lines[-1]
    if len(last) > max_chars - len(ELLIPSIS):
        last = last[: max(0, max_chars - len(ELLIPSIS))].rstrip()
    lines[-1] = last + ELLIPSIS
    return "\n".join(lines)


def calculate_optimal_font_size_with_start_and_cap(
    text: str,
    style: str,
    start_font: int,
    max_font: int,
    min_font: int,
    available_width_px: float,
    max_lines: Optional[int] = None,
) -> FontFit:
    """
    Find the largest font size at which ``text`` fits.

    Sizes are tried from ``min(start_font, max_font)`` downward in steps of
    ``FONT_SIZE_STEP`` and never below ``min_font``. Text fits when it wraps
    to at most ``max_lines`` lines (if given) and no line is wider than the
    available width. When nothing fits, the text is wrapped at ``min_font``
    and cut to ``max_lines`` lines ending in ``"..."``.
    """
    if max_lines is not None and max_lines < 1:
        raise ValueError(f"max_lines must be at least 1, got {max_lines}")

    font_size = min(start_font, max_font)

    while font_size >= min_font:
        wrapped = wrap_text_by_pixel_width(text, font_size, available_width_px)
        if _fits(wrapped, font_size, available_width_px, max_lines):
            return FontFit(font_size=font_size, wrapped_text=wrapped)
        font_size -= FONT_SIZE_STEP

    wrapped = wrap_text_by_pixel_width(text, min_font, available_width_px)
    if max_lines is None or _fits(wrapped, min_font, available_width_px, max_lines):
        return FontFit(font_size=min_font, wrapped_text=wrapped)

    logger.debug(
        f"Text does not fit {max_lines} lines at {min_font}px ({style}); truncating: "
        f"{text[:40]!r}"
    )
    max_chars = chars_per_line(min_font, available_width_px)
    return FontFit(
        font_size=min_font,
        wrapped_text=_truncate_lines(wrapped, max_lines, max_chars),
    )
