"""
Timeline Normalizer - merges utterance spans into extraction segments and
rebuilds a zero-based timeline for the extracted clip.

Utterances arrive with timestamps on the original recording. Once the
segments are cut out and concatenated, captions and overlays must be timed
against the clip's own timeline instead.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


# Gaps up to this many seconds are bridged so near-continuous speech is not cut
DEFAULT_GAP_THRESHOLD_SECONDS = 2.0


@dataclass(frozen=True)
class Speaker:
    """Speaker identity as supplied by the caller."""

    id: Optional[str] = None
    name: Optional[str] = None
    role_label: Optional[str] = None
    party_label: Optional[str] = None
    party_color_hex: Optional[str] = None


@dataclass(frozen=True)
class Utterance:
    """A speaker's contiguous speech span on the original timeline (seconds)."""

    text: str
    start_timestamp: float
    end_timestamp: float
    speaker: Optional[Speaker] = None
    utterance_id: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end_timestamp - self.start_timestamp


@dataclass(frozen=True)
class NormalizedUtterance(Utterance):
    """An utterance placed on the extracted clip's timeline."""

    normalized_start: float = 0.0
    normalized_end: float = 0.0

    @property
    def original_start(self) -> float:
        return self.start_timestamp

    @property
    def original_end(self) -> float:
        return self.end_timestamp


@dataclass(frozen=True)
class Segment:
    """A time range to extract from the source media."""

    start_timestamp: float
    end_timestamp: float

    @property
    def duration(self) -> float:
        return self.end_timestamp - self.start_timestamp


@dataclass
class BridgeResult:
    """Extraction segments plus utterances stretched to cover bridged gaps."""

    segments: list[Segment]
    adjusted_utterances: list[Utterance]


def merge_continuous_utterances(
    utterances: Sequence[Utterance],
    gap_threshold_seconds: float = DEFAULT_GAP_THRESHOLD_SECONDS,
) -> list[Segment]:
    """
    Merge utterances separated by short gaps into continuous segments.

    Two neighbours (in start order) merge when ``next.start - current.end``
    is at most ``gap_threshold_seconds``; overlaps always merge. Each segment
    spans the earliest start and latest end of its members.
    """
    if not utterances:
        return []

    ordered = sorted(utterances, key=lambda u: (u.start_timestamp, u.end_timestamp))

    segments: list[Segment] = []
    current_start = ordered[0].start_timestamp
    current_end = ordered[0].end_timestamp

    for utterance in ordered[1:]:
        if utterance.start_timestamp - current_end <= gap_threshold_seconds:
            current_end = max(current_end, utterance.end_timestamp)
        else:
            segments.append(Segment(current_start, current_end))
            current_start = utterance.start_timestamp
            current_end = utterance.end_timestamp

    segments.append(Segment(current_start, current_end))
    return segments


def merge_consecutive_segments(segments: Sequence[Segment]) -> list[Segment]:
    """Merge segments that touch or overlap (``next.start <= current.end``)."""
    merged: list[Segment] = []
    for segment in segments:
        if merged and segment.start_timestamp <= merged[-1].end_timestamp:
            last = merged[-1]
            merged[-1] = Segment(
                last.start_timestamp,
                max(last.end_timestamp, segment.end_timestamp),
            )
        else:
            merged.append(segment)
    return merged


def bridge_utterance_gaps(
    utterances: Sequence[Utterance],
    gap_threshold_seconds: float = DEFAULT_GAP_THRESHOLD_SECONDS,
) -> BridgeResult:
    """
    Stretch utterances across small gaps and build the extraction segments.

    An utterance followed by a gap within the threshold is extended to the
    next utterance's start; one overlapped by its successor is trimmed to
    that start. Afterwards the adjusted durations add up to exactly the
    length of the extracted media, so normalized caption times stay aligned.

    An utterance lying entirely inside an earlier one is folded into it, so
    the containing span is extracted in full. Utterances left with no
    duration are dropped.
    """
    if not utterances:
        return BridgeResult(segments=[], adjusted_utterances=[])

    ordered: list[Utterance] = []
    for utterance in sorted(utterances, key=lambda u: (u.start_timestamp, -u.end_timestamp)):
        if ordered and utterance.end_timestamp <= ordered[-1].end_timestamp:
            logger.debug(
                f"Folding utterance {utterance.start_timestamp:.3f}-"
                f"{utterance.end_timestamp:.3f}s into the one containing it"
            )
            continue
        ordered.append(utterance)

    adjusted: list[Utterance] = []
    for i, utterance in enumerate(ordered):
        end = utterance.end_timestamp
        if i + 1 < len(ordered):
            next_start = ordered[i + 1].start_timestamp
            if next_start - end <= gap_threshold_seconds:
                end = next_start

        if end <= utterance.start_timestamp:
            logger.debug(
                f"Dropping utterance at {utterance.start_timestamp:.3f}s: "
                f"fully overlapped by its successor"
            )
            continue

        adjusted.append(replace(utterance, end_timestamp=end))

    segments = merge_consecutive_segments(
        [Segment(u.start_timestamp, u.end_timestamp) for u in adjusted]
    )
    return BridgeResult(segments=segments, adjusted_utterances=adjusted)


def normalize_utterance_timestamps(
    utterances: Sequence[Utterance],
) -> list[NormalizedUtterance]:
    """
    Place utterances back to back on a timeline starting at zero.

    Each utterance keeps its original timestamps; ``normalized_start`` and
    ``normalized_end`` accumulate durations in input order.
    """
    current_time = 0.0
    normalized: list[NormalizedUtterance] = []

    for utterance in utterances:
        normalized_start = current_time
        normalized_end = current_time + utterance.duration
        current_time = normalized_end

        normalized.append(
            NormalizedUtterance(
                text=utterance.text,
                start_timestamp=utterance.start_timestamp,
                end_timestamp=utterance.end_timestamp,
                speaker=utterance.speaker,
                utterance_id=utterance.utterance_id,
                normalized_start=normalized_start,
                normalized_end=normalized_end,
            )
        )

    return normalized
