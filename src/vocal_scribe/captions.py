"""
Caption Timing Module
Splits narration text into timed caption segments.
"""

from dataclasses import dataclass
from typing import Optional


# Assumed speaking rate used for caption timing
WORDS_PER_SECOND = 4
WORDS_PER_SEGMENT = 10


@dataclass(frozen=True)
class CaptionSegment:
    """A span of caption text shown between start_time and end_time."""
    text: str
    start_time: float  # in seconds
    end_time: float  # in seconds


def segment_captions(text: str, audio_duration: float) -> list[CaptionSegment]:
    """
    Estimates caption timing from word count alone.

    Words are grouped ten at a time and each group is timed at a fixed
    four words per second. audio_duration is accepted for callers that
    have it but does not change the timing, and segments may run past
    the end of the audio.

    Args:
        text: Narration text, split on whitespace
        audio_duration: Length of the spoken audio in seconds

    Returns:
        Ordered, non-overlapping caption segments
    """
    words = text.split()
    segments = []

    for i in range(0, len(words), WORDS_PER_SEGMENT):
        chunk = words[i:i + WORDS_PER_SEGMENT]
        segments.append(CaptionSegment(
            text=" ".join(chunk),
            start_time=i / WORDS_PER_SECOND,
            end_time=(i + len(chunk)) / WORDS_PER_SECOND
        ))

    return segments


def find_active(
    segments: list[CaptionSegment],
    current_time: float
) -> Optional[CaptionSegment]:
    """Returns the first segment whose window contains current_time (inclusive)."""
    for segment in segments:
        if segment.start_time <= current_time <= segment.end_time:
            return segment
    return None


def estimated_duration(text: str) -> float:
    """Spoken length of text at the caption speaking rate."""
    return len(text.split()) / WORDS_PER_SECOND
