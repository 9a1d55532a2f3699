"""Transcript validation and WebVTT conversion."""

import math
from typing import Any

from podpipe.transcript.models import Transcript, TranscriptSegment

VTT_HEADER = "WEBVTT"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_transcript_data(data: Any) -> bool:
    """Check raw (decoded JSON) transcript data before conversion.

    Rejects anything whose ``segments`` is not a list, and any segment with a
    non-numeric or negative start/end, non-string text, or a speaker that is
    present but not a string. A ``null`` speaker counts as absent.

    Args:
        data: Decoded JSON document

    Returns:
        True if the data can be converted, False otherwise
    """
    if not isinstance(data, dict):
        return False

    segments = data.get("segments")
    if not isinstance(segments, list):
        return False

    for segment in segments:
        if not isinstance(segment, dict):
            return False

        for key in ("start", "end"):
            value = segment.get(key)
            if not _is_number(value) or value < 0:
                return False

        if not isinstance(segment.get("text"), str):
            return False

        speaker = segment.get("speaker")
        if speaker is not None and not isinstance(speaker, str):
            return False

    language = data.get("language")
    if language is not None and not isinstance(language, str):
        return False

    return True


def format_vtt_time(seconds: float) -> str:
    """Render seconds as a WebVTT timestamp.

    Milliseconds are rounded half-up before splitting into fields, so the
    millisecond field never overflows to 1000.

    Example:
        >>> format_vtt_time(125.5)
        '00:02:05.500'
    """
    total_ms = math.floor(seconds * 1000 + 0.5)
    total_seconds, ms = divmod(total_ms, 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"


def _cue_text(segment: TranscriptSegment) -> str:
    if segment.speaker:
        return f"<v {segment.speaker}>{segment.text}</v>"
    return segment.text


def convert_to_vtt(transcript: Transcript) -> str:
    """Convert a transcript to a WebVTT document.

    Each segment becomes one numbered cue; segments with a speaker label are
    wrapped in a voice tag. Output is deterministic for a given transcript.
    """
    lines = [VTT_HEADER, ""]

    for number, segment in enumerate(transcript.segments, start=1):
        lines.append(str(number))
        lines.append(f"{format_vtt_time(segment.start)} --> {format_vtt_time(segment.end)}")
        lines.append(_cue_text(segment))
        lines.append("")

    return "\n".join(lines)
