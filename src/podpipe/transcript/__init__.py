"""Transcript models and subtitle conversion."""

from podpipe.transcript.models import Transcript, TranscriptSegment
from podpipe.transcript.vtt import convert_to_vtt, format_vtt_time, validate_transcript_data

__all__ = [
    "Transcript",
    "TranscriptSegment",
    "convert_to_vtt",
    "format_vtt_time",
    "validate_transcript_data",
]
