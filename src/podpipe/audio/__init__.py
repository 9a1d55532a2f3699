"""Audio analysis for Podpipe."""

from podpipe.audio.duration import FrameHeader, get_mp3_duration, id3v2_size, parse_frame_header

__all__ = [
    "FrameHeader",
    "get_mp3_duration",
    "id3v2_size",
    "parse_frame_header",
]
