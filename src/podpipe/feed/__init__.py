"""Feed rendering for Podpipe."""

from podpipe.feed.description import substitute_placeholders
from podpipe.feed.serializer import escape_xml, format_itunes_duration, generate_feed

__all__ = [
    "escape_xml",
    "format_itunes_duration",
    "generate_feed",
    "substitute_placeholders",
]
