"""Episode and show record types."""

from podpipe.episodes.models import (
    DescriptionTemplate,
    Episode,
    EpisodeStatus,
    IndexEntry,
    PodcastIndex,
    PodcastSettings,
    ReferenceLink,
    TemplatesIndex,
)

__all__ = [
    "DescriptionTemplate",
    "Episode",
    "EpisodeStatus",
    "IndexEntry",
    "PodcastIndex",
    "PodcastSettings",
    "ReferenceLink",
    "TemplatesIndex",
]
