"""Object storage and document persistence."""

from podpipe.storage.base import ObjectStore
from podpipe.storage.local import LocalObjectStore
from podpipe.storage.memory import MemoryObjectStore
from podpipe.storage.repository import PodcastRepository

__all__ = [
    "LocalObjectStore",
    "MemoryObjectStore",
    "ObjectStore",
    "PodcastRepository",
]
