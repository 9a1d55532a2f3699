"""Shared fixtures for Podpipe tests."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from podpipe.storage.memory import MemoryObjectStore
from podpipe.storage.repository import PodcastRepository

# MPEG-1 Layer III, 128 kbps, 44100 Hz, no padding, stereo
CBR_HEADER = bytes([0xFF, 0xFB, 0x90, 0x00])
# Same stream parameters, mono
MONO_HEADER = bytes([0xFF, 0xFB, 0x90, 0xC0])
FRAME_SIZE = 417


def build_frames(count: int, header: bytes = CBR_HEADER) -> bytes:
    """Concatenate ``count`` silent frames."""
    frame = header + bytes(FRAME_SIZE - len(header))
    return frame * count


def build_vbr_frame(frame_count: int, header: bytes = CBR_HEADER, side_info: int = 32) -> bytes:
    """First frame carrying a Xing header that declares ``frame_count`` frames."""
    body = (
        bytes(side_info)
        + b"Xing"
        + (1).to_bytes(4, "big")
        + frame_count.to_bytes(4, "big")
    )
    frame = header + body
    return frame + bytes(FRAME_SIZE - len(frame))


def build_id3_tag(size: int) -> bytes:
    """ID3v2.4 tag with a syncsafe-encoded body of ``size`` zero bytes."""
    syncsafe = bytes(
        [(size >> 21) & 0x7F, (size >> 14) & 0x7F, (size >> 7) & 0x7F, size & 0x7F]
    )
    return b"ID3" + bytes([4, 0, 0]) + syncsafe + bytes(size)


@pytest.fixture
def cbr_mp3() -> Callable[[int], bytes]:
    """Factory for constant-bitrate MP3 buffers of ``n`` frames."""
    return build_frames


@pytest.fixture
def vbr_mp3() -> Callable[..., bytes]:
    """Factory for VBR buffers: a Xing frame followed by a few audio frames."""

    def factory(frame_count: int, header: bytes = CBR_HEADER, side_info: int = 32) -> bytes:
        return build_vbr_frame(frame_count, header, side_info) + build_frames(5, header)

    return factory


@pytest.fixture
def id3_tag() -> Callable[[int], bytes]:
    return build_id3_tag


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now: datetime) -> Callable[[], datetime]:
    """Clock frozen at ``fixed_now``; tests may advance ``clock.now``."""

    class Clock:
        def __init__(self) -> None:
            self.now = fixed_now

        def __call__(self) -> datetime:
            return self.now

    return Clock()


@pytest.fixture
def store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def repository(store: MemoryObjectStore) -> PodcastRepository:
    return PodcastRepository(store, public_base_url="https://media.example.com")
