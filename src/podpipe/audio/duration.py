"""MPEG audio duration analysis.

Reads MPEG-1/2/2.5 Layer I-III frame headers straight from the byte buffer,
without any decoding library. The result is a best-effort duration in whole
seconds; 0 means "unknown" (empty, corrupt or unsupported data).

Steps:
1. Skip an ID3v2 tag if present
2. Find the first frame header that is followed by a matching second header
3. Use the Xing/Info frame count if the first frame carries one (VBR)
4. Otherwise estimate from the byte count and the first frame's bitrate (CBR)
"""

from dataclasses import dataclass

ID3_MAGIC = b"ID3"
ID3_HEADER_SIZE = 10
FRAME_HEADER_SIZE = 4
SEARCH_WINDOW = 8192

# Version bits as they appear in the header
VERSION_2_5 = 0
VERSION_RESERVED = 1
VERSION_2 = 2
VERSION_1 = 3

# Layer bits as they appear in the header
LAYER_RESERVED = 0
LAYER_III = 1
LAYER_II = 2
LAYER_I = 3

CHANNEL_MODE_MONO = 3

# kbps, indexed [MPEG1 | MPEG2/2.5][Layer I, II, III][bitrate index]
BITRATE_TABLE: tuple[tuple[tuple[int, ...], ...], ...] = (
    (
        (0, 32, 64, 96, 128, 160, 192, 224, 256, 288, 320, 352, 384, 416, 448),
        (0, 32, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320, 384),
        (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320),
    ),
    (
        (0, 32, 48, 56, 64, 80, 96, 112, 128, 144, 160, 176, 192, 224, 256),
        (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
        (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
    ),
)

# Hz, indexed by version bits then sample-rate index
SAMPLE_RATE_TABLE: dict[int, tuple[int, int, int]] = {
    VERSION_2_5: (11025, 12000, 8000),
    VERSION_2: (22050, 24000, 16000),
    VERSION_1: (44100, 48000, 32000),
}

# indexed [MPEG1 | MPEG2/2.5][Layer I, II, III]
SAMPLES_PER_FRAME: tuple[tuple[int, int, int], ...] = (
    (384, 1152, 1152),
    (384, 1152, 576),
)

# Side information size in bytes, indexed [MPEG1 | MPEG2/2.5][mono | stereo]
SIDE_INFO_SIZE: tuple[tuple[int, int], ...] = (
    (17, 32),
    (9, 17),
)

VBR_MAGICS = (b"Xing", b"Info")
VBR_FRAMES_FLAG = 0x01


@dataclass(frozen=True)
class FrameHeader:
    """Decoded fields of one MPEG audio frame header."""

    version: int
    layer: int
    bitrate_kbps: int
    sample_rate: int
    padding: int
    channel_mode: int
    frame_size: int
    samples_per_frame: int

    @property
    def is_mono(self) -> bool:
        return self.channel_mode == CHANNEL_MODE_MONO

    def matches(self, other: "FrameHeader") -> bool:
        """Check that another header belongs to the same stream."""
        return (
            self.version == other.version
            and self.layer == other.layer
            and self.sample_rate == other.sample_rate
        )


def id3v2_size(data: bytes) -> int:
    """Return the number of bytes taken by a leading ID3v2 tag (0 if none).

    The tag size is a 28-bit syncsafe integer (7 bits per byte) that excludes
    the 10-byte tag header.
    """
    if len(data) < ID3_HEADER_SIZE or data[:3] != ID3_MAGIC:
        return 0

    size = (
        (data[6] & 0x7F) << 21
        | (data[7] & 0x7F) << 14
        | (data[8] & 0x7F) << 7
        | (data[9] & 0x7F)
    )
    return size + ID3_HEADER_SIZE


def parse_frame_header(data: bytes, offset: int) -> FrameHeader | None:
    """Decode the frame header at ``offset``.

    Returns:
        FrameHeader, or None if there is no valid header at that position
    """
    if offset < 0 or offset + FRAME_HEADER_SIZE > len(data):
        return None

    header = int.from_bytes(data[offset : offset + FRAME_HEADER_SIZE], "big")

    # 11-bit frame sync
    if header & 0xFFE00000 != 0xFFE00000:
        return None

    version = (header >> 19) & 0x03
    layer = (header >> 17) & 0x03
    bitrate_index = (header >> 12) & 0x0F
    sample_rate_index = (header >> 10) & 0x03
    padding = (header >> 9) & 0x01
    channel_mode = (header >> 6) & 0x03

    if version == VERSION_RESERVED or layer == LAYER_RESERVED:
        return None
    # 0 is "free format", 15 is invalid
    if bitrate_index in (0, 15) or sample_rate_index == 3:
        return None

    version_index = 0 if version == VERSION_1 else 1
    layer_index = 3 - layer

    bitrate = BITRATE_TABLE[version_index][layer_index][bitrate_index]
    sample_rate = SAMPLE_RATE_TABLE[version][sample_rate_index]
    samples_per_frame = SAMPLES_PER_FRAME[version_index][layer_index]

    if layer == LAYER_I:
        frame_size = (12000 * bitrate // sample_rate + padding) * 4
    else:
        frame_size = (samples_per_frame * 125 * bitrate) // sample_rate + padding

    if frame_size < 1:
        return None

    return FrameHeader(
        version=version,
        layer=layer,
        bitrate_kbps=bitrate,
        sample_rate=sample_rate,
        padding=padding,
        channel_mode=channel_mode,
        frame_size=frame_size,
        samples_per_frame=samples_per_frame,
    )


def find_first_frame(data: bytes, start: int = 0) -> tuple[int, FrameHeader] | None:
    """Locate the first confirmed frame within the search window after ``start``.

    A candidate is confirmed when another header of the same version, layer
    and sample rate begins exactly one frame later. A candidate whose
    successor would lie beyond the end of the buffer is accepted as is.

    Returns:
        (offset, header) of the first frame, or None
    """
    search_limit = min(start + SEARCH_WINDOW, len(data) - FRAME_HEADER_SIZE)

    for offset in range(start, search_limit):
        if data[offset] != 0xFF:
            continue

        frame = parse_frame_header(data, offset)
        if frame is None:
            continue

        next_offset = offset + frame.frame_size
        if next_offset + FRAME_HEADER_SIZE <= len(data):
            next_frame = parse_frame_header(data, next_offset)
            if next_frame is None or not frame.matches(next_frame):
                continue

        return offset, frame

    return None


def vbr_frame_count(data: bytes, frame_offset: int, frame: FrameHeader) -> int | None:
    """Read the total frame count from a Xing/Info header in the first frame.

    The VBR header sits right after the side information, whose size depends
    on the MPEG version and on whether the stream is mono.

    Returns:
        Frame count, or None if there is no usable VBR header
    """
    version_index = 0 if frame.version == VERSION_1 else 1
    side_info = SIDE_INFO_SIZE[version_index][0 if frame.is_mono else 1]
    vbr_offset = frame_offset + FRAME_HEADER_SIZE + side_info

    if vbr_offset + 12 > len(data):
        return None

    if data[vbr_offset : vbr_offset + 4] not in VBR_MAGICS:
        return None

    flags = int.from_bytes(data[vbr_offset + 4 : vbr_offset + 8], "big")
    if not flags & VBR_FRAMES_FLAG:
        return None

    frames = int.from_bytes(data[vbr_offset + 8 : vbr_offset + 12], "big")
    return frames or None


def get_mp3_duration(data: bytes | bytearray | memoryview) -> int:
    """Compute the duration of an MPEG audio buffer in whole seconds.

    Args:
        data: Complete file contents, optionally starting with an ID3v2 tag

    Returns:
        Duration in seconds (floored), or 0 if no valid frame is found
    """
    data = bytes(data)
    start = id3v2_size(data)

    found = find_first_frame(data, start)
    if found is None:
        return 0
    offset, frame = found

    frame_count = vbr_frame_count(data, offset, frame)
    if frame_count is not None:
        return frame_count * frame.samples_per_frame // frame.sample_rate

    audio_bytes = len(data) - offset
    return audio_bytes * 8 // (frame.bitrate_kbps * 1000)
