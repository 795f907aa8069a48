"""
NX Opus container parser
========================

Reads the fixed-layout container used by game-engine audio assets that embed
raw Opus packets:

    header (0x1E bytes, little-endian)
        0x00  u32  magic 0x80000001
        0x04  5    (unused)
        0x09  u8   channel count
        0x0A  2    (unused)
        0x0C  u32  sample rate of the original source
        0x10  u32  absolute offset of the data section
        0x14  8    (unused)
        0x1C  u16  pre-skip in samples

    data section (at header.data_offset)
        u32 LE  magic 0x80000004
        u32 LE  declared length of the packet data
        records, each: u32 BE payload length, 4 bytes (ignored), payload

All parsing works on memoryview slices of the source buffer; the payloads
handed out by `iter_packets()` share memory with the source.
"""

import struct
from dataclasses import dataclass
from typing import Iterator

from .exceptions import MalformedHeader, MalformedDataSection, MalformedPacketFrame

from .logsetup import get_module_logger
logger = get_module_logger(__file__)

HEADER_MAGIC = 0x80000001
DATA_SECTION_MAGIC = 0x80000004

# magic, 5 skipped, channels, 2 skipped, sample rate, data offset, 8 skipped, pre-skip
_HEADER_STRUCT = struct.Struct("<I5xB2xII8xH")
HEADER_SIZE = _HEADER_STRUCT.size  # 0x1E

_DATA_SECTION_STRUCT = struct.Struct("<II")
DATA_SECTION_HEADER_SIZE = _DATA_SECTION_STRUCT.size

# payload length (big-endian) followed by 4 bytes of unused per-packet metadata
_FRAME_STRUCT = struct.Struct(">I4x")
FRAME_HEADER_SIZE = _FRAME_STRUCT.size


@dataclass(frozen=True)
class ContainerHeader:
    """Fields of the fixed container header"""
    channel_count: int
    pre_skip: int
    sample_rate: int
    data_offset: int


@dataclass(frozen=True)
class DataSection:
    """Packet byte stream of the data section.

    `declared_length` is what the container claims; it is informational only
    and never checked against `body`.
    """
    declared_length: int
    body: memoryview
    body_offset: int  # absolute position of body[0] in the source buffer


@dataclass(frozen=True)
class RawPacket:
    """One Opus packet with its framing stripped"""
    index: int
    payload: memoryview
    offset: int  # absolute position of payload[0] in the source buffer


def parse_header(source: bytes) -> ContainerHeader:
    """Decode the fixed container header at the start of `source`.

    Raises
    ------
    MalformedHeader
        If `source` is shorter than the header, the magic does not match or
        the header declares zero channels.
    """
    if len(source) < HEADER_SIZE:
        raise MalformedHeader(
            f"need {HEADER_SIZE} header bytes, source has only {len(source)}", offset=0)

    magic, channel_count, sample_rate, data_offset, pre_skip = _HEADER_STRUCT.unpack_from(source, 0)
    if magic != HEADER_MAGIC:
        raise MalformedHeader(
            f"bad magic 0x{magic:08x}, expected 0x{HEADER_MAGIC:08x}", offset=0)
    if channel_count == 0:
        raise MalformedHeader("channel count is 0", offset=0x09)

    header = ContainerHeader(channel_count=channel_count,
                             pre_skip=pre_skip,
                             sample_rate=sample_rate,
                             data_offset=data_offset)
    logger.debug(f"Container header: {header}")
    return header


def locate_data_section(source: bytes, header: ContainerHeader) -> DataSection:
    """Check the data section marker at `header.data_offset` and return the packet stream.

    Raises
    ------
    MalformedDataSection
        If the offset lies behind the end of `source`, fewer than 8 bytes
        remain there or the marker does not match.
    """
    offset = header.data_offset
    if offset + DATA_SECTION_HEADER_SIZE > len(source):
        raise MalformedDataSection(
            f"need {DATA_SECTION_HEADER_SIZE} bytes for the section marker, "
            f"source ends at 0x{len(source):x}", offset=offset)

    magic, declared_length = _DATA_SECTION_STRUCT.unpack_from(source, offset)
    if magic != DATA_SECTION_MAGIC:
        raise MalformedDataSection(
            f"bad magic 0x{magic:08x}, expected 0x{DATA_SECTION_MAGIC:08x}", offset=offset)

    body_offset = offset + DATA_SECTION_HEADER_SIZE
    body = memoryview(source)[body_offset:]
    logger.debug(f"Data section at 0x{offset:x}: declared length {declared_length}, "
                 f"{len(body)} bytes available")
    return DataSection(declared_length=declared_length, body=body, body_offset=body_offset)


def iter_packets(section: DataSection) -> Iterator[RawPacket]:
    """Yield the length-prefixed packets of a data section one at a time.

    The generator stops when the body is consumed exactly. A record that is
    cut off, in its frame header or in its payload, raises instead of being
    dropped silently.

    Raises
    ------
    MalformedPacketFrame
        On a partial trailing record.
    """
    body = section.body
    pos = 0
    index = 0
    while pos < len(body):
        remaining = len(body) - pos
        if remaining < FRAME_HEADER_SIZE:
            raise MalformedPacketFrame(
                f"packet #{index}: {remaining} trailing bytes, frame header needs {FRAME_HEADER_SIZE}",
                offset=section.body_offset + pos)

        (length,) = _FRAME_STRUCT.unpack_from(body, pos)
        payload_start = pos + FRAME_HEADER_SIZE
        if length > len(body) - payload_start:
            raise MalformedPacketFrame(
                f"packet #{index}: payload length {length} exceeds the "
                f"{len(body) - payload_start} remaining bytes",
                offset=section.body_offset + pos)

        yield RawPacket(index=index,
                        payload=body[payload_start:payload_start + length],
                        offset=section.body_offset + payload_start)
        pos = payload_start + length
        index += 1
