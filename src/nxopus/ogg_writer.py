"""
Ogg packet writer
=================

Serializes packets into Ogg pages (RFC 3533) with the caller in control of
granule positions and page boundaries:

- `write_packet(payload, stream_serial, boundary, granule_position)`
- `finish()`

A page is sealed when a packet is written with `PageBoundary.END_PAGE` or
`PageBoundary.END_STREAM`, or when its segment table is full (255 lacing
values). A packet that does not fit continues on the next page. The page
granule position is the one of the last packet completed on the page, or -1
if no packet ends there.
"""

import struct
from dataclasses import dataclass, field
from typing import BinaryIO, Dict

from .exceptions import NxOpusIOError
from .packagetypes import PageBoundary

from .logsetup import get_module_logger
logger = get_module_logger(__file__)

OGG_CAPTURE_PATTERN = b'OggS'
OGG_PAGE_HEADER_SIZE = 27
OGG_MAX_SEGMENTS = 255
OGG_CRC_OFFSET = 22

HEADER_TYPE_CONTINUED = 0x01
HEADER_TYPE_BOS = 0x02
HEADER_TYPE_EOS = 0x04

# capture pattern, version, header type, granule, serial, sequence, crc, segment count
_PAGE_HEADER_STRUCT = struct.Struct('<4sBBqIIIB')


def _make_crc_table() -> tuple[int, ...]:
    """CRC-32 lookup table of Ogg (polynomial 0x04C11DB7, not reflected)"""
    table = []
    for i in range(256):
        crc = i << 24
        for _ in range(8):
            if crc & 0x80000000:
                crc = ((crc << 1) ^ 0x04C11DB7) & 0xFFFFFFFF
            else:
                crc = (crc << 1) & 0xFFFFFFFF
        table.append(crc)
    return tuple(table)

_CRC_TABLE = _make_crc_table()


def ogg_crc32(data: bytes) -> int:
    """Page checksum as defined by Ogg; `data` must have a zeroed CRC field."""
    crc = 0
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFFFF) ^ _CRC_TABLE[(crc >> 24) ^ byte]
    return crc


@dataclass
class _StreamState:
    """Pending page of one logical stream"""
    sequence: int = 0
    lacing: bytearray = field(default_factory=bytearray)
    body: bytearray = field(default_factory=bytearray)
    page_granule: int = -1
    continued: bool = False
    started: bool = False
    ended: bool = False


class OggPacketWriter:
    """Write packets of one or more logical streams as Ogg pages into `sink`.

    The sink is any binary file-like object; the writer neither opens nor
    closes it.
    """

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self._streams: Dict[int, _StreamState] = {}
        self.pages_written = 0

    def write_packet(self, payload: bytes, stream_serial: int,
                     boundary: PageBoundary, granule_position: int) -> None:
        """Append one packet to the current page of `stream_serial`.

        Raises
        ------
        ValueError
            If the stream was already ended with `PageBoundary.END_STREAM`.
        NxOpusIOError
            If writing a sealed page to the sink fails.
        """
        state = self._streams.setdefault(stream_serial, _StreamState())
        if state.ended:
            raise ValueError(f"Ogg stream {stream_serial} is already ended")

        payload = memoryview(payload)
        full_segments, last_segment = divmod(len(payload), 255)
        lacing_values = [255] * full_segments + [last_segment]

        pos = 0
        for segment_number, lacing_value in enumerate(lacing_values):
            if len(state.lacing) == OGG_MAX_SEGMENTS:
                self._seal_page(stream_serial, state)
                state.continued = segment_number > 0
            state.lacing.append(lacing_value)
            state.body += payload[pos:pos + lacing_value]
            pos += lacing_value
        state.page_granule = granule_position

        if boundary == PageBoundary.END_PAGE:
            self._seal_page(stream_serial, state)
        elif boundary == PageBoundary.END_STREAM:
            self._seal_page(stream_serial, state, eos=True)
            state.ended = True

    def finish(self) -> None:
        """Seal all pending pages and flush the sink.

        Streams that were not ended keep their EOS flag unset.
        """
        for stream_serial, state in self._streams.items():
            if state.lacing:
                self._seal_page(stream_serial, state)
        try:
            self._sink.flush()
        except OSError as e:
            raise NxOpusIOError(f"Could not flush Ogg output: {e}") from e
        logger.debug(f"Ogg writer finished after {self.pages_written} pages")

    def _seal_page(self, stream_serial: int, state: _StreamState, eos: bool = False):
        header_type = 0
        if state.continued:
            header_type |= HEADER_TYPE_CONTINUED
        if not state.started:
            header_type |= HEADER_TYPE_BOS
        if eos:
            header_type |= HEADER_TYPE_EOS

        page = bytearray(_PAGE_HEADER_STRUCT.pack(
            OGG_CAPTURE_PATTERN,
            0,                          # Version
            header_type,
            state.page_granule,
            stream_serial,
            state.sequence,
            0,                          # CRC placeholder
            len(state.lacing)
        ))
        page += state.lacing
        page += state.body
        struct.pack_into('<I', page, OGG_CRC_OFFSET, ogg_crc32(page))

        try:
            self._sink.write(page)
        except OSError as e:
            raise NxOpusIOError(f"Could not write Ogg page {state.sequence} "
                                f"of stream {stream_serial}: {e}") from e

        logger.trace(f"Ogg page {state.sequence} (stream {stream_serial}): {len(page)} bytes, "
                     f"{len(state.lacing)} segments, granule {state.page_granule}, flags 0x{header_type:02x}")

        self.pages_written += 1
        state.sequence += 1
        state.started = True
        state.continued = False
        state.page_granule = -1
        state.lacing = bytearray()
        state.body = bytearray()
