"""Conversion of NX Opus containers into Ogg Opus streams.

The pipeline emits, in this order,

1. the identification header (own page, granule 0),
2. the comment header (own page, granule 0),
3. every raw packet of the data section, unchanged, stamped with its granule
   position and page boundary.

Nothing is decoded or re-encoded. The first structural error aborts the
conversion; output written up to that point is not valid and should be
discarded by the caller.
"""

import pathlib
from dataclasses import dataclass
from typing import Protocol

from .config import Config
from .exceptions import NxOpusIOError
from .nx_container import ContainerHeader, parse_header, locate_data_section, iter_packets
from .oggopus import COMMENT_HEADER, id_header_for
from .ogg_writer import OggPacketWriter
from .opus_toc import OPUS_CLOCK_RATE
from .packagetypes import PageBoundary
from .repacketizer import stamp_packets

from .logsetup import get_module_logger
logger = get_module_logger(__file__)


class PacketSink(Protocol):
    def write_packet(self, payload: bytes, stream_serial: int,
                     boundary: PageBoundary, granule_position: int) -> None: ...


@dataclass(frozen=True)
class ConversionSummary:
    """What a finished conversion wrote"""
    header: ContainerHeader
    declared_length: int
    consumed_length: int
    packet_count: int
    granule_position: int

    @property
    def duration_seconds(self) -> float:
        """Playback duration after removing the pre-skip samples."""
        return max(self.granule_position - self.header.pre_skip, 0) / OPUS_CLOCK_RATE


def convert(source: bytes, writer: PacketSink) -> ConversionSummary:
    """Feed the Ogg Opus representation of the container in `source` into `writer`.

    `writer.finish()` is left to the caller.

    Raises
    ------
    MalformedHeader, MalformedDataSection, MalformedPacketFrame, TruncatedPacket
        On the first structural violation of the container.
    """
    serial = Config.ogg_stream_serial

    header = parse_header(source)
    writer.write_packet(id_header_for(header), serial, PageBoundary.END_PAGE, 0)
    writer.write_packet(COMMENT_HEADER, serial, PageBoundary.END_PAGE, 0)

    section = locate_data_section(source, header)

    packet_count = 0
    granule_position = 0
    for stamped in stamp_packets(iter_packets(section), header.channel_count):
        writer.write_packet(stamped.packet.payload, serial, stamped.boundary, stamped.granule_position)
        packet_count += 1
        granule_position = stamped.granule_position

    # Every record was complete, so the framer used up the whole body.
    consumed_length = len(section.body)
    if Config.warn_on_length_mismatch and consumed_length != section.declared_length:
        logger.warning(f"Data section declares {section.declared_length} bytes, "
                       f"but {consumed_length} bytes of packets were read")

    summary = ConversionSummary(header=header,
                                declared_length=section.declared_length,
                                consumed_length=consumed_length,
                                packet_count=packet_count,
                                granule_position=granule_position)
    logger.info(f"Converted {packet_count} packets, {header.channel_count} channel(s), "
                f"final granule {granule_position} ({summary.duration_seconds:.3f} s)")
    return summary


def convert_file(input_path: str|pathlib.Path, output_path: str|pathlib.Path) -> ConversionSummary:
    """Convert the container file `input_path` into the Ogg Opus file `output_path`.

    Raises
    ------
    NxOpusIOError
        If the input can not be read or the output can not be written.
    MalformedHeader, MalformedDataSection, MalformedPacketFrame, TruncatedPacket
        On a structural violation of the container.
    """
    input_path = pathlib.Path(input_path)
    output_path = pathlib.Path(output_path)

    try:
        source = input_path.read_bytes()
    except OSError as e:
        raise NxOpusIOError(f"Could not read '{input_path}': {e}") from e
    logger.debug(f"Read {len(source)} bytes from '{input_path}'")

    try:
        with open(output_path, "wb") as out_file:
            writer = OggPacketWriter(out_file)
            summary = convert(source, writer)
            writer.finish()
    except OSError as e:
        raise NxOpusIOError(f"Could not write '{output_path}': {e}") from e

    logger.success(f"'{input_path.name}' -> '{output_path.name}': {writer.pages_written} Ogg pages")
    return summary
