"""nxopus package initialization."""

from .logsetup import get_module_logger

# Get logger for this module
logger = get_module_logger(__file__)

# Conversion
from .converter import (
    convert,
    convert_file,
    ConversionSummary
)

# Container and packet level
from .nx_container import (
    ContainerHeader,
    DataSection,
    RawPacket,
    parse_header,
    locate_data_section,
    iter_packets
)
from .opus_toc import (
    OpusToc,
    parse_toc,
    frame_size,
    frame_duration_samples
)
from .repacketizer import (
    StampedPacket,
    next_granule_position,
    page_boundary,
    stamp_packets
)
from .ogg_writer import OggPacketWriter

# Configuration and exceptions
from .config import Config
from .exceptions import (
    NxOpusError,
    MalformedHeader,
    MalformedDataSection,
    MalformedPacketFrame,
    TruncatedPacket,
    NxOpusIOError
)

# Types and Enums
from .packagetypes import LogLevel, PageBoundary

__all__ = [
    # Conversion
    "convert",
    "convert_file",
    "ConversionSummary",

    # Container and packet level
    "ContainerHeader",
    "DataSection",
    "RawPacket",
    "parse_header",
    "locate_data_section",
    "iter_packets",
    "OpusToc",
    "parse_toc",
    "frame_size",
    "frame_duration_samples",
    "StampedPacket",
    "next_granule_position",
    "page_boundary",
    "stamp_packets",
    "OggPacketWriter",

    # Configuration
    "Config",

    # Exceptions
    "NxOpusError",
    "MalformedHeader",
    "MalformedDataSection",
    "MalformedPacketFrame",
    "TruncatedPacket",
    "NxOpusIOError",

    # Types
    "LogLevel",
    "PageBoundary"
]
