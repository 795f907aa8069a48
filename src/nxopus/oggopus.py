"""Ogg Opus header packets.

References:
* RFC 7845 Ogg Encapsulation for the Opus Audio Codec
  https://tools.ietf.org/html/rfc7845.html
"""

import struct

from .nx_container import ContainerHeader

OPUS_HEAD_MAGIC = b'OpusHead'
OPUS_TAGS_MAGIC = b'OpusTags'

# Vendor "nx-opus", no user comments.
COMMENT_HEADER = OPUS_TAGS_MAGIC + b'\x07\x00\x00\x00nx-opus\x00\x00\x00\x00'


def opus_id_header_packet(
        *, n_channels: int, pre_skip: int, input_sample_rate: int,
        output_gain: int = 0) -> bytes:
    """Generate the 19 byte identification header with channel mapping family 0.

    Reference: "Identification Header", Section-5.1, RFC7845.
    """
    return (
        OPUS_HEAD_MAGIC +
        b'\x01' +  # Version
        struct.pack(
            '<BHIh', n_channels, pre_skip, input_sample_rate, output_gain) +
        b'\x00'  # Channel Mapping Family 0
    )


def id_header_for(header: ContainerHeader) -> bytes:
    """Identification header describing the stream of a parsed container."""
    return opus_id_header_packet(n_channels=header.channel_count,
                                 pre_skip=header.pre_skip,
                                 input_sample_rate=header.sample_rate)
