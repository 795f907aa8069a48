"""Opus table-of-contents (TOC) decoding.

References:
* RFC 6716 Definition of the Opus Audio Codec, Section 3.1 "The TOC Byte"
  https://tools.ietf.org/html/rfc6716#section-3.1
"""

from dataclasses import dataclass

from .exceptions import TruncatedPacket

OPUS_CLOCK_RATE = 48000

# Nominal frame sizes in tenths of a millisecond, indexed by config % len(table)
SILK_FRAME_SIZES = (100, 200, 400, 600)    # configs 0..11
HYBRID_FRAME_SIZES = (100, 200)            # configs 12..15
CELT_FRAME_SIZES = (25, 50, 100, 200)      # configs 16..31


@dataclass(frozen=True)
class OpusToc:
    """Decoded TOC of one Opus packet.

    `frame_count` is 1 for code 0, 2 for codes 1 and 2, and the count byte's
    low 6 bits for code 3.
    """
    config: int
    stereo: bool
    frame_count_code: int
    frame_count: int


def _bits(byte: int, first: int, width: int) -> int:
    """Read `width` bits of `byte` starting at bit `first`, counted from the MSB."""
    return (byte >> (8 - first - width)) & ((1 << width) - 1)


def parse_toc(payload: bytes, index: int|None = None, offset: int|None = None) -> OpusToc:
    """Decode the TOC byte (and the frame count byte of code 3 packets).

    TOC byte layout, most significant bit first:

        | config (5) | s (1) | c (2) |

    For c == 3 the next byte is

        | v (1) | p (1) | M (6) |

    where v (VBR) and p (padding) are skipped and M is the frame count.

    Raises
    ------
    TruncatedPacket
        If the payload is empty, or has code 3 and no frame count byte.
    """
    if len(payload) < 1:
        raise TruncatedPacket("empty payload has no TOC byte", offset=offset, index=index)

    toc = payload[0]
    config = _bits(toc, 0, 5)
    stereo = bool(_bits(toc, 5, 1))
    code = _bits(toc, 6, 2)

    if code == 0:
        frame_count = 1
    elif code in (1, 2):
        frame_count = 2
    else:
        if len(payload) < 2:
            raise TruncatedPacket("TOC code 3 without frame count byte", offset=offset, index=index)
        frame_count = _bits(payload[1], 2, 6)

    return OpusToc(config=config, stereo=stereo, frame_count_code=code, frame_count=frame_count)


def frame_size(config: int) -> int:
    """Nominal frame duration of a TOC config in tenths of a millisecond."""
    if 0 <= config <= 11:
        sizes = SILK_FRAME_SIZES
    elif 12 <= config <= 15:
        sizes = HYBRID_FRAME_SIZES
    elif 16 <= config <= 31:
        sizes = CELT_FRAME_SIZES
    else:
        raise ValueError(f"Opus TOC config must be in 0..31, got {config}")
    return sizes[config % len(sizes)]


def frame_duration_samples(config: int) -> int:
    """Nominal frame duration of a TOC config in samples of the 48 kHz Opus clock.

    Independent of the source sample rate stored in the container: Opus
    timestamps always count at 48 kHz.
    """
    return OPUS_CLOCK_RATE * frame_size(config) // 10000
