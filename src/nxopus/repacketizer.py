"""Granule positions and page boundaries for the raw packets of a container.

The container stores one Opus packet per channel per audio frame, channel
after channel. Packets of one audio frame are grouped into one Ogg page, and
every packet is stamped with the running sample position of the 48 kHz Opus
clock.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator

from .nx_container import RawPacket
from .opus_toc import OpusToc, parse_toc, frame_duration_samples
from .packagetypes import PageBoundary

from .logsetup import get_module_logger
logger = get_module_logger(__file__)


@dataclass(frozen=True)
class StampedPacket:
    """Raw packet plus everything the Ogg writer needs to place it"""
    packet: RawPacket
    toc: OpusToc
    granule_position: int
    boundary: PageBoundary


def next_granule_position(granule_position: int, toc: OpusToc) -> int:
    """Advance the granule position by one nominal frame of `toc.config`.

    `toc.frame_count` is deliberately not applied: packets of this container
    carry a single frame each.
    """
    return granule_position + frame_duration_samples(toc.config)


def page_boundary(index: int, channel_count: int, has_next: bool) -> PageBoundary:
    """Decide how packet number `index` (0-based) ends.

    The last packet ends the stream; otherwise every `channel_count`-th packet
    closes the page of its audio frame.
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")
    if not has_next:
        return PageBoundary.END_STREAM
    if (index + 1) % channel_count == 0:
        return PageBoundary.END_PAGE
    return PageBoundary.NORMAL_PACKET


def stamp_packets(packets: Iterable[RawPacket], channel_count: int,
                  granule_position: int = 0) -> Iterator[StampedPacket]:
    """Stamp packets in arrival order with granule position and page boundary.

    Works with a look-ahead of one packet, so `packets` may be a lazy
    iterator of unknown length. Errors raised while fetching the next packet
    propagate before the current packet is yielded.
    """
    iterator = iter(packets)
    current = next(iterator, None)
    while current is not None:
        following = next(iterator, None)
        toc = parse_toc(current.payload, index=current.index, offset=current.offset)
        granule_position = next_granule_position(granule_position, toc)
        boundary = page_boundary(current.index, channel_count, following is not None)
        logger.trace(f"packet #{current.index}: {len(current.payload)} bytes, config={toc.config}, "
                     f"stereo={toc.stereo}, frames={toc.frame_count}, "
                     f"granule={granule_position}, {boundary}")
        yield StampedPacket(packet=current, toc=toc,
                            granule_position=granule_position, boundary=boundary)
        current = following
