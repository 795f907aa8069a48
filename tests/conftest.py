"""
Shared fixtures for the nxopus tests.

Builds synthetic NX Opus containers in memory, records what the converter
hands to an Ogg writer and splits written Ogg data back into pages.
"""

import struct

import pytest

from nxopus.config import Config
from nxopus.logsetup import LoggingManager

# ============================================================================
# Synthetic containers
# ============================================================================

HEADER_MAGIC = 0x80000001
DATA_SECTION_MAGIC = 0x80000004

# TOC byte: config 1 (SILK NB 20 ms), mono, code 0 -> 960 samples per packet
TOC_SILK_20MS = 0b00001_0_00
# TOC byte: config 31 (CELT FB 20 ms), stereo, code 0 -> 960 samples
TOC_CELT_20MS_STEREO = 0b11111_1_00


def build_header(channel_count: int = 1, pre_skip: int = 312, sample_rate: int = 48000,
                 data_offset: int = 0x28, magic: int = HEADER_MAGIC) -> bytes:
    """30 byte container header; unused regions are filled with 0xAA."""
    header = bytearray(b'\xAA' * 0x1E)
    struct.pack_into('<I', header, 0x00, magic)
    header[0x09] = channel_count
    struct.pack_into('<I', header, 0x0C, sample_rate)
    struct.pack_into('<I', header, 0x10, data_offset)
    struct.pack_into('<H', header, 0x1C, pre_skip)
    return bytes(header)


def build_record(payload: bytes, metadata: bytes = b'\x00\x00\x00\x00') -> bytes:
    return struct.pack('>I', len(payload)) + metadata + payload


def build_container(payloads: list[bytes], channel_count: int = 1, pre_skip: int = 312,
                    sample_rate: int = 48000, data_offset: int = 0x28,
                    declared_length: int|None = None, trailer: bytes = b'') -> bytes:
    """Complete container with one record per payload, optional raw trailer bytes."""
    records = b''.join(build_record(p) for p in payloads) + trailer
    if declared_length is None:
        declared_length = len(records)
    header = build_header(channel_count, pre_skip, sample_rate, data_offset)
    padding = b'\x00' * (data_offset - len(header))
    section = struct.pack('<II', DATA_SECTION_MAGIC, declared_length)
    return header + padding + section + records


def opus_packet(toc: int = TOC_SILK_20MS, size: int = 40, fill: int = 0x5A) -> bytes:
    """Opus packet with the given TOC byte, padded with `fill` to `size` bytes."""
    return bytes([toc]) + bytes([fill]) * (size - 1)


@pytest.fixture
def make_container():
    return build_container


@pytest.fixture
def make_packet():
    return opus_packet


# ============================================================================
# Recording writer
# ============================================================================

class RecordingWriter:
    """Stand-in for the Ogg writer that keeps every write_packet() call"""

    def __init__(self):
        self.packets = []
        self.finished = False

    def write_packet(self, payload, stream_serial, boundary, granule_position):
        self.packets.append((bytes(payload), stream_serial, boundary, granule_position))

    def finish(self):
        self.finished = True


@pytest.fixture
def recording_writer():
    return RecordingWriter()


# ============================================================================
# Ogg page reader
# ============================================================================

def split_ogg_pages(data: bytes) -> list[dict]:
    """Split Ogg data into pages without any validation besides the capture pattern."""
    pages = []
    pos = 0
    while pos < len(data):
        assert data[pos:pos + 4] == b'OggS', f"no capture pattern at {pos}"
        version, header_type, granule, serial, sequence, crc, n_segments = \
            struct.unpack_from('<BBqIIIB', data, pos + 4)
        lacing = list(data[pos + 27:pos + 27 + n_segments])
        body_start = pos + 27 + n_segments
        body = data[body_start:body_start + sum(lacing)]
        raw = data[pos:body_start + sum(lacing)]
        pages.append({
            "version": version,
            "header_type": header_type,
            "granule": granule,
            "serial": serial,
            "sequence": sequence,
            "crc": crc,
            "lacing": lacing,
            "body": body,
            "raw": raw,
        })
        pos = body_start + sum(lacing)
    return pages


@pytest.fixture
def read_ogg_pages():
    return split_ogg_pages


# ============================================================================
# Configuration isolation
# ============================================================================

@pytest.fixture(autouse=True)
def restore_config():
    """Reset configurable values changed by a test."""
    saved = {key: getattr(Config, key) for key in Config._CONFIGURABLE_KEYS}
    saved["module_log_levels"] = dict(Config.module_log_levels)
    yield
    for key, value in saved.items():
        setattr(Config, key, value)
    LoggingManager.reconfigure()
