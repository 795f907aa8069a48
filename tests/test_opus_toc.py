"""
Tests for opus_toc.py

    pytest tests/test_opus_toc.py -v
"""

import pytest

from nxopus.exceptions import TruncatedPacket
from nxopus.opus_toc import parse_toc, frame_size, frame_duration_samples

# Expected nominal durations in 48 kHz samples for config 0..31
EXPECTED_DURATIONS = (
    [480, 960, 1920, 2880] * 3 +   # SILK NB/MB/WB: 10, 20, 40, 60 ms
    [480, 960] * 2 +               # Hybrid SWB/FB: 10, 20 ms
    [120, 240, 480, 960] * 4       # CELT NB/WB/SWB/FB: 2.5, 5, 10, 20 ms
)


class TestParseToc:

    def test_config_0_mono_single_frame(self):
        toc = parse_toc(bytes([0b00000_0_00]))
        assert toc.config == 0
        assert toc.stereo is False
        assert toc.frame_count_code == 0
        assert toc.frame_count == 1

    def test_stereo_bit(self):
        toc = parse_toc(bytes([0b00000_1_00]))
        assert toc.config == 0
        assert toc.stereo is True
        assert toc.frame_count == 1

    def test_config_uses_top_five_bits(self):
        toc = parse_toc(bytes([0b10110_0_01]))
        assert toc.config == 0b10110
        assert toc.stereo is False
        assert toc.frame_count_code == 1

    @pytest.mark.parametrize("code", [1, 2])
    def test_codes_1_and_2_mean_two_frames(self, code):
        toc = parse_toc(bytes([0b01100_0_00 | code]))
        assert toc.frame_count_code == code
        assert toc.frame_count == 2

    def test_code_3_reads_frame_count_byte(self):
        # v=1, p=1 are skipped, M=0b000101
        toc = parse_toc(bytes([0b11111_1_11, 0b11_000101]))
        assert toc.config == 31
        assert toc.stereo is True
        assert toc.frame_count_code == 3
        assert toc.frame_count == 5

    def test_code_3_max_frame_count(self):
        assert parse_toc(bytes([0b00011_0_11, 0b00_111111, 0xAB])).frame_count == 63

    def test_code_3_without_count_byte(self):
        with pytest.raises(TruncatedPacket, match="frame count"):
            parse_toc(bytes([0b11111_0_11]))

    def test_empty_payload(self):
        with pytest.raises(TruncatedPacket, match="no TOC byte"):
            parse_toc(b'')

    def test_error_carries_packet_position(self):
        with pytest.raises(TruncatedPacket, match="packet #7") as excinfo:
            parse_toc(b'', index=7, offset=0x123)
        assert excinfo.value.index == 7
        assert excinfo.value.offset == 0x123

    def test_only_first_bytes_are_read(self):
        payload = memoryview(bytes([0b00001_0_00]) + b'\xFF' * 500)
        assert parse_toc(payload).config == 1

    @pytest.mark.parametrize("byte", range(256))
    def test_fields_match_bit_layout(self, byte):
        toc = parse_toc(bytes([byte, 0xC2]))
        assert toc.config == byte >> 3
        assert toc.stereo == bool(byte & 0b100)
        assert toc.frame_count_code == byte & 0b11


class TestFrameDuration:

    @pytest.mark.parametrize("config", range(32))
    def test_duration_of_every_config(self, config):
        assert frame_duration_samples(config) == EXPECTED_DURATIONS[config]

    @pytest.mark.parametrize("config", range(32))
    def test_duration_follows_48khz_formula(self, config):
        assert frame_duration_samples(config) == 48000 * frame_size(config) // 10000

    def test_frame_sizes_in_tenths_of_ms(self):
        assert [frame_size(c) for c in (0, 1, 2, 3)] == [100, 200, 400, 600]
        assert [frame_size(c) for c in (12, 13, 14, 15)] == [100, 200, 100, 200]
        assert [frame_size(c) for c in (16, 17, 18, 19)] == [25, 50, 100, 200]

    @pytest.mark.parametrize("config", [-1, 32, 255])
    def test_config_out_of_range(self, config):
        with pytest.raises(ValueError):
            frame_size(config)
