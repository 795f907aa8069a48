"""
Tests for the nxopus command line interface

    pytest tests/test_cli.py -v
"""

import pytest
from loguru import logger as loguru_logger

from nxopus.cli import build_parser, main


@pytest.fixture
def errors():
    messages = []
    handler_id = loguru_logger.add(messages.append, level="ERROR", format="{message}")
    yield messages
    loguru_logger.remove(handler_id)


def test_parser_arguments():
    args = build_parser().parse_args(["in.nxopus", "out.ogg"])
    assert args.input == "in.nxopus"
    assert args.output == "out.ogg"


def test_successful_conversion(tmp_path, make_container, make_packet, read_ogg_pages):
    input_path = tmp_path / "in.nxopus"
    output_path = tmp_path / "out.ogg"
    input_path.write_bytes(make_container([make_packet()] * 2, channel_count=2))

    assert main([str(input_path), str(output_path)]) == 0
    assert len(read_ogg_pages(output_path.read_bytes())) == 3


def test_malformed_container_exits_with_1(tmp_path, errors):
    input_path = tmp_path / "bad.nxopus"
    input_path.write_bytes(b'\x01\x00\x00\x80' + b'\x00' * 10)

    assert main([str(input_path), str(tmp_path / "out.ogg")]) == 1
    assert any("failed" in m and "header" in m for m in errors)


def test_missing_input_exits_with_1(tmp_path, errors):
    assert main([str(tmp_path / "missing.nxopus"), str(tmp_path / "out.ogg")]) == 1
    assert any("Could not read" in m for m in errors)


def test_missing_argument_is_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["only_input.nxopus"])
    assert excinfo.value.code == 2
    assert "usage" in capsys.readouterr().err
