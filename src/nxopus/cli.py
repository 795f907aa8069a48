"""Command line interface: nxopus INPUT OUTPUT"""

import argparse
import sys

from .converter import convert_file
from .exceptions import NxOpusError

from .logsetup import get_module_logger
logger = get_module_logger(__file__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nxopus",
        description="Convert an NX Opus container into an Ogg Opus file without re-encoding."
    )
    parser.add_argument("input", help="NX Opus container file")
    parser.add_argument("output", help="Ogg Opus file to write")
    return parser


def main(argv: list[str]|None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        convert_file(args.input, args.output)
    except NxOpusError as e:
        logger.error(f"Conversion of '{args.input}' failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
