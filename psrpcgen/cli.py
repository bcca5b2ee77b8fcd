"""Command-line entry point of the protoc plugin."""

from __future__ import annotations

import argparse
import sys

from psrpcgen.generator import Generator
from psrpcgen.plugin_io import run
from psrpcgen.version import VERSION


def main(argv=None) -> int:
    """Read a request from standard input and write the response to standard output."""
    parser = argparse.ArgumentParser(prog="protoc-gen-psrpc")
    parser.add_argument(
        "-version", "--version", action="store_true", help="print version and exit"
    )
    args = parser.parse_args(argv)
    if args.version:
        print(VERSION)
        return 0
    return run(Generator())


if __name__ == "__main__":
    sys.exit(main())