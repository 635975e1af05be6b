"""Main CLI dispatcher for pydefuse.

Dispatches to the cfg, dataflow and specs subcommands.
"""

import argparse
import sys

from pydefuse import __version__

from .cfg import add_cfg_parser
from .dataflow import add_dataflow_parser
from .specs import add_specs_parser


def main(argv=None):
    """Main entry point for the pydefuse CLI.

    Returns:
        int: Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(
        description="pydefuse - control and data dependence for Python", prog="pydefuse"
    )

    parser.add_argument("--version", action="version", version="pydefuse %s" % __version__)

    subparsers = parser.add_subparsers(
        dest="command", help="Available commands", required=True
    )

    add_cfg_parser(subparsers)
    add_dataflow_parser(subparsers)
    add_specs_parser(subparsers)

    args = parser.parse_args(argv)

    if not args.input.exists():
        print(f"Error: Path '{args.input}' not found", file=sys.stderr)
        return 1

    return args.func(args.input, args)


if __name__ == "__main__":
    sys.exit(main())
