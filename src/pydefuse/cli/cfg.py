"""
CLI functionality for control flow graph dumps.
"""

import sys

from pydefuse.analysis.cfg import CFGDumper, build_cfg

from .common import add_common_arguments, parse_input, setup, write_output


def run_cfg(input_path, args):
    """Build the CFG of a file and print it."""
    config = setup(args)
    try:
        tree = parse_input(input_path, config.origin)
        cfg = build_cfg(tree)
        dumper = CFGDumper(cfg, with_postdominators=args.postdominators)
        output = getattr(dumper, "dump_%s" % args.format)(str(input_path))
        write_output(output, args)
        return 0

    except (OSError, SyntaxError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def add_cfg_parser(subparsers):
    """Add cfg subcommand to the argument parser."""
    parser = subparsers.add_parser(
        "cfg", help="Dump the control flow graph of a Python file"
    )
    add_common_arguments(parser)
    parser.add_argument(
        "--format",
        "-f",
        choices=["text", "dot", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--postdominators",
        "-p",
        action="store_true",
        help="Include immediate postdominators",
    )
    parser.set_defaults(func=run_cfg)
