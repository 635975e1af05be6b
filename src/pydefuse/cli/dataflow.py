"""
CLI functionality for dataflow analysis.
"""

import sys

from pydefuse.analysis.dataflow import DataflowAnalyzer, DataflowDumper
from pydefuse.application.errors import SpecLoadError

from .common import add_common_arguments, add_spec_arguments, parse_input, setup, write_output


def run_dataflow(input_path, args):
    """Analyze the dataflows of a file and print them."""
    config = setup(args)
    try:
        analyzer = DataflowAnalyzer.from_config(config)
        result = analyzer.analyze_tree(parse_input(input_path, config.origin))
        output = getattr(DataflowDumper(result), "dump_%s" % args.format)(str(input_path))
        write_output(output, args)
        return 0

    except (OSError, SyntaxError, SpecLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def add_dataflow_parser(subparsers):
    """Add dataflow subcommand to the argument parser."""
    parser = subparsers.add_parser(
        "dataflow", help="Dump def/use dataflows and free references"
    )
    add_common_arguments(parser)
    add_spec_arguments(parser)
    parser.add_argument(
        "--format",
        "-f",
        choices=["text", "dot", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.set_defaults(func=run_dataflow)
