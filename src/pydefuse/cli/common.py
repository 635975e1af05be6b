"""Options and setup shared by the subcommands."""

import ast
import logging
import sys
from pathlib import Path

from pydefuse.application.config import AnalysisConfig
from pydefuse.language.location import tag_origin


def add_common_arguments(parser):
    parser.add_argument("input", type=Path, help="Python file to analyze")
    parser.add_argument(
        "--output", "-o", type=Path, help="Output file (default: stdout)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="Debug output"
    )


def add_spec_arguments(parser):
    parser.add_argument(
        "--specs",
        action="append",
        type=Path,
        metavar="FILE",
        help="Extra JSON side-effect spec file (repeatable)",
    )
    parser.add_argument(
        "--no-bundled-specs",
        action="store_true",
        help="Do not load the specs shipped with pydefuse",
    )


def setup(args) -> AnalysisConfig:
    """Configure logging and build the analysis configuration."""
    config = AnalysisConfig.from_args(args)
    logging.basicConfig(level=config.log_level, format="%(levelname)s: %(message)s")
    return config


def parse_input(path: Path, origin=None) -> ast.Module:
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    return tag_origin(ast.parse(source, filename=str(path)), origin)


def write_output(text: str, args) -> None:
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        if args.verbose:
            print(f"Output written to {args.output}")
    else:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
