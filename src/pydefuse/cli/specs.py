"""
CLI functionality for inferring side-effect specs.

The output is a spec source document that can be passed back with
``--specs`` when analyzing code that imports the analyzed module.
"""

import ast
import json
import sys

from pydefuse.analysis.dataflow import DataflowAnalyzer
from pydefuse.application.errors import SpecLoadError

from .common import add_common_arguments, add_spec_arguments, parse_input, setup, write_output


def infer_module_spec(analyzer, tree):
    """Return the spec of a module's top-level functions and classes."""
    functions = []
    types = {}
    for statement in tree.body:
        if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef)):
            functions.append(analyzer.function_spec(statement).to_json())
        elif isinstance(statement, ast.ClassDef):
            type_spec = analyzer.class_spec(statement)
            types[statement.name] = {"methods": [m.to_json() for m in type_spec.methods]}
    spec = {"functions": functions}
    if types:
        spec["types"] = types
    return spec


def run_specs(input_path, args):
    """Infer the mutation specs of a file's functions and print them."""
    config = setup(args)
    try:
        analyzer = DataflowAnalyzer.from_config(config)
        tree = parse_input(input_path, config.origin)
        # Imports and earlier definitions shape the specs of later functions.
        analyzer.analyze_tree(tree)
        module = args.module or input_path.stem
        write_output(json.dumps({module: infer_module_spec(analyzer, tree)}, indent=2), args)
        return 0

    except (OSError, SyntaxError, SpecLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def add_specs_parser(subparsers):
    """Add specs subcommand to the argument parser."""
    parser = subparsers.add_parser(
        "specs", help="Infer which parameters a file's functions mutate"
    )
    add_common_arguments(parser)
    add_spec_arguments(parser)
    parser.add_argument(
        "--module", "-m", help="Module name in the output (default: file name)"
    )
    parser.set_defaults(func=run_specs)
