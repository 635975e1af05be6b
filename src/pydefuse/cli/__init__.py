"""
pydefuse command-line tools.

- cfg: dump the control flow graph of a file
- dataflow: dump the def/use dataflows and free references of a file
- specs: print the inferred mutation specs of a file's functions and classes
"""

from .main import main

__all__ = ["main"]
