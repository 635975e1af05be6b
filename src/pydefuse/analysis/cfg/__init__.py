"""
Control Flow Graph (CFG) construction for Python statement trees.

**Module Structure:**
- graph.py: Block, Context and the ControlFlowGraph container
- construction.py: CFGBuilder, which lowers statements into blocks
- dump.py: text, DOT and JSON renderings
"""

from .graph import Block, BlockSet, Context, ControlFlowGraph
from .construction import CFGBuilder, build_cfg
from .dump import CFGDumper, dump_cfg

__all__ = [
    "Block",
    "BlockSet",
    "Context",
    "ControlFlowGraph",
    "CFGBuilder",
    "build_cfg",
    "CFGDumper",
    "dump_cfg",
]
