"""
Dumping utilities for Control Flow Graphs.

**Supported Formats:**
- Text: one section per reachable block with its statements and successors
- DOT: Graphviz DOT format, one box per block
- JSON: blocks, statements and edges for programmatic use

Dumpers render to strings; ``dump_cfg`` writes the rendering to a file.
"""

import ast
import json

import pydot

from pydefuse.language.location import location_of
from .graph import ControlFlowGraph


def _statement_text(node) -> str:
    return ast.unparse(node).replace("\n", " ")


class CFGDumper(object):
    """
    Renders a ControlFlowGraph.

    Postdominators are included when ``with_postdominators`` is set; they are
    computed on demand the first time they are asked for.
    """
    __slots__ = ("cfg", "with_postdominators")

    def __init__(self, cfg: ControlFlowGraph, with_postdominators: bool = False):
        self.cfg = cfg
        self.with_postdominators = with_postdominators

    def dump_text(self, title: str = "Control Flow Graph") -> str:
        lines = [title, "=" * 60, ""]
        blocks = self.cfg.blocks
        lines.append("Blocks: %d, Edges: %d\n" % (len(blocks), len(self.cfg.edges())))
        for block in blocks:
            lines.append("BLOCK %d (%s)" % (block.id, block.hint))
            for s in block.statements:
                lines.append("  %d: %s" % (location_of(s).first_line, _statement_text(s)))
            succ = [str(b.id) for b in self.cfg.successors(block)]
            lines.append("  -> %s" % (", ".join(succ) if succ else "exit"))
            if self.with_postdominators:
                ipdom = self.cfg.immediate_postdominator(block)
                lines.append("  ipdom: %s" % (ipdom.id if ipdom is not None else "-"))
        return "\n".join(lines) + "\n"

    def dump_dot(self, title: str = "CFG") -> str:
        g = pydot.Dot(graph_type="digraph")
        g.set_label(title)

        for block in self.cfg.blocks:
            text = "\\l".join(_statement_text(s) for s in block.statements)
            label = "%d: %s\\n%s" % (block.id, block.hint, text + "\\l" if text else "")
            shape = "box" if block.statements else "ellipse"
            g.add_node(pydot.Node("b_%d" % block.id, label=label, shape=shape))

        for pred, succ in self.cfg.edges():
            g.add_edge(pydot.Edge("b_%d" % pred.id, "b_%d" % succ.id))

        if self.with_postdominators:
            for block in self.cfg.blocks:
                ipdom = self.cfg.immediate_postdominator(block)
                if ipdom is not None:
                    g.add_edge(pydot.Edge("b_%d" % block.id, "b_%d" % ipdom.id, style="dashed", label="ipdom"))

        return g.to_string()

    def dump_json(self, title: str = "CFG") -> str:
        blocks = []
        for block in self.cfg.blocks:
            entry = {
                "id": block.id,
                "hint": block.hint,
                "statements": [
                    {"location": str(location_of(s)), "text": _statement_text(s)}
                    for s in block.statements
                ],
                "successors": [b.id for b in self.cfg.successors(block)],
            }
            if self.with_postdominators:
                ipdom = self.cfg.immediate_postdominator(block)
                entry["immediate_postdominator"] = ipdom.id if ipdom is not None else None
            blocks.append(entry)
        data = {
            "title": title,
            "entry": self.cfg.entry.id,
            "exit": self.cfg.exit.id if self.cfg.exit is not None else None,
            "blocks": blocks,
        }
        return json.dumps(data, indent=2)


def dump_cfg(cfg: ControlFlowGraph, path, fmt: str = "text", title: str = "CFG",
             with_postdominators: bool = False) -> None:
    """
    Write a CFG rendering to a file.

    Raises:
        AttributeError: If the format is not supported
    """
    dumper = CFGDumper(cfg, with_postdominators)
    method = getattr(dumper, "dump_%s" % fmt)
    with open(path, "w") as f:
        f.write(method(title))
