"""
Dumping utilities for dataflow analysis results.

**Supported Formats:**
- Text: edge listing with the names that justify each edge, then free refs
- DOT: one node per statement, def/use edges labeled by name, control
  dependences dashed
- JSON: statements, edges and free references
"""

import ast
import json
from typing import Dict

import pydot

from pydefuse.language.location import location_of
from .analyzer import DataflowAnalysisResult
from .refs import node_id


def _text(node) -> str:
    if isinstance(node, ast.arg):
        return "param %s" % node.arg
    text = ast.unparse(node)
    return text.splitlines()[0] if text else type(node).__name__


class DataflowDumper(object):
    """Renders a DataflowAnalysisResult."""
    __slots__ = ("result",)

    def __init__(self, result: DataflowAnalysisResult):
        self.result = result

    def _statements(self) -> Dict[str, ast.AST]:
        nodes = {}
        for flow in self.result.dataflows:
            nodes.setdefault(node_id(flow.from_node), flow.from_node)
            nodes.setdefault(node_id(flow.to_node), flow.to_node)
        return dict(sorted(nodes.items(), key=lambda kv: location_of(kv[1]).sort_key()))

    def dump_text(self, title: str = "Dataflow") -> str:
        lines = [title, "=" * 60, ""]
        lines.append("Statements: %d, Dataflows: %d, Free references: %d\n" % (
            len(self._statements()), len(self.result.dataflows), len(self.result.undefined_refs)))
        lines.append("Dataflows (from -> to) [name]:")
        for flow in self.result.dataflows:
            label = flow.to_ref.name if flow.to_ref is not None else "control"
            lines.append("  %d: %s -> %d: %s [%s]" % (
                location_of(flow.from_node).first_line, _text(flow.from_node),
                location_of(flow.to_node).first_line, _text(flow.to_node), label))
        lines.append("")
        lines.append("Free references:")
        for ref in self.result.undefined_refs:
            lines.append("  %s %s at %s" % (ref.level.name, ref.name, ref.location))
        return "\n".join(lines) + "\n"

    def dump_dot(self, title: str = "Dataflow") -> str:
        g = pydot.Dot(graph_type="digraph")
        g.set_label(title)
        ids = {}
        for i, (key, node) in enumerate(self._statements().items()):
            ids[key] = "s_%d" % i
            shape = "ellipse" if isinstance(node, ast.arg) else "box"
            label = "%d: %s" % (location_of(node).first_line, _text(node))
            g.add_node(pydot.Node(ids[key], label=label, shape=shape))

        for flow in self.result.dataflows:
            src, dst = ids[node_id(flow.from_node)], ids[node_id(flow.to_node)]
            if flow.to_ref is None:
                g.add_edge(pydot.Edge(src, dst, style="dashed"))
            else:
                g.add_edge(pydot.Edge(src, dst, label=flow.to_ref.name))
        return g.to_string()

    def dump_json(self, title: str = "Dataflow") -> str:
        data = {
            "title": title,
            "statements": [
                {"id": key, "line": location_of(node).first_line, "text": _text(node)}
                for key, node in self._statements().items()
            ],
            "dataflows": [
                {
                    "from": node_id(flow.from_node),
                    "to": node_id(flow.to_node),
                    "name": flow.to_ref.name if flow.to_ref is not None else None,
                    "kind": "control" if flow.to_ref is None else flow.to_ref.level.value.lower(),
                }
                for flow in self.result.dataflows
            ],
            "free_references": [
                {"name": ref.name, "level": ref.level.value, "location": str(ref.location)}
                for ref in self.result.undefined_refs
            ],
        }
        return json.dumps(data, indent=2)


def dump_dataflow(result: DataflowAnalysisResult, path, fmt: str = "text", title: str = "Dataflow") -> None:
    """
    Write a dataflow rendering to a file.

    Raises:
        AttributeError: If the format is not supported
    """
    dumper = DataflowDumper(result)
    method = getattr(dumper, "dump_%s" % fmt)
    with open(path, "w") as f:
        f.write(method(title))
