"""
Source locations for ``ast`` nodes.

Every analysis fact is keyed by where it came from. A Location is read from
the standard ``lineno``/``col_offset``/``end_lineno``/``end_col_offset``
attributes plus an optional ``origin`` tag that callers attach to a whole tree
(usually the file or cell name) so facts from different sources never collide.
"""

import ast
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from pydefuse.application.errors import InternalError, require


@dataclass(frozen=True)
class Location:
    first_line: int
    first_column: int
    last_line: int
    last_column: int
    origin: Optional[str] = None

    def __str__(self):
        prefix = "%s:" % self.origin if self.origin else ""
        return "%s%d:%d-%d:%d" % (
            prefix,
            self.first_line,
            self.first_column,
            self.last_line,
            self.last_column,
        )

    def sort_key(self) -> Tuple:
        return (self.origin or "", self.first_line, self.first_column, self.last_line, self.last_column)


def location_of(node: ast.AST) -> Location:
    """
    Return the source location of a node.

    Raises:
        InternalError: If node is None or carries no position information
    """
    require(node, "node")
    lineno = getattr(node, "lineno", None)
    if lineno is None:
        raise InternalError("%s has no source location" % type(node).__name__)
    end_lineno = getattr(node, "end_lineno", None)
    end_col = getattr(node, "end_col_offset", None)
    return Location(
        lineno,
        node.col_offset,
        end_lineno if end_lineno is not None else lineno,
        end_col if end_col is not None else node.col_offset,
        getattr(node, "origin", None),
    )


def location_string(node: ast.AST) -> str:
    return str(location_of(node))


def tag_origin(tree: ast.AST, origin: Optional[str]) -> ast.AST:
    """Attach an origin tag to every located node of tree."""
    for node in ast.walk(tree):
        if hasattr(node, "lineno"):
            node.origin = origin
    return tree


def relocate(node: ast.AST, start: ast.AST, end: ast.AST) -> ast.AST:
    """Give a synthesized node the span from start to end."""
    node.lineno = start.lineno
    node.col_offset = start.col_offset
    node.end_lineno = end.end_lineno
    node.end_col_offset = end.end_col_offset
    node.origin = getattr(start, "origin", None)
    return node


_SCOPES = (ast.Lambda, ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


def _bound_in_scope(scope: ast.AST) -> set:
    bound = set()
    if isinstance(scope, ast.Lambda):
        a = scope.args
        for arg in a.posonlyargs + a.args + a.kwonlyargs:
            bound.add(arg.arg)
        for arg in (a.vararg, a.kwarg):
            if arg is not None:
                bound.add(arg.arg)
    else:
        for gen in scope.generators:
            for n in ast.walk(gen.target):
                if isinstance(n, ast.Name):
                    bound.add(n.id)
    return bound


def gather_names(node: ast.AST, bound: frozenset = frozenset()) -> Iterator[ast.Name]:
    """
    Yield every name read within node.

    Names bound by a lambda or comprehension nested in node are local to it
    and skipped inside that construct. Store-context names are not reads.
    """
    if node is None:
        return
    if isinstance(node, ast.Name):
        if not isinstance(node.ctx, ast.Store) and node.id not in bound:
            yield node
        return
    if isinstance(node, _SCOPES):
        bound = bound | _bound_in_scope(node)
    for child in ast.iter_child_nodes(node):
        yield from gather_names(child, bound)
