"""Control Flow Graph (CFG) representation.

A CFG here is a graph of basic blocks. Each block owns an ordered run of
statement nodes with no internal control transfer; edges are control
transfers between blocks. The edge relation is a ``networkx.DiGraph`` over
block ids, so duplicate edges collapse and successor/predecessor queries are
adjacency lookups.

Besides the entry block, a graph records:
- exit: the block where normal execution of the lowered statements ends
- exceptional_exit: the block a ``raise`` outside any ``try`` transfers to

Back edges (loops) are expected. Blocks that nothing links to (for example
the statements after a ``break``) are kept but never enumerated by ``blocks``,
which only walks what is reachable from the entry.
"""

import ast
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

import networkx as nx

from pydefuse.application.errors import InternalError
from pydefuse.language.location import location_of
from pydefuse.util.keyedset import KeyedSet


class Block(object):
    """A basic block.

    Attributes:
        id: Block id, unique within its graph
        hint: What construct created the block, e.g. ``while loop head``
        statements: The statement (or condition expression) nodes it owns
        loop_variables: Loop binding targets active when the block was made
    """
    __slots__ = ("id", "hint", "statements", "loop_variables")

    def __init__(self, id: int, hint: str, statements=None, loop_variables=None):
        self.id = id
        self.hint = hint
        self.statements: List[ast.AST] = list(statements or [])
        self.loop_variables: List[ast.AST] = list(loop_variables or [])

    def __repr__(self):
        return "Block(%d, %r)" % (self.id, self.hint)

    def __str__(self):
        lines = ["BLOCK %d (%s)" % (self.id, self.hint)]
        for s in self.statements:
            lines.append("%d: %s" % (location_of(s).first_line, ast.unparse(s)))
        return "\n".join(lines)


class BlockSet(KeyedSet[Block]):
    def __init__(self, items=()):
        super().__init__(lambda b: str(b.id), items)


@dataclass(frozen=True)
class Context:
    """Jump targets threaded through construction.

    Attributes:
        loop_head: Target of ``continue``
        loop_exit: Target of ``break``
        exception_block: Target of ``raise``
    """
    loop_head: Optional[Block] = None
    loop_exit: Optional[Block] = None
    exception_block: Optional[Block] = None

    def for_loop(self, loop_head: Block, loop_exit: Block) -> "Context":
        return replace(self, loop_head=loop_head, loop_exit=loop_exit)

    def for_excepts(self, exception_block: Optional[Block]) -> "Context":
        return replace(self, exception_block=exception_block)


class ControlFlowGraph(object):
    """A block graph produced by ``build_cfg``.

    Attributes:
        entry: The entry block
        exit: The block where normal execution ends
        exceptional_exit: The block uncaught raises transfer to
        graph: Edge relation over block ids
    """

    def __init__(self):
        self.graph = nx.DiGraph()
        self.entry: Optional[Block] = None
        self.exit: Optional[Block] = None
        self.exceptional_exit: Optional[Block] = None
        self._blocks: Dict[int, Block] = {}
        self._next_id = 0
        self._dependence = None

    def make_block(self, hint: str, statements=None, loop_variables=None) -> Block:
        if hint is None:
            raise InternalError("block hint must not be None")
        block = Block(self._next_id, hint, statements, loop_variables)
        self._next_id += 1
        self._blocks[block.id] = block
        self.graph.add_node(block.id)
        return block

    def link(self, *blocks: Block) -> None:
        """Add an edge between each consecutive pair of blocks."""
        for pred, succ in zip(blocks, blocks[1:]):
            if pred is None or succ is None:
                raise InternalError("cannot link a missing block")
            self.graph.add_edge(pred.id, succ.id)
        self._dependence = None

    @property
    def all_blocks(self) -> List[Block]:
        """Every block in creation order, reachable or not."""
        return list(self._blocks.values())

    @property
    def blocks(self) -> List[Block]:
        """Blocks reachable from the entry, in breadth-first order."""
        visited = []
        seen = set()
        to_visit = BlockSet([self.entry])
        while not to_visit.empty:
            block = to_visit.take()
            visited.append(block)
            seen.add(block.id)
            for succ in self.successors(block):
                if succ.id not in seen:
                    to_visit.add(succ)
        return visited

    def successors(self, block: Block) -> List[Block]:
        return [self._blocks[i] for i in self.graph.successors(block.id)]

    def predecessors(self, block: Block) -> List[Block]:
        return [self._blocks[i] for i in self.graph.predecessors(block.id)]

    def edges(self):
        """Edges between reachable blocks, as (pred, succ) block pairs."""
        reachable = {b.id for b in self.blocks}
        return [
            (self._blocks[a], self._blocks[b])
            for a, b in self.graph.edges()
            if a in reachable and b in reachable
        ]

    def _miner(self):
        if self._dependence is None:
            from pydefuse.analysis.cdg.postdom import ControlDependenceMiner

            self._dependence = ControlDependenceMiner(self)
        return self._dependence

    def postdominators(self):
        return self._miner().postdominators

    def immediate_postdominator(self, block: Block) -> Optional[Block]:
        p = self._miner().immediate_postdominator(block)
        return p.postdominator if p is not None else None

    def control_dependences(self) -> Dict[int, BlockSet]:
        """Map each dependent block id to the branch blocks controlling it."""
        return self._miner().frontiers

    def visit_control_dependencies(self, visit: Callable[[ast.AST, ast.AST], None]) -> None:
        self._miner().visit_control_dependencies(visit)

    def __str__(self):
        parts = ["CFG ENTRY: %d EXIT: %s" % (self.entry.id, self.exit.id if self.exit else "-")]
        for block in self.blocks:
            parts.append(str(block))
            succ = ",".join(str(b.id) for b in self.successors(block))
            parts.append("    SUCC %s" % succ if succ else "    EXIT")
        return "\n".join(parts)
