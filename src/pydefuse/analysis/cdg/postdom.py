"""
Postdominance and control dependence over a block CFG.

Based on "Engineering a Compiler" (Cooper and Torczon, 2nd ed.): iterative
dominance (p479), dominator trees and frontiers (p498-500), and postdominance
with reverse dominance frontiers (p544).

**Algorithm:**

1. **Postdominators**: the last block (the graph's exit, or the first block
   without successors) postdominates only itself. Every other block starts
   out postdominated by every block. Until nothing changes, each block's set
   becomes the intersection of its successors' sets, plus itself.

2. **Immediate postdominator**: among a block's postdominators other than
   itself, the one with the smallest recorded distance. The distance is the
   minimum over merged successors of the successor's distance plus one and
   is only used to rank candidates.

3. **Reverse dominance frontiers**: for every branch (a block with more than
   one successor), walk forward from its successors. Blocks postdominating
   the branch are merge points and are skipped; every other block reached is
   control dependent on the branch. The walk continues past a block only
   while that block's immediate postdominator differs from the branch's.
"""

import ast
import logging
from typing import Callable, Dict, List, Optional

from pydefuse.application.errors import InternalError
from pydefuse.analysis.cfg.graph import Block, BlockSet, ControlFlowGraph
from pydefuse.util.keyedset import KeyedSet

LOG = logging.getLogger(__name__)

INFINITY = float("inf")


class Postdominator(object):
    """A block together with one block postdominating it."""
    __slots__ = ("distance", "block", "postdominator")

    def __init__(self, distance: float, block: Block, postdominator: Block):
        self.distance = distance
        self.block = block
        self.postdominator = postdominator

    def __repr__(self):
        return "Postdominator(%s, %d, %d)" % (self.distance, self.block.id, self.postdominator.id)


class PostdominatorSet(KeyedSet[Postdominator]):
    def __init__(self, items=()):
        super().__init__(lambda p: "%d,%d" % (p.block.id, p.postdominator.id), items)


def _same_facts(old: PostdominatorSet, new: PostdominatorSet) -> bool:
    if not old.equals(new):
        return False
    return all(old.get(p).distance == p.distance for p in new)


def _target_id(p: Optional[Postdominator]) -> Optional[int]:
    return p.postdominator.id if p is not None else None


class ControlDependenceMiner(object):
    """
    Computes postdominators, immediate postdominators and control
    dependences of a ControlFlowGraph.

    All results cover only the blocks reachable from the entry.

    Attributes:
        postdominators: Every (block, postdominator) fact
        immediate: Block id to its immediate Postdominator
        frontiers: Dependent block id to the set of branch blocks controlling it
    """

    def __init__(self, cfg: ControlFlowGraph):
        self.cfg = cfg
        self.blocks = cfg.blocks
        self._by_block: Dict[int, PostdominatorSet] = {}
        self.postdominators = self.find_postdominators()
        self.immediate = self.find_immediate_postdominators()
        self.frontiers = self.build_reverse_dominance_frontiers()

    def last_block(self) -> Block:
        sinks = [b for b in self.blocks if not self.cfg.successors(b)]
        if not sinks:
            raise InternalError("CFG has no block without successors")
        if self.cfg.exit is not None and self.cfg.exit in sinks:
            return self.cfg.exit
        return sinks[0]

    def find_postdominators(self) -> PostdominatorSet:
        blocks = self.blocks
        by_block = self._by_block
        for block in blocks:
            by_block[block.id] = PostdominatorSet(
                Postdominator(0 if other is block else INFINITY, block, other)
                for other in blocks
            )
        last = self.last_block()
        by_block[last.id] = PostdominatorSet([Postdominator(0, last, last)])

        changed = True
        rounds = 0
        while changed:
            changed = False
            rounds += 1
            for block in blocks:
                if block is last:
                    continue
                successors = self.cfg.successors(block)
                # postdominator id -> [merged fact, number of successors sharing it]
                merged: Dict[int, list] = {}
                for succ in successors:
                    for p in by_block[succ.id]:
                        record = merged.get(p.postdominator.id)
                        if record is None:
                            merged[p.postdominator.id] = [Postdominator(p.distance + 1, block, p.postdominator), 1]
                        else:
                            record[0].distance = min(record[0].distance, p.distance + 1)
                            record[1] += 1
                new = PostdominatorSet(
                    fact for fact, count in merged.values() if count == len(successors)
                )
                new.remove(Postdominator(0, block, block))
                new.add(Postdominator(0, block, block))

                if not _same_facts(by_block[block.id], new):
                    by_block[block.id] = new
                    changed = True

        LOG.debug("postdominators converged after %d rounds", rounds)
        result = PostdominatorSet()
        for facts in by_block.values():
            result = result.union(facts)
        return result

    def postdominators_of(self, block: Block) -> PostdominatorSet:
        return self._by_block.get(block.id, PostdominatorSet())

    def postdominates(self, block: Block, postdominator: Block) -> bool:
        return self.postdominators_of(block).has(Postdominator(0, block, postdominator))

    def find_immediate_postdominators(self) -> Dict[int, Postdominator]:
        immediate = {}
        for block in self.blocks:
            candidates = [p for p in self.postdominators_of(block) if p.postdominator is not block]
            if candidates:
                immediate[block.id] = min(candidates, key=lambda p: p.distance)
        return immediate

    def immediate_postdominator(self, block: Block) -> Optional[Postdominator]:
        return self.immediate.get(block.id)

    def build_reverse_dominance_frontiers(self) -> Dict[int, BlockSet]:
        frontiers: Dict[int, BlockSet] = {}
        for block in self.blocks:
            successors = self.cfg.successors(block)
            if len(successors) <= 1:
                continue
            block_ipdom = _target_id(self.immediate_postdominator(block))
            work: List[Block] = list(successors)
            scheduled: List[int] = []
            while work:
                item = work.pop()
                # A branch successor may be the join point; joins are not dependent.
                if self.postdominates(block, item):
                    continue
                frontiers.setdefault(item.id, BlockSet()).add(block)
                if _target_id(self.immediate_postdominator(item)) != block_ipdom:
                    for succ in self.cfg.successors(item):
                        if succ.id not in scheduled:
                            scheduled.append(succ.id)
                            work.append(succ)
        return frontiers

    def visit_control_dependencies(self, visit: Callable[[ast.AST, ast.AST], None]) -> None:
        """Call visit(control_statement, statement) for every control dependence."""
        for block in self.blocks:
            frontier = self.frontiers.get(block.id)
            if frontier is None:
                continue
            for control_block in frontier:
                for control_stmt in control_block.statements:
                    for stmt in block.statements:
                        visit(control_stmt, stmt)
