"""
Postdominance and control dependence for pydefuse CFGs.

A block B is control dependent on a branch A when A's outcome decides
whether B runs: some path from A reaches B, and A is not postdominated by B.
Dependences are mined from reverse dominance frontiers computed over the
postdominator relation.

**Module Structure:**
- postdom.py: Postdominator facts and the ControlDependenceMiner
"""

from .postdom import ControlDependenceMiner, Postdominator, PostdominatorSet

__all__ = [
    "ControlDependenceMiner",
    "Postdominator",
    "PostdominatorSet",
]
