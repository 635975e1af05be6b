"""
Tests for postdominator computation and control dependence mining.

This module covers:
- Immediate postdominators of branches and joins
- Control dependences of branch bodies, loop bodies and raises
- Visiting dependences statement by statement
"""

import ast
import textwrap
import unittest

from pydefuse.analysis.cdg import ControlDependenceMiner
from pydefuse.analysis.cfg import ControlFlowGraph, build_cfg
from pydefuse.application.errors import InternalError


IF_ELSE = """
x = 1
if x > 0:
    a = 1
else:
    a = 2
print(a)
"""

WHILE_LOOP = """
while n > 0:
    n -= 1
done()
"""

RAISE_IN_BRANCH = """
if bad:
    raise ValueError(bad)
ok = 1
"""


def build(code):
    tree = ast.parse(textwrap.dedent(code))
    return tree, build_cfg(tree)


def by_hint(cfg, hint):
    [block] = [b for b in cfg.all_blocks if b.hint == hint]
    return block


class TestPostdominators(unittest.TestCase):
    def testIfElse(self):
        tree, cfg = build(IF_ELSE)
        cond = by_hint(cfg, "if cond")
        join = by_hint(cfg, "conditional join")

        self.assertIs(cfg.immediate_postdominator(cond), join)
        self.assertIs(cfg.immediate_postdominator(cfg.entry), cond)
        self.assertIsNone(cfg.immediate_postdominator(join))

    def testReflexive(self):
        tree, cfg = build(IF_ELSE)
        miner = ControlDependenceMiner(cfg)
        for block in cfg.blocks:
            self.assertTrue(miner.postdominates(block, block))

    def testJoinPostdominatesBranches(self):
        tree, cfg = build(IF_ELSE)
        miner = ControlDependenceMiner(cfg)
        join = by_hint(cfg, "conditional join")
        for hint in ("if body", "else body", "if cond"):
            self.assertTrue(miner.postdominates(by_hint(cfg, hint), join))
        self.assertFalse(miner.postdominates(by_hint(cfg, "if cond"), by_hint(cfg, "if body")))

    def testNoSink(self):
        cfg = ControlFlowGraph()
        a = cfg.make_block("a")
        b = cfg.make_block("b")
        cfg.entry = a
        cfg.link(a, b, a)
        with self.assertRaises(InternalError):
            cfg.postdominators()


class TestControlDependence(unittest.TestCase):
    def testBranchBodies(self):
        tree, cfg = build(IF_ELSE)
        cond = by_hint(cfg, "if cond")
        deps = cfg.control_dependences()

        self.assertEqual(list(deps[by_hint(cfg, "if body").id].keys()), [str(cond.id)])
        self.assertEqual(list(deps[by_hint(cfg, "else body").id].keys()), [str(cond.id)])
        self.assertNotIn(by_hint(cfg, "conditional join").id, deps)
        self.assertNotIn(cfg.entry.id, deps)

    def testStraightLine(self):
        tree, cfg = build("a = 1\nb = a\n")
        self.assertEqual(cfg.control_dependences(), {})

    def testLoopBody(self):
        tree, cfg = build(WHILE_LOOP)
        head = by_hint(cfg, "while loop head")
        body = by_hint(cfg, "while body")
        deps = cfg.control_dependences()

        self.assertIn(head, deps[body.id])
        self.assertNotIn(by_hint(cfg, "while loop join").id, deps)
        self.assertIs(cfg.immediate_postdominator(body), head)

    def testRaiseMakesJoinDependent(self):
        tree, cfg = build(RAISE_IN_BRANCH)
        cond = by_hint(cfg, "if cond")
        join = by_hint(cfg, "conditional join")
        deps = cfg.control_dependences()

        self.assertIsNone(cfg.immediate_postdominator(cond))
        self.assertIn(cond, deps[join.id])
        self.assertIn(cond, deps[by_hint(cfg, "if body").id])

    def testVisit(self):
        tree, cfg = build(IF_ELSE)
        pairs = []
        cfg.visit_control_dependencies(lambda control, stmt: pairs.append((control, stmt)))

        test = tree.body[1].test
        self.assertEqual(len(pairs), 2)
        self.assertEqual({id(c) for c, _ in pairs}, {id(test)})
        self.assertEqual(
            {ast.unparse(s) for _, s in pairs},
            {"a = 1", "a = 2"},
        )


if __name__ == "__main__":
    unittest.main()
