"""
Tests for lowering Python statements into a block control flow graph.
"""

import ast
import textwrap
import unittest

from pydefuse.analysis.cfg import ControlFlowGraph, build_cfg
from pydefuse.application.errors import InternalError


def parse(code):
    return ast.parse(textwrap.dedent(code))


def by_hint(cfg, hint):
    return [b for b in cfg.all_blocks if b.hint == hint]


class TestStraightLine(unittest.TestCase):
    def testSingleBlock(self):
        cfg = build_cfg(parse("""
            x = 1
            y = x + 1
            print(y)
            """))
        self.assertEqual(len(cfg.blocks), 1)
        self.assertIs(cfg.blocks[0], cfg.entry)
        self.assertEqual(len(cfg.entry.statements), 3)
        self.assertNotIn(cfg.exceptional_exit, cfg.blocks)
        self.assertIs(cfg.exit, cfg.entry)

    def testDefinitionsAreStatements(self):
        cfg = build_cfg(parse("""
            def f(a):
                if a:
                    return 1
                return 2
            class C:
                pass
            """))
        self.assertEqual(len(cfg.blocks), 1)
        self.assertIsInstance(cfg.entry.statements[0], ast.FunctionDef)
        self.assertIsInstance(cfg.entry.statements[1], ast.ClassDef)

    def testFunctionBody(self):
        tree = parse("""
            def f(a):
                b = a
                return b
            """)
        cfg = build_cfg(tree.body[0])
        self.assertEqual(len(cfg.entry.statements), 2)

    def testNoneInput(self):
        with self.assertRaises(InternalError):
            build_cfg(None)


class TestBranches(unittest.TestCase):
    def testIfElse(self):
        tree = parse("""
            x = 1
            if x > 0:
                a = 1
            else:
                a = 2
            print(a)
            """)
        cfg = build_cfg(tree)
        [cond] = by_hint(cfg, "if cond")
        [body] = by_hint(cfg, "if body")
        [orelse] = by_hint(cfg, "else body")
        [join] = by_hint(cfg, "conditional join")

        self.assertIs(cond.statements[0], tree.body[1].test)
        self.assertEqual(cfg.successors(cfg.entry), [cond])
        self.assertEqual(cfg.successors(cond), [body, orelse])
        self.assertEqual(cfg.successors(body), [join])
        self.assertEqual(cfg.successors(orelse), [join])
        self.assertEqual(sorted(b.id for b in cfg.predecessors(join)), sorted([body.id, orelse.id]))
        self.assertIs(cfg.exit, join)
        self.assertIs(join.statements[0], tree.body[2])

    def testIfWithoutElseFallsThrough(self):
        cfg = build_cfg(parse("""
            if c:
                a = 1
            b = 2
            """))
        [cond] = by_hint(cfg, "if cond")
        [join] = by_hint(cfg, "conditional join")
        self.assertIn(join, cfg.successors(cond))

    def testElifChain(self):
        cfg = build_cfg(parse("""
            if a:
                x = 1
            elif b:
                x = 2
            elif c:
                x = 3
            else:
                x = 4
            """))
        [cond] = by_hint(cfg, "if cond")
        elifs = by_hint(cfg, "elif cond")
        [orelse] = by_hint(cfg, "else body")
        [join] = by_hint(cfg, "conditional join")

        self.assertEqual(len(elifs), 2)
        self.assertIn(elifs[0], cfg.successors(cond))
        self.assertIn(elifs[1], cfg.successors(elifs[0]))
        self.assertIn(orelse, cfg.successors(elifs[1]))
        self.assertNotIn(join, cfg.successors(elifs[1]))
        self.assertEqual(len(by_hint(cfg, "elif body")), 2)

    def testMatch(self):
        tree = parse("""
            match command:
                case [x, y]:
                    go(x, y)
                case {"k": v} if v:
                    use(v)
                case _:
                    pass
            """)
        cfg = build_cfg(tree)
        [subject] = by_hint(cfg, "match subject")
        cases = by_hint(cfg, "case cond")
        [join] = by_hint(cfg, "match join")

        self.assertIs(subject.statements[0], tree.body[0].subject)
        self.assertEqual(len(cases), 3)
        self.assertEqual(len(cases[1].statements), 2)
        self.assertIn(cases[0], cfg.successors(subject))
        self.assertIn(join, cfg.successors(cases[2]))


class TestLoops(unittest.TestCase):
    def testWhile(self):
        tree = parse("""
            while n > 0:
                n -= 1
            done()
            """)
        cfg = build_cfg(tree)
        [head] = by_hint(cfg, "while loop head")
        [body] = by_hint(cfg, "while body")
        [after] = by_hint(cfg, "while loop join")

        self.assertIs(head.statements[0], tree.body[0].test)
        self.assertIn(body, cfg.successors(head))
        self.assertIn(after, cfg.successors(head))
        self.assertIn(head, cfg.successors(body))
        self.assertIs(after.statements[0], tree.body[1])

    def testForHeadBindsTarget(self):
        tree = parse("""
            for i in range(3):
                total += i
            """)
        cfg = build_cfg(tree)
        [head] = by_hint(cfg, "for loop head")
        [body] = by_hint(cfg, "for body")

        [assign] = head.statements
        self.assertIsInstance(assign, ast.Assign)
        self.assertIs(assign.targets[0], tree.body[0].target)
        self.assertIs(assign.value, tree.body[0].iter)
        self.assertEqual((assign.lineno, assign.col_offset, assign.end_lineno, assign.end_col_offset), (2, 0, 2, 17))
        self.assertIn(tree.body[0].target, body.loop_variables)

    def testLoopElse(self):
        cfg = build_cfg(parse("""
            for i in xs:
                pass
            else:
                finished()
            """))
        [head] = by_hint(cfg, "for loop head")
        [orelse] = by_hint(cfg, "for else body")
        [after] = by_hint(cfg, "for loop join")
        self.assertIn(orelse, cfg.successors(head))
        self.assertIn(after, cfg.successors(orelse))

    def testBreakAndContinue(self):
        tree = parse("""
            while c:
                if d:
                    break
                    lost = 1
                continue
            """)
        cfg = build_cfg(tree)
        [head] = by_hint(cfg, "while loop head")
        [after] = by_hint(cfg, "while loop join")
        [if_body] = by_hint(cfg, "if body")
        [while_join] = by_hint(cfg, "conditional join")

        self.assertEqual(cfg.successors(if_body), [after])
        self.assertIn(head, cfg.successors(while_join))

        [unreachable] = [b for b in by_hint(cfg, "unreachable after break")]
        self.assertEqual(len(unreachable.statements), 1)
        self.assertNotIn(unreachable, cfg.blocks)

    def testBreakOutsideLoop(self):
        with self.assertRaises(InternalError):
            build_cfg(parse("break\n"))


class TestExceptions(unittest.TestCase):
    def testRaiseWithoutTry(self):
        cfg = build_cfg(parse("""
            if bad:
                raise ValueError(bad)
            ok = 1
            """))
        [body] = by_hint(cfg, "if body")
        self.assertIn(cfg.exceptional_exit, cfg.successors(body))
        self.assertIn(cfg.exceptional_exit, cfg.blocks)

    def testTry(self):
        tree = parse("""
            try:
                risky()
                raise Oops()
            except Oops as e:
                log(e)
            except Exception:
                pass
            else:
                fine()
            finally:
                cleanup()
            after()
            """)
        cfg = build_cfg(tree)
        [handlers] = by_hint(cfg, "handlers")
        handler_bodies = by_hint(cfg, "handler body")
        [try_body] = by_hint(cfg, "try body")
        [orelse] = by_hint(cfg, "try else body")
        [final] = by_hint(cfg, "finally body")
        [join] = by_hint(cfg, "try join")

        self.assertEqual(len(handler_bodies), 2)
        self.assertEqual(cfg.successors(handlers), handler_bodies)
        self.assertIn(handlers, cfg.successors(try_body))
        for body in handler_bodies:
            self.assertEqual(cfg.successors(body), [final])
        self.assertIn(final, cfg.successors(orelse))
        self.assertEqual(cfg.successors(final), [join])
        self.assertIs(join.statements[0], tree.body[1])

        binding = handler_bodies[0].statements[0]
        self.assertIsInstance(binding, ast.Assign)
        self.assertEqual(binding.targets[0].id, "e")
        self.assertEqual(binding.value.id, "Oops")
        self.assertIsInstance(handler_bodies[1].statements[0], ast.Expr)

    def testTryWithoutFinally(self):
        cfg = build_cfg(parse("""
            try:
                a()
            except E:
                b()
            """))
        [join] = by_hint(cfg, "try join")
        [handler] = by_hint(cfg, "handler body")
        [try_body] = by_hint(cfg, "try body")
        self.assertIn(join, cfg.successors(handler))
        self.assertIn(join, cfg.successors(try_body))


class TestWith(unittest.TestCase):
    def testResourceBindings(self):
        tree = parse("""
            with open(p) as f, lock:
                data = f.read()
            """)
        cfg = build_cfg(tree)
        [resource] = by_hint(cfg, "with")
        first, second = resource.statements
        self.assertIsInstance(first, ast.Assign)
        self.assertEqual(first.targets[0].id, "f")
        self.assertIsInstance(second, ast.Expr)
        [body] = by_hint(cfg, "with body")
        self.assertEqual(cfg.successors(resource), [body])


class TestGraphContainer(unittest.TestCase):
    def testNoDuplicateEdges(self):
        cfg = ControlFlowGraph()
        a = cfg.make_block("a")
        b = cfg.make_block("b")
        cfg.entry = a
        cfg.link(a, b)
        cfg.link(a, b)
        self.assertEqual(cfg.successors(a), [b])
        self.assertEqual(cfg.predecessors(b), [a])
        self.assertEqual(cfg.blocks, [a, b])
