import unittest

from pydefuse.util.keyedset import KeyedSet
from pydefuse.util.typedispatch import *


class TestTypeDispatch(unittest.TestCase):
    def testDispatch(self):
        class Kind(TypeDispatcher):
            @dispatch(int)
            def visitInt(self, obj):
                return "integer"

            @dispatch(str, bytes)
            def visitText(self, obj):
                return "text"

            @defaultdispatch
            def visitOther(self, obj):
                return "other"

        kind = Kind()
        self.assertEqual(kind(1), "integer")
        self.assertEqual(kind(2**70), "integer")
        self.assertEqual(kind(True), "integer")
        self.assertEqual(kind("a"), "text")
        self.assertEqual(kind(b"a"), "text")
        self.assertEqual(kind(1.0), "other")

    def testInheritedHandlers(self):
        class Base(TypeDispatcher):
            @dispatch(int)
            def visitInt(self, obj):
                return "base int"

            @dispatch(str)
            def visitStr(self, obj):
                return "base str"

            @defaultdispatch
            def visitOther(self, obj):
                return "base other"

        class Derived(Base):
            @dispatch(int)
            def visitDerivedInt(self, obj):
                return "derived int"

        self.assertEqual(Derived()(1), "derived int")
        self.assertEqual(Derived()("x"), "base str")
        self.assertEqual(Base()(1), "base int")

    def testExtraArguments(self):
        class Adder(TypeDispatcher):
            @dispatch(int)
            def visitInt(self, obj, extra):
                return obj + extra

            @defaultdispatch
            def visitOther(self, obj, extra):
                return extra

        self.assertEqual(Adder()(1, 2), 3)
        self.assertEqual(Adder()(None, 2), 2)

    def testDuplicateHandler(self):
        with self.assertRaises(TypeDispatchDeclarationError):
            class Bad(TypeDispatcher):
                @dispatch(int)
                def first(self, obj):
                    return 1

                @dispatch(int)
                def second(self, obj):
                    return 2

    def testUnhandled(self):
        class OnlyInts(TypeDispatcher):
            @dispatch(int)
            def visitInt(self, obj):
                return obj

        self.assertEqual(OnlyInts()(4), 4)
        with self.assertRaises(TypeDispatchError):
            OnlyInts()(4.0)


class TestKeyedSet(unittest.TestCase):
    def setUp(self):
        self.key = lambda pair: pair[0]

    def testDeduplicatesByKey(self):
        s = KeyedSet(self.key, [("a", 1), ("b", 2), ("a", 3)])
        self.assertEqual(len(s), 2)
        self.assertEqual(s.items, [("a", 1), ("b", 2)])
        self.assertIn(("a", 99), s)

    def testAlgebra(self):
        a = KeyedSet(self.key, [("x", 1), ("y", 2)])
        b = KeyedSet(self.key, [("y", 5), ("z", 6)])

        self.assertEqual([k for k, _ in a.union(b)], ["x", "y", "z"])
        self.assertEqual([k for k, _ in a.minus(b)], ["x"])
        self.assertEqual([k for k, _ in a.intersect(b)], ["y"])
        self.assertEqual([k for k, _ in a.filter(lambda p: p[1] > 1)], ["y"])
        self.assertEqual(len(a), 2)

    def testUnionMinusLaw(self):
        a = KeyedSet(self.key, [("x", 1), ("y", 2)])
        b = KeyedSet(self.key, [("y", 5), ("z", 6)])
        result = a.union(b).minus(b)
        self.assertTrue(all(a.has(item) for item in result))
        self.assertFalse(any(b.has(item) for item in result))
        self.assertTrue(result.equals(a.minus(b)))

    def testEqualityIgnoresOrder(self):
        a = KeyedSet(self.key, [("x", 1), ("y", 2)])
        b = KeyedSet(self.key, [("y", 0), ("x", 0)])
        self.assertTrue(a.equals(b))
        self.assertEqual(a, b)

    def testTake(self):
        s = KeyedSet(self.key, [("a", 1), ("b", 2)])
        self.assertEqual(s.take(), ("a", 1))
        self.assertEqual(s.take(), ("b", 2))
        self.assertTrue(s.empty)
        with self.assertRaises(KeyError):
            s.take()
