"""
Tests for the internal utilities.

This module verifies the semantic guarantees of:
- the Unset sentinel (singleton identity, falsy semantics, finality, copying),
- coalesce() (only Unset is replaced),
- rename() (both forms and their argument checks),
- IntrospectiveType (read-only mirrored fields and stable representations).
"""
import copy
import unittest
from unittest import TestCase

from bosun.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def testSingleton(self) -> None:
        self.assertIs(UnsetType(), Unset)

    def testFalsy(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFinal(self) -> None:
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})

    def testUnionSupport(self) -> None:
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("x", str | Unset)


class CoalesceTest(TestCase):

    def testReplacesUnsetOnly(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertIsNone(coalesce(Unset))


class RenameTest(TestCase):

    def testFunctionForm(self) -> None:
        def f():
            pass

        self.assertIs(rename(f, "g"), f)
        self.assertEqual((f.__name__, f.__qualname__), ("g", "g"))

    def testDecoratorForm(self) -> None:
        @rename("g")
        def f():
            pass

        self.assertEqual(f.__name__, "g")

    def testArgumentChecks(self) -> None:
        with self.assertRaises(TypeError):
            rename(1, "x")
        with self.assertRaises(TypeError):
            rename()


class IntrospectiveTypeTest(TestCase):

    def setUp(self) -> None:
        class SampleThing(metaclass=IntrospectiveType):
            __introspectable__ = ("size",)

            def __init__(self, size):
                self._size = size

        self.cls = SampleThing

    def testTypename(self) -> None:
        self.assertEqual(self.cls.__typename__, "sample-thing")

    def testMirroredFieldIsReadOnly(self) -> None:
        thing = self.cls(3)
        self.assertEqual(thing.size, 3)
        with self.assertRaises(AttributeError):
            thing.size = 4

    def testRepr(self) -> None:
        self.assertEqual(repr(self.cls(3)), "sample-thing(size=3)")
        self.assertEqual(list(self.cls(3).__rich_repr__()), [("size", 3)])


if __name__ == "__main__":
    unittest.main()
