"""
Resolver behavioral tests (matching, tokenizing, binding, validation).

Scope
- Validate command matching (deepest path, aliases, flags end matching).
- Validate tokenization: long/short flags, inline values, clusters, '--'.
- Validate binding and the resolution faults with their structured fields.
- Validate required flags, deprecation warnings, commit and idempotence.

Conventions
- Test method names follow CamelCase per project convention.
- Trees are built in setUp with the public API (Command, Flag).
"""

from __future__ import annotations

import decimal
import unittest
from unittest import TestCase

from bosun import Command, Flag, Binding, BoundFlags, resolve, register, unregister
from bosun import (
    UnknownFlagError,
    MissingFlagValueError,
    InvalidFlagValueError,
    MissingRequiredFlagError,
    ResolutionError,
    DeprecatedFlagWarning,
    DeprecatedCommandWarning,
)


class TestMatching(TestCase):
    """Phase 1: command path matching."""

    def setUp(self):
        self.root = Command("git")
        self.remote = Command("remote", aliases=["rem"])
        self.add = Command("add")
        self.root.add(self.remote.add(self.add))

    def testSingleChild(self):
        result = resolve(self.root, ["remote"])
        self.assertIs(result.command, self.remote)
        self.assertEqual(result.args, ())

    def testDeepestPathWins(self):
        result = resolve(self.root, ["remote", "add", "origin"])
        self.assertIs(result.command, self.add)
        self.assertEqual(result.args, ("origin",))

    def testAlias(self):
        self.assertIs(resolve(self.root, ["rem", "add"]).command, self.add)

    def testNoTokensMatchesRoot(self):
        result = resolve(self.root, [])
        self.assertIs(result.command, self.root)
        self.assertEqual(result.args, ())

    def testUnknownNameBecomesPositional(self):
        result = resolve(self.root, ["status", "remote"])
        self.assertIs(result.command, self.root)
        self.assertEqual(result.args, ("status", "remote"))

    def testFlagEndsMatching(self):
        self.root.add(Flag("verbose", value=False))
        result = resolve(self.root, ["--verbose", "remote"])
        self.assertIs(result.command, self.root)
        self.assertEqual(result.args, ("remote",))

    def testStringTokensRejected(self):
        with self.assertRaises(TypeError):
            resolve(self.root, "remote")


class TestBinding(TestCase):
    """Phases 2 and 3: tokenizing and binding flag values."""

    def setUp(self):
        self.root = Command("root")
        self.remote = Command("remote")
        self.root.add(self.remote)
        self.remote.add(
            Flag("foo", value="-", inheritable=True),
            Flag("bar", value="-", inheritable=False),
            Flag("flag", "f", value=True),
            Flag("count", "c", type=int),
            Flag("name", "n", type=str),
        )

    def testUnknownShortFlag(self):
        with self.assertRaises(UnknownFlagError) as context:
            resolve(self.root, ["remote", "--foo", "x", "-z"])
        self.assertEqual(context.exception.name, "z")
        self.assertIs(context.exception.tool, self.remote)

    def testUnknownLongFlagSuggests(self):
        with self.assertRaises(UnknownFlagError) as context:
            resolve(self.root, ["remote", "--cuont=2"])
        self.assertEqual(context.exception.name, "cuont")
        self.assertIn("--count", context.exception.suggestions)

    def testUnknownFlagIsResolutionError(self):
        with self.assertRaises(ResolutionError):
            resolve(self.root, ["--nope"])

    def testBooleanDoesNotConsumeNextToken(self):
        result = resolve(self.root, ["remote", "--flag", "false"])
        self.assertIs(result.flags["flag"], True)
        self.assertEqual(result.args, ("false",))

    def testBooleanInlineValue(self):
        result = resolve(self.root, ["remote", "--flag=false"])
        self.assertIs(result.flags["flag"], False)

    def testBooleanInvalidInlineValue(self):
        with self.assertRaises(InvalidFlagValueError) as context:
            resolve(self.root, ["remote", "--flag=perhaps"])
        self.assertEqual(context.exception.expected, "boolean")

    def testSpacedAndInlineValuesAgree(self):
        spaced = resolve(self.root, ["remote", "--name", "value"])
        inline = resolve(self.root, ["remote", "--name=value"])
        self.assertEqual(spaced.flags["name"], "value")
        self.assertEqual(spaced.flags, inline.flags)

    def testInlineValueSplitsOnFirstEquals(self):
        result = resolve(self.root, ["remote", "--name=a=b"])
        self.assertEqual(result.flags["name"], "a=b")

    def testEmptyInlineString(self):
        self.assertEqual(resolve(self.root, ["remote", "--name="]).flags["name"], "")

    def testShortFlagWithValue(self):
        result = resolve(self.root, ["remote", "-c", "3", "-n=x"])
        self.assertEqual(result.flags["count"], 3)
        self.assertEqual(result.flags["name"], "x")

    def testShortCluster(self):
        result = resolve(self.root, ["remote", "-fc", "5"])
        self.assertIs(result.flags["flag"], True)
        self.assertEqual(result.flags["count"], 5)

    def testShortClusterAttachedValue(self):
        result = resolve(self.root, ["remote", "-fc7"])
        self.assertEqual(result.flags["count"], 7)

    def testMissingValueAtEnd(self):
        with self.assertRaises(MissingFlagValueError) as context:
            resolve(self.root, ["remote", "--count"])
        self.assertEqual(context.exception.name, "count")

    def testMissingValueWhenNextLooksLikeFlag(self):
        with self.assertRaises(MissingFlagValueError):
            resolve(self.root, ["remote", "--name", "--flag"])
        with self.assertRaises(MissingFlagValueError):
            resolve(self.root, ["remote", "--count", "-5"])

    def testNegativeNumberInline(self):
        self.assertEqual(resolve(self.root, ["remote", "--count=-5"]).flags["count"], -5)

    def testInvalidValueFields(self):
        with self.assertRaises(InvalidFlagValueError) as context:
            resolve(self.root, ["remote", "--count", "many"])
        self.assertEqual(context.exception.name, "count")
        self.assertEqual(context.exception.token, "many")
        self.assertEqual(context.exception.expected, "integer")

    def testRegisteredTypeFailureBecomesInvalidValue(self):
        amount = register("amount-decimal", decimal.Decimal, accepts=decimal.Decimal)
        self.addCleanup(unregister, "amount-decimal")
        self.remote.add(Flag("amount", type=amount))
        self.assertEqual(resolve(self.root, ["remote", "--amount", "1.25"]).flags["amount"], decimal.Decimal("1.25"))
        with self.assertRaises(InvalidFlagValueError) as context:
            resolve(self.root, ["remote", "--amount", "abc"])
        self.assertEqual(context.exception.name, "amount")
        self.assertEqual(context.exception.token, "abc")
        self.assertEqual(context.exception.expected, "amount-decimal")

    def testLastOccurrenceWins(self):
        result = resolve(self.root, ["remote", "--name=a", "-n", "b"])
        self.assertEqual(result.flags["name"], "b")

    def testTerminator(self):
        result = resolve(self.root, ["remote", "--flag", "--", "--count", "-x", "--"])
        self.assertIs(result.flags["flag"], True)
        self.assertNotIn("count", result.flags)
        self.assertEqual(result.args, ("--count", "-x", "--"))

    def testSingleDashIsPositional(self):
        self.assertEqual(resolve(self.root, ["remote", "-"]).args, ("-",))

    def testEmptyLongNameIsUnknown(self):
        with self.assertRaises(UnknownFlagError) as context:
            resolve(self.root, ["remote", "--=x"])
        self.assertEqual(context.exception.name, "")

    def testInheritedFlagVisibleInChild(self):
        leaf = Command("leaf")
        self.remote.add(leaf)
        result = resolve(self.root, ["remote", "leaf", "--foo", "x"])
        self.assertEqual(result.flags["foo"], "x")
        with self.assertRaises(UnknownFlagError):
            resolve(self.root, ["remote", "leaf", "--bar", "x"])

    def testAncestorFlagsNotVisibleFromRoot(self):
        with self.assertRaises(UnknownFlagError):
            resolve(self.root, ["--foo", "x"])

    def testShadowingUsesChildInstance(self):
        parent = Flag("level", value=1)
        child = Flag("level", value="high")
        self.root.add(parent)
        self.remote.add(child)
        result = resolve(self.root, ["remote", "--level", "low"])
        self.assertEqual(result.flags["level"], "low")
        self.assertEqual(child.value, "low")
        self.assertIs(parent.binding, Binding.UNBOUND)


class TestValidation(TestCase):
    """Phase 4: required flags, defaults and deprecation warnings."""

    def setUp(self):
        self.root = Command("root")
        self.root.add(Flag("token", type=str, required=True))

    def testRequiredFlagMissing(self):
        with self.assertRaises(MissingRequiredFlagError) as context:
            resolve(self.root, [])
        self.assertEqual(context.exception.name, "token")

    def testRequiredFlagSuppliedBothWays(self):
        inline = resolve(self.root, ["--token=abc"])
        spaced = resolve(self.root, ["--token", "abc"])
        self.assertEqual(inline.flags["token"], "abc")
        self.assertEqual(inline.flags, spaced.flags)

    def testDefaultSatisfiesRequired(self):
        root = Command("root")
        root.add(Flag("mode", value="fast"))
        result = resolve(root, [])
        self.assertEqual(result.flags["mode"], "fast")
        self.assertIs(result.flags.binding("mode"), Binding.DEFAULT)

    def testOptionalFlagWithoutValueIsAbsent(self):
        root = Command("root")
        root.add(Flag("jobs", type=int))
        result = resolve(root, [])
        self.assertNotIn("jobs", result.flags)
        self.assertIs(result.flags.binding("jobs"), Binding.UNBOUND)

    def testDeprecatedFlagWarningWhenSet(self):
        root = Command("root")
        root.add(Flag("old", value="x", deprecated="use --new instead"))
        self.assertEqual(resolve(root, []).warnings, ())
        result = resolve(root, ["--old=y"])
        self.assertEqual(len(result.warnings), 1)
        warning, = result.warnings
        self.assertIsInstance(warning, DeprecatedFlagWarning)
        self.assertEqual(warning.name, "old")
        self.assertEqual(warning.reason, "use --new instead")

    def testDeprecatedCommandWarning(self):
        root = Command("root")
        root.add(Command("legacy", deprecated="use 'modern'"))
        warning, = resolve(root, ["legacy"]).warnings
        self.assertIsInstance(warning, DeprecatedCommandWarning)
        self.assertEqual(warning.reason, "use 'modern'")


class TestCommit(TestCase):
    """Flag state after resolution, purity and idempotence."""

    def setUp(self):
        self.root = Command("root")
        self.remote = Command("remote")
        self.root.add(self.remote)
        self.verbose = Flag("verbose", "v", value=False)
        self.name = Flag("name", type=str)
        self.root.add(self.verbose)
        self.remote.add(self.name)

    def testFlagStateAfterResolution(self):
        resolve(self.root, ["remote", "--name", "x"])
        self.assertEqual(self.name.value, "x")
        self.assertTrue(self.name.was_set)
        self.assertIs(self.verbose.value, False)
        self.assertIs(self.verbose.binding, Binding.DEFAULT)

    def testFailedResolutionLeavesFlagsUntouched(self):
        resolve(self.root, ["remote", "--name", "x"])
        with self.assertRaises(UnknownFlagError):
            resolve(self.root, ["remote", "--name", "y", "--nope"])
        self.assertEqual(self.name.value, "x")

    def testStateIsResetBetweenRuns(self):
        resolve(self.root, ["remote", "--name", "x", "-v"])
        result = resolve(self.root, ["remote"])
        self.assertIs(self.name.binding, Binding.UNBOUND)
        self.assertIsNone(self.name.value)
        self.assertIs(self.verbose.value, False)
        self.assertEqual(dict(result.flags), {"verbose": False})

    def testIdempotence(self):
        tokens = ["remote", "-v", "--name=x", "a", "--", "-b"]
        first = resolve(self.root, tokens)
        second = resolve(self.root, tokens)
        self.assertIs(first.command, second.command)
        self.assertEqual(first.flags, second.flags)
        self.assertEqual(first.args, second.args)
        self.assertEqual(first.args, ("a", "-b"))

    def testFailureIsRepeatable(self):
        self.remote.add(Flag("jobs", type=int))
        faults = []
        for _ in range(2):
            with self.assertRaises(InvalidFlagValueError) as context:
                resolve(self.root, ["remote", "-v", "--jobs", "many"])
            faults.append(context.exception)
        first, second = faults
        self.assertIs(type(first), type(second))
        self.assertEqual(str(first), str(second))
        self.assertEqual(
            (first.name, first.token, first.expected, first.tool),
            (second.name, second.token, second.expected, second.tool),
        )
        self.assertIs(self.verbose.binding, Binding.UNBOUND)

    def testBoundFlagsAccessors(self):
        flags = resolve(self.root, ["remote", "-v", "--name=x"]).flags
        self.assertIsInstance(flags, BoundFlags)
        self.assertIs(flags.getbool("verbose"), True)
        self.assertEqual(flags.getstr("name"), "x")
        self.assertIsNone(flags.getint("name"))
        self.assertIsNone(flags.getint("verbose"))
        self.assertEqual(flags.explicit(), ("verbose", "name"))


if __name__ == "__main__":
    unittest.main()
