"""
Parser behavioral tests (long flags, shorthand clusters, terminator, policies).

Scope
- Long forms: '--flag', '--flag=value', '--flag value', '--no-flag'.
- Shorthand forms: '-f', '-fvalue', '-f=value', '-f value' and clusters.
- Terminator and interspersed handling, unknown-flag allowance.
- Help requests and the ErrorHandling policies.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured with a rich Console writing to a StringIO.
"""
import io
import unittest
from unittest import TestCase

from rich.console import Console

from pennant import *


def _flagset(**options):
    output = Console(file=io.StringIO(), width=200)
    flags = FlagSet("test", output=output, colorful=False, **options)
    flags.bool("verbose", False, "chatty output", shorthand="v", negatable=True)
    flags.int("count", 0, "how many", shorthand="c")
    return flags, output


class LongFlagTest(TestCase):

    def testBooleanAndNegation(self):
        flags, _ = _flagset()
        flags.parse(["--verbose"])
        self.assertTrue(flags.get_bool("verbose"))
        flags.parse(["--no-verbose"])
        self.assertFalse(flags.get_bool("verbose"))
        self.assertTrue(flags.changed("verbose"))

    def testNegationOnlyWhenEnabled(self):
        flags, _ = _flagset()
        flags.bool("color", True)
        with self.assertRaises(UnknownFlagError):
            flags.parse(["--no-color"])

    def testNegationWithValueIsForbidden(self):
        flags, _ = _flagset()
        with self.assertRaises(FlagValueForbiddenError):
            flags.parse(["--no-verbose=true"])

    def testFlagLiterallyNamedWithNoPrefix(self):
        flags, _ = _flagset()
        flags.bool("no-cache", False)
        flags.parse(["--no-cache=true"])
        self.assertTrue(flags.get_bool("no-cache"))

    def testValueForms(self):
        flags, _ = _flagset()
        flags.parse(["--count=3"])
        self.assertEqual(flags.get_int("count"), 3)
        flags.parse(["--count", "4", "rest"])
        self.assertEqual(flags.get_int("count"), 4)
        self.assertEqual(flags.args, ["rest"])

    def testEmptyExplicitValue(self):
        flags, _ = _flagset()
        flags.string("name", "x")
        flags.parse(["--name="])
        self.assertEqual(flags.get_string("name"), "")

    def testMissingArgument(self):
        flags, _ = _flagset()
        with self.assertRaises(MissingArgumentError) as context:
            flags.parse(["--count"])
        self.assertEqual(context.exception.flag.name, "count")
        with self.assertRaises(MissingArgumentError):
            flags.parse(["--count", "--verbose"])

    def testBooleanDoesNotConsumeNextToken(self):
        flags, _ = _flagset()
        flags.parse(["--verbose", "false"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.args, ["false"])

    def testOptionalArgument(self):
        flags, _ = _flagset()
        flags.count("level", 0, shorthand="l")
        flags.parse(["--level", "--level", "file"])
        self.assertEqual(flags.get_count("level"), 2)
        self.assertEqual(flags.args, ["file"])

    def testBadSyntax(self):
        flags, _ = _flagset()
        for token in ("---count", "--=3"):
            with self.assertRaises(BadFlagSyntaxError, msg=token):
                flags.parse([token])

    def testUnknownLongFlag(self):
        flags, output = _flagset()
        with self.assertRaises(UnknownFlagError) as context:
            flags.parse(["--mystery"])
        self.assertEqual(context.exception.name, "mystery")
        self.assertIn("unknown flag: --mystery", output.file.getvalue())

    def testShorthandOnlyUnreachableByName(self):
        flags, _ = _flagset()
        flags.bool("quiet", False, shorthand="q", shorthand_only=True)
        with self.assertRaises(UnknownFlagError):
            flags.parse(["--quiet"])
        flags.parse(["-q"])
        self.assertTrue(flags.get_bool("quiet"))

    def testInvalidArgument(self):
        flags, _ = _flagset()
        with self.assertRaises(InvalidArgumentError) as context:
            flags.parse(["--count=lots"])
        self.assertEqual(context.exception.value, "lots")

    def testOutOfRangeDurationIsInvalidArgument(self):
        flags, _ = _flagset()
        flags.duration("timeout")
        with self.assertRaises(InvalidArgumentError) as context:
            flags.parse(["--timeout=99999999999999999h"])
        self.assertEqual(context.exception.type, "duration")

    def testMalformedListIsInvalidArgument(self):
        flags, _ = _flagset()
        flags.string_slice("names")
        for text in ("a\nb", 'a,"b\nc'):
            with self.assertRaises(InvalidArgumentError, msg=text):
                flags.parse(["--names", text])

    def testOverflowExitsWithUsageError(self):
        flags, output = _flagset(errors=ErrorHandling.EXIT)
        flags.float64("ratio")
        with self.assertRaises(SystemExit) as context:
            flags.parse(["--ratio=1e400"])
        self.assertEqual(context.exception.code, 2)
        self.assertIn("Usage of test:", output.file.getvalue())


class ShorthandTest(TestCase):

    def testClusterWithAttachedValue(self):
        flags, _ = _flagset()
        flags.parse(["-vc5"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.get_int("count"), 5)
        self.assertEqual(flags.args, [])

    def testSeparateShorthands(self):
        flags, _ = _flagset()
        flags.parse(["-v", "-c5"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.get_int("count"), 5)
        self.assertEqual(flags.narg, 0)

    def testValueNeededBeforeRegisteredShorthand(self):
        flags, _ = _flagset()
        with self.assertRaises(MissingArgumentError):
            flags.parse(["-cv"])

    def testEqualsAndSpacedValues(self):
        flags, _ = _flagset()
        flags.parse(["-c=7"])
        self.assertEqual(flags.get_int("count"), 7)
        flags.parse(["-c", "8"])
        self.assertEqual(flags.get_int("count"), 8)

    def testBooleanLiteralRemainder(self):
        flags, _ = _flagset()
        flags.parse(["-vfalse"])
        self.assertFalse(flags.get_bool("verbose"))
        flags.parse(["-v", "true", "x"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.args, ["x"])
        flags.parse(["-v", "x"])
        self.assertEqual(flags.args, ["x"])

    def testBooleanRemainderThatIsNotALiteral(self):
        flags, _ = _flagset()
        flags.bool("all", False, shorthand="a")
        with self.assertRaises(UnknownFlagError) as context:
            flags.parse(["-vx"])
        self.assertEqual(context.exception.code, FaultCode.UNKNOWN_SHORTHAND)

    def testRepeatedCount(self):
        flags, _ = _flagset()
        flags.count("level", 0, shorthand="l")
        flags.parse(["-lll"])
        self.assertEqual(flags.get_count("level"), 3)

    def testMissingShorthandArgument(self):
        flags, _ = _flagset()
        with self.assertRaises(MissingArgumentError):
            flags.parse(["-c"])

    def testFallbackToOneCharacterName(self):
        flags, _ = _flagset()
        flags.int("n", 0)
        flags.parse(["-n3"])
        self.assertEqual(flags.get_int("n"), 3)

    def testDeprecatedShorthandWarns(self):
        flags, output = _flagset()
        flags.string("output", "", shorthand="o", shorthand_deprecated="use --output")
        flags.parse(["-o", "file"])
        self.assertIn("Flag shorthand -o has been deprecated, use --output", output.file.getvalue())
        self.assertEqual(flags.get_string("output"), "file")


class TerminatorTest(TestCase):

    def testEverythingAfterTerminatorIsPositional(self):
        flags, _ = _flagset()
        flags.parse(["a", "-v", "--", "-c", "--verbose", "b"])
        self.assertEqual(flags.args, ["a", "-c", "--verbose", "b"])
        self.assertEqual(flags.args_len_at_dash, 1)
        self.assertEqual(flags.get_int("count"), 0)

    def testNoTerminator(self):
        flags, _ = _flagset()
        flags.parse(["a"])
        self.assertIsNone(flags.args_len_at_dash)

    def testParseResetsState(self):
        flags, _ = _flagset()
        flags.parse(["a", "--", "b"])
        flags.parse(["-v"])
        self.assertEqual(flags.args, [])
        self.assertIsNone(flags.args_len_at_dash)
        self.assertTrue(flags.changed("verbose"))

    def testInterspersedOff(self):
        flags, _ = _flagset(interspersed=False)
        flags.parse(["-v", "file", "-c", "3"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.args, ["file", "-c", "3"])
        self.assertEqual(flags.get_int("count"), 0)

    def testRequiredValidatedAfterInterspersedStop(self):
        flags, _ = _flagset(interspersed=False)
        flags.string("name", "", required=True)
        with self.assertRaises(MissingFlagsError):
            flags.parse(["file", "--name", "x"])

    def testRequiredValidatedOnEmptyArguments(self):
        flags, output = _flagset()
        flags.string("name", "", required=True)
        with self.assertRaises(MissingFlagsError) as context:
            flags.parse([])
        self.assertEqual(context.exception.names, ("name",))
        self.assertIn('required flag(s) "name" not set', output.file.getvalue())


class UnknownAllowanceTest(TestCase):

    def testSwallowsValueButKeepsLastPositional(self):
        flags, _ = _flagset(allow=AllowList(unknown_flags=True))
        flags.parse(["--mystery", "foo", "bar"])
        self.assertEqual(flags.unknown_flags, ["--mystery"])
        self.assertEqual(flags.args, ["bar"])

    def testLastTokenIsKept(self):
        flags, _ = _flagset(allow=AllowList(unknown_flags=True))
        flags.parse(["--mystery", "foo"])
        self.assertEqual(flags.args, ["foo"])

    def testExplicitValueSwallowsNothing(self):
        flags, _ = _flagset(allow=AllowList(unknown_flags=True))
        flags.parse(["--mystery=1", "foo", "bar"])
        self.assertEqual(flags.unknown_flags, ["--mystery=1"])
        self.assertEqual(flags.args, ["foo", "bar"])

    def testNextFlagIsNotSwallowed(self):
        flags, _ = _flagset(allow=AllowList(unknown_flags=True))
        flags.parse(["--mystery", "-v", "bar"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.args, ["bar"])

    def testUnknownShorthands(self):
        flags, _ = _flagset(allow=AllowList(unknown_flags=True))
        flags.parse(["-xyz", "-vx", "a", "b"])
        self.assertEqual(flags.unknown_flags, ["-xyz", "-x"])
        self.assertTrue(flags.get_bool("verbose"))
        self.assertEqual(flags.args, ["b"])


class HelpTest(TestCase):

    def testBuiltinHelp(self):
        for token in ("--help", "-h"):
            flags, output = _flagset()
            with self.assertRaises(HelpRequested):
                flags.parse([token])
            self.assertIn("Usage of test:", output.file.getvalue())

    def testHelpDisabled(self):
        flags, _ = _flagset(builtin_help=False)
        with self.assertRaises(UnknownFlagError):
            flags.parse(["--help"])

    def testRegisteredHelpFlagWins(self):
        flags, _ = _flagset()
        flags.bool("help", False, shorthand="h")
        flags.parse(["-h"])
        self.assertTrue(flags.get_bool("help"))


class PolicyTest(TestCase):

    def testExitCodes(self):
        flags, _ = _flagset(errors=ErrorHandling.EXIT)
        with self.assertRaises(SystemExit) as context:
            flags.parse(["--help"])
        self.assertEqual(context.exception.code, 0)
        with self.assertRaises(SystemExit) as context:
            flags.parse(["--mystery"])
        self.assertEqual(context.exception.code, 2)

    def testPanic(self):
        flags, _ = _flagset(errors=ErrorHandling.PANIC)
        with self.assertRaises(FlagPanic) as context:
            flags.parse(["--count"])
        self.assertIsInstance(context.exception.error, MissingArgumentError)
        self.assertIs(context.exception.__cause__, context.exception.error)

    def testUsagePrintedBeforeError(self):
        flags, output = _flagset()
        with self.assertRaises(UnknownFlagError):
            flags.parse(["--mystery"])
        text = output.file.getvalue()
        self.assertLess(text.index("--count int"), text.index("unknown flag: --mystery"))

    def testCustomUsage(self):
        calls = []
        flags, _ = _flagset(usage=calls.append)
        with self.assertRaises(HelpRequested):
            flags.parse(["-h"])
        self.assertEqual(calls, [flags])


class ParseAllTest(TestCase):

    def testCallbackReceivesEveryValue(self):
        flags, _ = _flagset()
        seen = []
        flags.parse_all(["-v", "--count", "2"], lambda flag, text: seen.append((flag.name, text)))
        self.assertEqual(seen, [("verbose", ""), ("count", "2")])
        self.assertEqual(flags.get_int("count"), 0)

    def testCallbackValueErrorIsWrapped(self):
        flags, _ = _flagset()

        def reject(flag, text):
            raise ValueError("nope")

        with self.assertRaises(InvalidArgumentError) as context:
            flags.parse_all(["--count=2"], reject)
        self.assertEqual(context.exception.value, "2")

    def testStringArgumentsRejected(self):
        flags, _ = _flagset()
        with self.assertRaises(TypeError):
            flags.parse("--verbose")


if __name__ == "__main__":
    unittest.main()
