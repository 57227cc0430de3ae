"""
Usage formatter tests (line shape, defaults, groups, wrapping).

Conventions
- Test method names follow CamelCase per project convention.
"""
import io
import unittest
from datetime import timedelta
from unittest import TestCase

from rich.console import Console
from rich.text import Text

from pennant import *


def _flagset(**options):
    output = Console(file=io.StringIO(), width=200)
    return FlagSet("tool", output=output, colorful=False, **options), output


class LineTest(TestCase):

    def testAlignedLines(self):
        flags, _ = _flagset()
        flags.int("count", 5, "how many", shorthand="c")
        flags.bool("verbose", False, "chatty output", shorthand="v", negatable=True)
        flags.string("name", "bob", "who to greet")
        self.assertEqual(flags.flag_usages(), (
            "  -c, --count int      how many (default 5)\n"
            "      --name string    who to greet (default \"bob\")\n"
            "  -v, --[no-]verbose   chatty output\n"
        ))

    def testZeroDefaultsAreOmitted(self):
        flags, _ = _flagset()
        flags.int("count", 0, "how many")
        flags.duration("wait", timedelta(0), "pause")
        flags.string_slice("tags", (), "labels")
        self.assertNotIn("default", flags.flag_usages())

    def testBacktickNamesTheValue(self):
        flags, _ = _flagset()
        flag = flags.string("include", "", "search `directory` for files", shorthand="I")
        self.assertEqual(unquote_usage(flag), ("directory", "search directory for files"))
        self.assertEqual(default_formatter(flag), ("  -I, --include directory", "search directory for files"))

    def testTypeNameMapping(self):
        flags, _ = _flagset()
        self.assertEqual(unquote_usage(flags.int64("big", 0))[0], "int")
        self.assertEqual(unquote_usage(flags.string_slice("tags"))[0], "strings")
        self.assertEqual(unquote_usage(flags.bool("quiet"))[0], "")
        self.assertEqual(unquote_usage(flags.string("mode", "", "`m`", usage_type="MODE"))[0], "MODE")

    def testDeprecatedAndHidden(self):
        flags, _ = _flagset()
        flags.int("old", 0, "legacy", deprecated="use --new")
        flags.int("secret", 0, "internal", hidden=True)
        usages = flags.flag_usages()
        self.assertIn("(DEPRECATED: use --new)", usages)
        self.assertNotIn("secret", usages)

    def testShorthandOnlyAndDeprecatedShorthand(self):
        flags, _ = _flagset()
        quiet = flags.bool("quiet", False, shorthand="q", shorthand_only=True)
        output = flags.string("output", "", shorthand="o", shorthand_deprecated="use --output")
        self.assertEqual(default_formatter(quiet)[0], "  -q")
        self.assertEqual(default_formatter(output)[0], "      --output string")

    def testDisablePrintDefault(self):
        flags, _ = _flagset()
        flag = flags.int("count", 3, "how many", disable_print_default=True)
        self.assertEqual(default_formatter(flag)[1], "how many")
        self.assertFalse(is_zero_default(flag))

    def testCustomFormatter(self):
        flags, _ = _flagset(formatter=lambda flag: ("  " + flag.name, flag.usage.upper()))
        flags.int("count", 0, "how many")
        self.assertEqual(flags.flag_usages(), "  count   HOW MANY\n")


class GroupTest(TestCase):

    def testGroups(self):
        flags, _ = _flagset()
        flags.int("port", 0, "listen port", group="network")
        flags.int("count", 0, "how many")
        flags.string("host", "", "remote host", group="network")
        flags.string("level", "", "log level", group="logging")
        self.assertEqual(flags.groups(), ["", "logging", "network"])
        self.assertEqual(flags.flag_usages("network").splitlines(), [
            "      --host string    remote host",
            "      --port int       listen port",
        ])

    def testNoUngroupedFlags(self):
        flags, _ = _flagset()
        flags.int("port", 0, group="network")
        self.assertEqual(flags.groups(), ["network"])


class WrapTest(TestCase):

    def testWrappedWithHangingIndent(self):
        flags, _ = _flagset()
        flags.string("name", "", "word " * 20)
        lines = flags.flag_usages(cols=60).splitlines()
        self.assertGreater(len(lines), 1)
        self.assertTrue(all(len(line) <= 60 for line in lines))
        indent = len("      --name string   ")
        self.assertTrue(all(line.startswith(" " * indent) for line in lines[1:]))


class PrintTest(TestCase):

    def testDefaultUsage(self):
        flags, output = _flagset()
        flags.bool("verbose", False, "chatty output", shorthand="v", negatable=True)
        flags.show_usage()
        self.assertEqual(output.file.getvalue(), "Usage of tool:\n  -v, --[no-]verbose   chatty output\n")

    def testUnnamedFlagSet(self):
        output = Console(file=io.StringIO(), width=200)
        flags = FlagSet(output=output, colorful=False)
        flags.show_usage()
        self.assertEqual(output.file.getvalue(), "Usage:\n")

    def testRenderedUsagesKeepPlainText(self):
        flags, _ = _flagset()
        flags.int("count", 5, "how many", shorthand="c")
        rendered = render_usages(flags)
        self.assertIsInstance(rendered, Text)
        self.assertEqual(rendered.plain, flags.flag_usages())
        self.assertTrue(rendered.spans)


if __name__ == "__main__":
    unittest.main()
