"""
Pennant usage text: one aligned line per visible flag, grouped and wrapped.

Line shape
      --name string     usage text (default "x")
  -c, --count int       usage text (default 5)
  -v, --[no-]verbose    usage text
  -q                    shorthand-only flag

- The left column comes from the flag set's formatter (default_formatter);
  the right column starts 3 spaces after the widest left column.
- A back-quoted word in the usage names the value ("search `dir` for files"
  shows "-I dir"); otherwise the type name is used (none for booleans).
- Defaults are omitted when they are the zero value of their type; string
  defaults are quoted; deprecated flags append "(DEPRECATED: message)".
- cols > 0 wraps the right column with a hanging indent (textwrap).

Output goes through the flag set's rich Console. When colorful, flag names,
types and defaults are styled; the palette merges with __styles__ in __main__.
"""
import re
import textwrap
from collections import defaultdict

from rich.text import Text

from .values import Capability

_TYPE_NAMES = {
    "bool": "",
    "boolSlice": "bools",
    "durationSlice": "durations",
    "float32": "float",
    "float64": "float",
    "float64Slice": "floats",
    "int8": "int",
    "int16": "int",
    "int32": "int",
    "int64": "int",
    "intSlice": "ints",
    "stringSlice": "strings",
    "uint8": "uint",
    "uint16": "uint",
    "uint32": "uint",
    "uint64": "uint",
}

_NUMERIC = frozenset((
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64",
    "count", "float32", "float64",
))

__styles__ = {
    "header": "bold #E6E6F0",  # near-white usage header
    "name": "bold #00E5FF",  # neon cyan flag names
    "type": "italic #FF4DA6",  # pinky type names
    "default": "#9CE19C dim",  # gentle green defaults
    "deprecated": "bold #FFB400",  # amber deprecation notes
}


def unquote_usage(flag, /):
    """
    Return (name, usage): the value name to show and the usage without back quotes.

    Given "a `name` to show" it returns ("name", "a name to show"), unless the
    flag sets usage_type (which wins) or disable_unquote_usage.
    """
    name = flag.usage_type or ""
    usage = flag.usage

    if not flag.disable_unquote_usage and (match := re.search(r"`([^`]*)`", usage)):
        name = name or match[1]
        usage = usage[:match.start()] + match[1] + usage[match.end():]

    if not name:
        if Capability.TYPED in flag.capabilities:
            name = _TYPE_NAMES.get(typename := flag.typename, typename)
        else:
            name = "value"
    return name, usage


def is_zero_default(flag, /):
    """
    Report whether the flag's default text is the zero value of its type.
    """
    default = flag.default
    if flag.is_boolean:
        return default == "false"
    if flag.is_slice:
        return default == "[]"
    match flag.typename:
        case "duration":
            return default == "0s"
        case "string":
            return default == ""
        case "stringToString" | "stringToInt":
            return default == "[]"
        case typename if typename in _NUMERIC:
            return default == "0"
    return default in ("false", "<nil>", "", "0")


def default_formatter(flag, /):
    """
    Build the (left, right) columns of one usage line.
    """
    long = "--[no-]%s" % flag.name if flag.negatable else "--%s" % flag.name
    if flag.shorthand_only:
        left = "  -%s" % flag.shorthand
    elif flag.shorthand is not None and flag.shorthand_deprecated is None:
        left = "  -%s, %s" % (flag.shorthand, long)
    else:
        left = "      %s" % long

    name, right = unquote_usage(flag)
    if name:
        left += " " + name

    if not flag.disable_print_default and not is_zero_default(flag):
        if flag.typename == "string":
            right += ' (default "%s")' % flag.default.replace("\\", "\\\\").replace('"', '\\"')
        else:
            right += " (default %s)" % flag.default
    if flag.deprecated is not None:
        right += " (DEPRECATED: %s)" % flag.deprecated
    return left, right


def _wrap(indent, cols, text, /):
    if not cols:
        return text.replace("\n", "\n" + " " * indent)

    prefix = ""
    if (width := cols - indent) < 24:
        # not enough room beside the names: wrap as a block on the next line
        indent = 16
        width = cols - indent
        prefix = "\n" + " " * indent
    if width < 24:
        return prefix + text.replace("\n", prefix or "\n")

    lines = []
    for paragraph in text.split("\n"):
        lines.extend(textwrap.wrap(paragraph, width) or [""])
    return prefix + ("\n" + " " * indent).join(lines)


def _lines(flagset, group, cols, /):
    formatter = flagset.formatter or default_formatter
    rows = defaultdict(list)
    for flag in flagset.get_all_flags():
        if not flag.hidden:
            rows[flag.group].append((flag, *formatter(flag)))

    width = max((len(left) for row in rows.values() for _, left, _ in row), default=0)
    for flag, left, right in rows[group]:
        yield flag, left, " " * (width - len(left) + 3), _wrap(width + 3, cols, right)


def flag_usages(flagset, group="", /, cols=0):
    """
    Return the usage lines of one flag group as plain text (cols=0: no wrapping).
    """
    return "".join(left + spacing + right + "\n" for _, left, spacing, right in _lines(flagset, group, cols))


def render_usages(flagset, group="", /, cols=0):
    """
    Return the usage lines of one flag group as styled rich Text.
    """
    styles = defaultdict(str, __styles__ | getattr(__import__("__main__"), "__styles__", {}))
    text = Text()
    for flag, left, spacing, right in _lines(flagset, group, cols):
        line = Text(left + spacing + right + "\n")
        line.highlight_regex(r"(?<![\w-])--?(\[no-\])?[^\s,=]+", styles["name"])
        if name := unquote_usage(flag)[0]:
            line.stylize(styles["type"], len(left) - len(name), len(left))
        line.highlight_regex(r"\(default .*\)", styles["default"])
        line.highlight_regex(r"\(DEPRECATED: .*\)", styles["deprecated"])
        text.append_text(line)
    return text


def groups(flagset, /):
    """
    Return the flag groups in use, sorted, with the unnamed group ("") first.
    """
    names = {flag.group for flag in flagset.get_all_flags()}
    return ([""] if "" in names else []) + sorted(names - {""})


def print_defaults(flagset, /):
    """
    Print the usage lines of the unnamed group on the flag set's console.
    """
    usages = render_usages(flagset) if flagset.colorful else Text(flag_usages(flagset))
    flagset.output.print(usages, end="", soft_wrap=True, highlight=False)


def default_usage(flagset, /):
    """
    Print a "Usage of <name>:" header followed by the flag defaults.
    """
    header = "Usage of %s:" % flagset.name if flagset.name else "Usage:"
    styles = defaultdict(str, __styles__ | getattr(__import__("__main__"), "__styles__", {}))
    flagset.output.print(Text(header, styles["header"] if flagset.colorful else ""), soft_wrap=True, highlight=False)
    print_defaults(flagset)


__all__ = (
    "unquote_usage",
    "is_zero_default",
    "default_formatter",
    "flag_usages",
    "render_usages",
    "groups",
    "print_defaults",
    "default_usage",
)
