"""
Pennant faults (errors, warnings and control signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain (definitions, parsing, warnings, signals) to keep
  logs and searches predictable.
- FlagException / FlagWarning: base types that carry message + options and know
  how to render themselves through rich (plain or colorful, flat or fancy).
- Taxonomy
  • FlagDefinitionError: a broken flag declaration (programmer error). Raised
    immediately at registration, never deferred to parse time.
  • FlagParseError: user input problems found while parsing an argument vector.
  • HelpRequested: '--help' / '-h' was asked for; a signal, not a failure.
  • FlagPanic: the unrecoverable fault raised by the PANIC error policy.
- trigger(): central entry point to print any fault on a console.

Integration
- FlagSet renders parse faults (after the usage text) and deprecation warnings
  on its output console, then applies its ErrorHandling policy.
- Hosts may define __styles__ (palette overrides), __codes__ (code labels) and
  __prog__ (program name) in __main__.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping (by high-level domain)
    - definitions (101xx)
      • FLAG_REDEFINED, SHORTHAND_REDEFINED, INVALID_DEFINITION
    - parsing (111xx)
      • BAD_FLAG_SYNTAX, UNKNOWN_FLAG, UNKNOWN_SHORTHAND, FLAG_VALUE_FORBIDDEN,
        MISSING_ARGUMENT, INVALID_ARGUMENT, MISSING_FLAGS
    - warnings (121xx)
      • DEPRECATED_FLAG, DEPRECATED_SHORTHAND
    - signals (131xx)
      • HELP_REQUESTED
    """
    # --- definition errors (10xxx) ---
    FLAG_REDEFINED       = 10101
    SHORTHAND_REDEFINED  = 10102
    INVALID_DEFINITION   = 10103

    # --- parse errors (11xxx) ---
    BAD_FLAG_SYNTAX      = 11111
    UNKNOWN_FLAG         = 11112
    UNKNOWN_SHORTHAND    = 11113
    FLAG_VALUE_FORBIDDEN = 11114
    MISSING_ARGUMENT     = 11115
    INVALID_ARGUMENT     = 11116
    MISSING_FLAGS        = 11117

    # --- warnings (12xxx) ---
    DEPRECATED_FLAG      = 12111
    DEPRECATED_SHORTHAND = 12112

    # --- signals (13xxx) ---
    HELP_REQUESTED       = 13101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, /, *, prog=Unset, colorful=True, fancy=False):
    styles = defaultdict(str, palette | getattr(__import__("__main__"), "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    prog = coalesce(prog, getattr(__import__("__main__"), "__prog__", None))

    header = Text.assemble(
        "[ ",
        *((text(prog, "prog-name"), " — ") if prog else ()),
        text(fault.code.normalize(), "code"),
        " | ",
        text(fault.title.title(), "title"),
        " ]"
    )
    message = text(fault.message, "message")
    renders = [message]
    if fault.hint:
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(fault.hint, "hint")))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class FlagException(Exception):
    """
    base type of every pennant error.

    options
    - code: FaultCode (defaults to the class __code__).
    - title: short, lowercase title (defaults to the class __title__).
    - hint: single actionable sentence, optional.
    - anything else is kept verbatim in the read-only `options` mapping.
    """
    __code__ = FaultCode.INVALID_DEFINITION
    __title__ = "flag error"

    __styles__ = {
        "prog-name": "bold #E6E6F0",  # near-white program name
        "code": "bold #00E5FF",  # neon cyan fault code
        "title": "bold #FF4DA6",  # friendly pinky title
        "message": "#C8C8D0",  # soft light gray message
        "hint-arrow": "#9CE19C dim",  # gentle green arrow
        "hint": "italic #9CE19C",  # gentle green hint text
    }

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    def render(self, /, **options):
        return _render(self, type(self).__styles__, **options)

    def __rich__(self):
        return self.render()


# --- definition errors ---

class FlagDefinitionError(FlagException):
    __code__ = FaultCode.INVALID_DEFINITION
    __title__ = "invalid flag definition"


class FlagRedefinedError(FlagDefinitionError):
    __code__ = FaultCode.FLAG_REDEFINED
    __title__ = "flag redefined"

    def __init__(self, message, /, name, **options):
        super().__init__(message, **options)
        self.name = name


class ShorthandRedefinedError(FlagDefinitionError):
    __code__ = FaultCode.SHORTHAND_REDEFINED
    __title__ = "shorthand redefined"

    def __init__(self, message, /, shorthand, used, **options):
        super().__init__(message, **options)
        self.shorthand = shorthand
        self.used = used


# --- parse errors ---

class FlagParseError(FlagException):
    __code__ = FaultCode.BAD_FLAG_SYNTAX
    __title__ = "parse error"


class BadFlagSyntaxError(FlagParseError):
    __code__ = FaultCode.BAD_FLAG_SYNTAX
    __title__ = "bad flag syntax"

    def __init__(self, message, /, token, **options):
        super().__init__(message, **options)
        self.token = token


class UnknownFlagError(FlagParseError):
    __code__ = FaultCode.UNKNOWN_FLAG
    __title__ = "unknown flag"

    def __init__(self, message, /, name, **options):
        super().__init__(message, **options)
        self.name = name


class FlagValueForbiddenError(FlagParseError):
    __code__ = FaultCode.FLAG_VALUE_FORBIDDEN
    __title__ = "flag cannot have a value"

    def __init__(self, message, /, token, **options):
        super().__init__(message, **options)
        self.token = token


class MissingArgumentError(FlagParseError):
    __code__ = FaultCode.MISSING_ARGUMENT
    __title__ = "flag needs an argument"

    def __init__(self, message, /, flag, **options):
        super().__init__(message, **options)
        self.flag = flag


class InvalidArgumentError(FlagParseError):
    """
    the value text failed to parse for the flag's type.

    attributes
    - flag: the Flag record that rejected the text.
    - type: the flag's declared type name.
    - value: the offending text.
    the adapter's own error is chained as __cause__.
    """
    __code__ = FaultCode.INVALID_ARGUMENT
    __title__ = "invalid argument"

    def __init__(self, message, /, flag, type, value, **options):
        super().__init__(message, **options)
        self.flag = flag
        self.type = type
        self.value = value


class MissingFlagsError(FlagParseError):
    """
    aggregate of every required flag left unset by a parse pass.
    """
    __code__ = FaultCode.MISSING_FLAGS
    __title__ = "required flags not set"

    def __init__(self, message, /, flags, **options):
        super().__init__(message, **options)
        self.flags = tuple(flags)

    @property
    def names(self):
        return tuple(flag.name for flag in self.flags)


# --- signals ---

class HelpRequested(FlagException):
    """
    raised when the built-in help was asked for. not a FlagParseError.
    """
    __code__ = FaultCode.HELP_REQUESTED
    __title__ = "help requested"

    def __init__(self, message="help requested", /, **options):
        super().__init__(message, **options)


class FlagPanic(BaseException):
    """
    unrecoverable fault raised by the PANIC error policy; the underlying
    fault is kept in `error` and chained as __cause__.
    """

    def __init__(self, error, /):
        super().__init__(str(error))
        self.error = error


# --- warnings ---

class FlagWarning(Warning):
    __code__ = FaultCode.DEPRECATED_FLAG
    __title__ = "flag warning"

    __styles__ = {
        "prog-name": "bold #E6E6F0",  # near-white program name
        "code": "bold #FFB400",  # amber fault code for warnings
        "title": "bold #FFC2E0",  # softer pinky title for warnings
        "message": "#D6D6DE",  # slightly lighter gray body
        "hint-arrow": "#B8EFAF dim",  # softer green arrow
        "hint": "italic #B8EFAF",  # softer green hint text
    }

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    code = FlagException.code
    title = FlagException.title
    hint = FlagException.hint

    def render(self, /, **options):
        return _render(self, type(self).__styles__, **options)

    def __rich__(self):
        return self.render()


class DeprecatedFlagWarning(FlagWarning):
    __code__ = FaultCode.DEPRECATED_FLAG
    __title__ = "deprecated flag"

    def __init__(self, message, /, flag, **options):
        super().__init__(message, **options)
        self.flag = flag


class DeprecatedShorthandWarning(FlagWarning):
    __code__ = FaultCode.DEPRECATED_SHORTHAND
    __title__ = "deprecated shorthand"

    def __init__(self, message, /, flag, **options):
        super().__init__(message, **options)
        self.flag = flag


def trigger(fault, /, *, output=Unset, **options):
    """
    print a fault on a console.

    contract
    - fault must be a FlagException or a FlagWarning (anything with render()).
    - output defaults to the module console (stderr).
    - options are forwarded to render(): prog, colorful, fancy.
    """
    if not isinstance(fault, FlagException | FlagWarning):
        raise TypeError("trigger() argument must be a flag exception or a flag warning")
    coalesce(output, console).print(fault.render(**options), highlight=False)


__all__ = (
    "FaultCode",
    "FlagException",
    "FlagDefinitionError",
    "FlagRedefinedError",
    "ShorthandRedefinedError",
    "FlagParseError",
    "BadFlagSyntaxError",
    "UnknownFlagError",
    "FlagValueForbiddenError",
    "MissingArgumentError",
    "InvalidArgumentError",
    "MissingFlagsError",
    "HelpRequested",
    "FlagPanic",
    "FlagWarning",
    "DeprecatedFlagWarning",
    "DeprecatedShorthandWarning",
    "trigger",
)
