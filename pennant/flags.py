"""
Pennant flag layer: declare typed flags, collect them in a FlagSet, parse.

What this module provides
- Flag: one declared flag (name, shorthand, value adapter and help metadata).
- FlagSet: a named registry of flags plus the state of its last parse:
  • Registration with duplicate detection (names and shorthands).
  • Name normalization applied at registration, lookup and parse time;
    replacing the normalizer re-keys every registered flag.
  • Typed definers (flagset.int(...), flagset.string_slice(...), ...) and
    matching getters (flagset.get_int(...), ...).
  • parse()/parse_all(): run the parser, report faults on the output console,
    then apply the ErrorHandling policy.
- ErrorHandling: CONTINUE (raise), EXIT (sys.exit), PANIC (raise FlagPanic).
- AllowList: parse-error categories to tolerate (unknown flags, missing
  required flags).
- command_line()/reset_command_line()/parse(): an optional process-wide flag set.

Quick start
    from pennant import FlagSet

    flags = FlagSet("tool")
    flags.bool("verbose", False, "chatty output", shorthand="v", negatable=True)
    flags.int("count", 1, "how many times", shorthand="c")

    flags.parse(["-vc5", "input.txt"])
    flags.get_bool("verbose"), flags.get_int("count"), flags.args
    # -> (True, 5, ['input.txt'])

Notes
- Definition problems (bad names, duplicates) raise FlagDefinitionError
  subclasses immediately, whatever the ErrorHandling policy.
- A parse never unregisters flags and never resets `changed` markers.
"""
import functools
import operator
import os.path
import sys
from enum import Enum

from rich.console import Console

from . import usage as _usage
from .faults import *
from .faults import console
from .parser import Parser
from .utils import *
from .values import *


def _sanitize_flag(cls, metadata, /):
    """
    Internal: validate Flag metadata in place.

    Raises
    - TypeError for arguments of the wrong type.
    - FlagDefinitionError for well-typed but unusable declarations.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError("flag name must be a string")
    if not name:
        raise FlagDefinitionError("flag name cannot be empty")
    if name.startswith("-"):
        raise FlagDefinitionError("flag name %r cannot start with '-'" % name, hint="declare the bare name, e.g. 'verbose'")
    if "=" in name:
        raise FlagDefinitionError("flag name %r cannot contain '='" % name)

    if not isinstance(shorthand := metadata["shorthand"], str | None):
        raise TypeError("flag shorthand must be a string or None")
    if shorthand is not None and len(shorthand) != 1:
        raise FlagDefinitionError("%r shorthand is more than one character" % shorthand)
    if shorthand in ("-", "="):
        raise FlagDefinitionError("%r cannot be used as a shorthand" % shorthand)

    for key in ("usage", "group"):
        if not isinstance(metadata[key], str):
            raise TypeError("flag %s must be a string" % key)
    if not isinstance(metadata["usage_type"], str | None):
        raise TypeError("flag usage_type must be a string or None")

    for key in ("deprecated", "shorthand_deprecated"):
        if not isinstance(message := metadata[key], str | None):
            raise TypeError("flag %s must be a string or None" % key)
        if message is not None and not message.strip():
            raise FlagDefinitionError("%s message of flag %r cannot be empty" % (key.replace("_", " "), name))

    if metadata["shorthand_only"] and shorthand is None:
        raise FlagDefinitionError("flag %r is shorthand-only but has no shorthand" % name)


class Flag:
    """
    One declared flag.

    Attributes
    - name: canonical name (normalized by the FlagSet that registers it).
    - shorthand: one character or None.
    - value: the value adapter; see pennant.values.
    - usage / usage_type: help text and the type name shown in usage.
    - default: text of the value at construction time (read-only).
    - changed: set to True by the first successful set.
    - required, hidden, deprecated, shorthand_deprecated, shorthand_only,
      negatable, group, annotations, disable_unquote_usage,
      disable_print_default: help and parsing metadata.
    - capabilities: Capability set of the adapter, resolved once here.

    Raises
    - TypeError for wrongly typed arguments or a value without set().
    - FlagDefinitionError for unusable declarations (empty name, shorthand
      that is not one character, 'negatable' on a non-boolean value, ...).
    """
    __introspectable__ = (
        "name",
        "shorthand",
        "typename",
        "default",
        "usage",
        "changed",
        "required",
        "hidden",
        "deprecated",
    )

    def __init__(
            self,
            value,
            name,
            usage="",
            *,
            shorthand=None,
            usage_type=None,
            required=False,
            hidden=False,
            deprecated=None,
            shorthand_deprecated=None,
            shorthand_only=False,
            negatable=False,
            group="",
            annotations=Unset,
            disable_unquote_usage=False,
            disable_print_default=False
    ):
        metadata = {
            "name": name,
            "shorthand": shorthand,
            "usage": usage,
            "usage_type": usage_type,
            "required": bool(required),
            "hidden": bool(hidden),
            "deprecated": deprecated,
            "shorthand_deprecated": shorthand_deprecated,
            "shorthand_only": bool(shorthand_only),
            "negatable": bool(negatable),
            "group": group,
            "disable_unquote_usage": bool(disable_unquote_usage),
            "disable_print_default": bool(disable_print_default),
        }
        _sanitize_flag(type(self), metadata)

        self.value = value
        self.capabilities = capabilities(value)
        if metadata["negatable"] and Capability.BOOLEAN not in self.capabilities:
            raise FlagDefinitionError("flag %r is negatable but its value is not boolean" % name)

        for key, object in metadata.items():
            setattr(self, key, object)
        self.annotations = {key: list(values) for key, values in coalesce(annotations, {}).items()}
        self.changed = False
        self._default = str(value)

    @property
    def default(self):
        return self._default

    @property
    def is_boolean(self):
        return Capability.BOOLEAN in self.capabilities

    @property
    def is_optional(self):
        return Capability.OPTIONAL in self.capabilities

    @property
    def is_slice(self):
        return Capability.SLICE in self.capabilities

    @property
    def typename(self):
        if Capability.TYPED in self.capabilities:
            return self.value.type()
        return "value"

    def set_annotation(self, key, values, /):
        if not isinstance(key, str):
            raise TypeError("annotation key must be a string")
        self.annotations[key] = list(values)

    def __repr__(self):
        return f"flag({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)


class ErrorHandling(Enum):
    """
    what a FlagSet does after reporting a parse fault.

    - CONTINUE: raise the fault to the caller.
    - EXIT: sys.exit(0) for a help request, sys.exit(2) otherwise.
    - PANIC: raise FlagPanic chained to the fault.
    """
    CONTINUE = "continue"
    EXIT = "exit"
    PANIC = "panic"


class AllowList:
    """
    parse-error categories a FlagSet tolerates instead of failing.

    - unknown_flags: unknown tokens are recorded in FlagSet.unknown_flags.
    - required_flags: validate() no longer reports missing required flags.
    """

    def __init__(self, *, unknown_flags=False, required_flags=False):
        self.unknown_flags = bool(unknown_flags)
        self.required_flags = bool(required_flags)

    def __repr__(self):
        return "AllowList(unknown_flags=%r, required_flags=%r)" % (self.unknown_flags, self.required_flags)


def _identity(name, /):
    return name


class FlagSet:
    """
    Named registry of flags and the state of its last parse.

    Options
    - errors: ErrorHandling policy applied after a parse fault (CONTINUE).
    - output: rich Console for usage, faults and warnings (stderr console).
    - interspersed: recognize flags after the first positional (True).
    - sort_flags: list flags by name rather than insertion order (True).
    - builtin_help: treat unregistered '--help' / '-h' as a help request (True).
    - allow: AllowList of tolerated parse errors.
    - normalize: function mapping a raw name to its canonical form.
    - usage: callable(flagset) replacing the default usage printer.
    - formatter: callable(flag) -> (left, right) replacing the line formatter.
    - colorful / fancy: fault rendering toggles.
    """

    def __init__(
            self,
            name="",
            /,
            *,
            errors=ErrorHandling.CONTINUE,
            output=Unset,
            interspersed=True,
            sort_flags=True,
            builtin_help=True,
            allow=Unset,
            normalize=Unset,
            usage=Unset,
            formatter=Unset,
            colorful=True,
            fancy=False
    ):
        if not isinstance(name, str):
            raise TypeError("flag set name must be a string")
        if not isinstance(errors, ErrorHandling):
            raise TypeError("flag set 'errors' must be an ErrorHandling member")
        if not isinstance(output := coalesce(output, console), Console):
            raise TypeError("flag set 'output' must be a rich Console")
        if not isinstance(allow := coalesce(allow, AllowList()), AllowList):
            raise TypeError("flag set 'allow' must be an AllowList")
        for key, object in (("normalize", normalize), ("usage", usage), ("formatter", formatter)):
            if object is not Unset and not callable(object):
                raise TypeError("flag set %r must be callable" % key)

        self.name = name
        self.errors = errors
        self.output = output
        self.interspersed = bool(interspersed)
        self.sort_flags = bool(sort_flags)
        self.builtin_help = bool(builtin_help)
        self.allow = allow
        self.usage = coalesce(usage)
        self.formatter = coalesce(formatter)
        self.colorful = bool(colorful)
        self.fancy = bool(fancy)

        self._normalize = coalesce(normalize, _identity)
        self._order = []
        self._formal = {}
        self._shorthands = {}
        self._actual = {}
        self._sorted_formal = None
        self._sorted_actual = None

        self._args = []
        self._args_len_at_dash = None
        self._unknown_flags = []
        self._parsed = False

    # --- normalization ---

    def _normalized(self, name, /):
        if not isinstance(name := self._normalize(name), str):
            raise TypeError("normalization function must return a string")
        return name

    @property
    def normalize(self):
        return self._normalize

    @normalize.setter
    def normalize(self, function, /):
        """
        Install a new normalization function and re-key every flag.

        Two flags that normalize to the same name raise FlagRedefinedError
        and leave the flag set untouched.
        """
        if not callable(function):
            raise TypeError("normalization function must be callable")

        previous, self._normalize = self._normalize, function
        try:
            names = [self._normalized(flag.name) for flag in self._order]
        except BaseException:
            self._normalize = previous
            raise
        if len(set(names)) != len(names):
            self._normalize = previous
            duplicate = next(name for name in names if names.count(name) > 1)
            raise FlagRedefinedError(
                "%s flag redefined: %s" % (self.name or "flag", duplicate),
                name=duplicate,
                hint="the normalization function merges two distinct flags"
            )

        for flag, name in zip(self._order, names):
            flag.name = name
        self._formal = {flag.name: flag for flag in self._order}
        self._actual = {flag.name: flag for flag in self._actual.values()}
        self._sorted_formal = None
        self._sorted_actual = None

    # --- registration ---

    def add_flag(self, flag, /):
        """
        Register a Flag.

        Raises
        - FlagRedefinedError when the normalized name is taken.
        - ShorthandRedefinedError when the shorthand is taken.
        """
        if not isinstance(flag, Flag):
            raise TypeError("add_flag() argument must be a Flag")

        name = self._normalized(flag.name)
        if name in self._formal:
            raise FlagRedefinedError("%s flag redefined: %s" % (self.name or "flag", name), name=name)
        if flag.shorthand is not None and (used := self._shorthands.get(flag.shorthand)) is not None:
            raise ShorthandRedefinedError(
                "unable to redefine %r shorthand in %r flag set: it's already used for %r flag" % (
                    flag.shorthand, self.name, used.name
                ),
                shorthand=flag.shorthand,
                used=used
            )

        flag.name = name
        self._order.append(flag)
        self._formal[name] = flag
        if flag.shorthand is not None:
            self._shorthands[flag.shorthand] = flag
        self._sorted_formal = None

    def var(self, value, name, usage="", /, **options):
        """
        Build a Flag around an existing value adapter and register it.
        """
        self.add_flag(flag := Flag(value, name, usage, **options))
        return flag

    def remove_flag(self, name, /):
        if (flag := self._formal.pop(name := self._normalized(name), None)) is None:
            return
        self._order.remove(flag)
        if flag.shorthand is not None:
            self._shorthands.pop(flag.shorthand, None)
        self._actual.pop(name, None)
        self._sorted_formal = None
        self._sorted_actual = None

    def add_flag_set(self, other, /):
        """
        Register every flag of another FlagSet that is not already present.
        """
        if not isinstance(other, FlagSet):
            raise TypeError("add_flag_set() argument must be a FlagSet")
        for flag in other.get_all_flags():
            if self.lookup(flag.name) is None:
                self.add_flag(flag)

    def add_argparse_action(self, action, /):
        """
        Register the flag equivalent of an argparse action; see pennant.interop.
        """
        from .interop import flag_from_action

        if (flag := flag_from_action(action)) is None or self.lookup(flag.name) is not None:
            return None
        self.add_flag(flag)
        return flag

    def add_argparse_parser(self, parser, /):
        """
        Register the flag equivalent of every optional action of an argparse parser.
        """
        return [flag for action in parser._actions if (flag := self.add_argparse_action(action)) is not None]

    # --- lookup ---

    def lookup(self, name, /):
        return self._formal.get(self._normalized(name))

    def lookup_shorthand(self, shorthand, /):
        if not isinstance(shorthand, str):
            raise TypeError("shorthand must be a string")
        if not shorthand:
            return None
        if len(shorthand) > 1:
            raise ValueError("can not look up shorthand which is more than one character: %r" % shorthand)
        return self._shorthands.get(shorthand)

    def changed(self, name, /):
        return (flag := self.lookup(name)) is not None and flag.changed

    def get(self, name, /, type=Unset):
        """
        Typed retrieval through the adapter's get().

        Raises
        - UnknownFlagError for an undefined flag.
        - TypeError when the flag's type differs from 'type' or its adapter
          has no getter.
        """
        if (flag := self.lookup(name)) is None:
            raise UnknownFlagError("flag accessed but not defined: %s" % name, name=name)
        if type is not Unset and flag.typename != type:
            raise TypeError("trying to get %s value of flag of type %s" % (type, flag.typename))
        if Capability.GETTER not in flag.capabilities:
            raise TypeError("flag %r value does not provide a getter" % flag.name)
        return flag.value.get()

    # --- set & validate ---

    def set(self, name, text, /):
        """
        Parse text into the named flag.

        Raises
        - UnknownFlagError when no such flag exists.
        - InvalidArgumentError when the adapter rejects the text.
        """
        if (flag := self._formal.get(name := self._normalized(name))) is None:
            raise UnknownFlagError("unknown flag: --%s" % name, name=name)

        try:
            flag.value.set(text)
        except ValueError as error:
            raise InvalidArgumentError(
                "invalid argument %r for %r flag: %s" % (
                    text, ("-%s, --%s" if flag.shorthand else "%s--%s") % (flag.shorthand or "", flag.name), error
                ),
                flag=flag,
                type=flag.typename,
                value=text
            ) from error

        if not flag.changed:
            flag.changed = True
            self._actual[name] = flag
            self._sorted_actual = None

        if flag.deprecated is not None:
            self.trigger(DeprecatedFlagWarning(
                "Flag --%s has been deprecated, %s" % (flag.name, flag.deprecated),
                flag=flag
            ))

    def validate(self):
        """
        Report every required flag left unset as one MissingFlagsError.
        """
        if self.allow.required_flags:
            return
        if missing := [flag for flag in self.get_all_flags() if flag.required and not flag.changed]:
            raise MissingFlagsError(
                "required flag(s) %s not set" % ", ".join('"%s"' % flag.name for flag in missing),
                flags=missing
            )

    # --- views ---

    def get_all_flags(self):
        if not self.sort_flags:
            return list(self._order)
        if self._sorted_formal is None:
            self._sorted_formal = sorted(self._order, key=operator.attrgetter("name"))
        return list(self._sorted_formal)

    def get_flags(self):
        if not self.sort_flags:
            return list(self._actual.values())
        if self._sorted_actual is None:
            self._sorted_actual = sorted(self._actual.values(), key=operator.attrgetter("name"))
        return list(self._sorted_actual)

    def visit_all(self, function, /):
        for flag in self.get_all_flags():
            function(flag)

    def visit(self, function, /):
        for flag in self.get_flags():
            function(flag)

    def has_flags(self):
        return len(self._formal) > 0

    def has_available_flags(self):
        return any(not flag.hidden for flag in self._order)

    @property
    def nflag(self):
        return len(self._actual)

    @property
    def narg(self):
        return len(self._args)

    def arg(self, index, /):
        if not 0 <= index < len(self._args):
            return ""
        return self._args[index]

    @property
    def args(self):
        return list(self._args)

    @property
    def args_len_at_dash(self):
        return self._args_len_at_dash

    @property
    def unknown_flags(self):
        return list(self._unknown_flags)

    @property
    def parsed(self):
        return self._parsed

    def __iter__(self):
        return iter(self.get_all_flags())

    def __len__(self):
        return len(self._formal)

    def __contains__(self, name, /):
        return isinstance(name, str) and self.lookup(name) is not None

    def __repr__(self):
        return "FlagSet(%r, flags=%d)" % (self.name, len(self))

    # --- output ---

    def trigger(self, fault, /):
        """
        Render a fault or warning on this flag set's output console.
        """
        trigger(fault, output=self.output, prog=self.name or Unset, colorful=self.colorful, fancy=self.fancy)

    def show_usage(self):
        if self.usage is not None:
            self.usage(self)
        else:
            _usage.default_usage(self)

    def flag_usages(self, group="", /, cols=0):
        return _usage.flag_usages(self, group, cols)

    def groups(self):
        return _usage.groups(self)

    def print_defaults(self):
        _usage.print_defaults(self)

    # --- parsing ---

    def parse(self, arguments, /):
        """
        Parse an argument vector (without the program name).

        Every parse fault is reported on the output console (usage text then
        the rendered fault) before the ErrorHandling policy applies.
        """
        return self.parse_all(arguments, lambda flag, text: self.set(flag.name, text))

    def parse_all(self, arguments, function, /):
        """
        Parse an argument vector, calling function(flag, text) for every value.

        A ValueError raised by function is reported as InvalidArgumentError.
        """
        if isinstance(arguments, str):
            raise TypeError("arguments must be a sequence of strings, not a string")
        if not callable(function):
            raise TypeError("parse_all() second argument must be callable")

        def setter(flag, text, /):
            try:
                function(flag, text)
            except ValueError as error:
                raise InvalidArgumentError(
                    "invalid argument %r for %r flag: %s" % (text, flag.name, error),
                    flag=flag,
                    type=flag.typename,
                    value=text
                ) from error

        self._parsed = True
        parser = Parser(self, setter)
        try:
            parser.run(list(arguments))
        except (FlagParseError, HelpRequested) as error:
            self.show_usage()
            if not isinstance(error, HelpRequested):
                self.trigger(error)
            match self.errors:
                case ErrorHandling.CONTINUE:
                    raise
                case ErrorHandling.EXIT:
                    sys.exit(0 if isinstance(error, HelpRequested) else 2)
                case ErrorHandling.PANIC:
                    raise FlagPanic(error) from error
        finally:
            self._args = parser.args
            self._args_len_at_dash = parser.args_len_at_dash
            self._unknown_flags = parser.unknown_flags


def _definer(kind, adapter, /):
    def definer(self, name, default=Unset, usage="", /, **options):
        return self.var(adapter() if default is Unset else adapter(default), name, usage, **options)

    rename(definer, kind).__qualname__ = "FlagSet." + kind
    definer.__doc__ = "Define a %s flag and return its Flag record." % adapter.__typename__
    return definer


def _getter(kind, adapter, /):
    def getter(self, name, /):
        return self.get(name, adapter.__typename__)

    rename(getter, "get_" + kind).__qualname__ = "FlagSet.get_" + kind
    getter.__doc__ = "Return the value of a %s flag." % adapter.__typename__
    return getter


_KINDS = {
    "bool": BoolValue,
    "int": IntValue,
    "int8": Int8Value,
    "int16": Int16Value,
    "int32": Int32Value,
    "int64": Int64Value,
    "uint": UintValue,
    "uint8": Uint8Value,
    "uint16": Uint16Value,
    "uint32": Uint32Value,
    "uint64": Uint64Value,
    "float32": Float32Value,
    "float64": Float64Value,
    "string": StringValue,
    "count": CountValue,
    "duration": DurationValue,
    "string_slice": StringSliceValue,
    "int_slice": IntSliceValue,
    "float64_slice": Float64SliceValue,
    "bool_slice": BoolSliceValue,
    "duration_slice": DurationSliceValue,
    "string_to_string": StringToStringValue,
    "string_to_int": StringToIntValue,
}

for _kind, _adapter in _KINDS.items():
    setattr(FlagSet, _kind, _definer(_kind, _adapter))
    setattr(FlagSet, "get_" + _kind, _getter(_kind, _adapter))
del _kind, _adapter


_command_line = None


def command_line():
    """
    Return the process-wide flag set, creating it on first use.

    It is named after the running program and uses ErrorHandling.EXIT.
    """
    global _command_line
    if _command_line is None:
        _command_line = FlagSet(os.path.basename(sys.argv[0]) if sys.argv else "", errors=ErrorHandling.EXIT)
    return _command_line


def reset_command_line():
    """
    Drop the process-wide flag set; the next command_line() call builds a fresh one.
    """
    global _command_line
    _command_line = None


def parse(arguments=Unset, /):
    """
    Parse sys.argv[1:] (or the given arguments) with the process-wide flag set.
    """
    command_line().parse(coalesce(arguments, sys.argv[1:]))


__all__ = (
    "Flag",
    "ErrorHandling",
    "AllowList",
    "FlagSet",
    "command_line",
    "reset_command_line",
    "parse",
)
