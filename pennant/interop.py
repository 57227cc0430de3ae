"""
Pennant argparse interop: reuse argparse option declarations as flags.

flag_from_action(action) converts one argparse action into a Flag:
- store             → ActionValue (converted by action.type, checked against
                      action.choices; nargs='?' makes the value optional and
                      a bare flag stores action.const)
- store_true        → BoolValue
- store_false / store_const
                    → ConstValue (boolean-shaped: presence stores action.const)
- count             → CountValue
- append            → ActionSliceValue
- BooleanOptionalAction
                    → BoolValue, negatable ('--name' / '--no-name')

Positional, help and version actions, and actions with any other shape
(multi-value nargs, extend, custom classes) give None.

Names
- The first '--long' option string is the flag name; a single-character
  option string ('-v') becomes the shorthand.
- A flag declared only as '-v' is reachable as both '-v' and '--v'.
- help=argparse.SUPPRESS hides the flag from usage.
"""
import argparse

from .flags import Flag
from .values import *

_TYPE_NAMES = {
    str: "string",
    int: "int",
    float: "float64",
}


def _convert(action, text, /):
    converter = action.type or str
    try:
        value = converter(text)
    except (TypeError, ValueError, argparse.ArgumentTypeError) as error:
        raise ValueError(str(error) or "invalid %s value: %r" % (_typename(action), text)) from error
    if action.choices is not None and value not in action.choices:
        raise ValueError("invalid choice: %r (choose from %s)" % (
            value, ", ".join(map(repr, action.choices))
        ))
    return value


def _typename(action, /):
    if (converter := action.type) is None:
        return "string"
    return _TYPE_NAMES.get(converter, getattr(converter, "__name__", "value"))


def _format(value, /):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ActionValue(Value):
    """
    Single value converted by an argparse action's type and choices.
    """
    __capabilities__ = Capability.GETTER | Capability.TYPED

    def __init__(self, action, /):
        self.action = action
        self.value = None if action.default == argparse.SUPPRESS else action.default

    def set(self, text, /):
        self.value = _convert(self.action, text)

    def get(self):
        return self.value

    def type(self):
        return _typename(self.action)

    def __str__(self):
        return _format(self.value)


class OptionalActionValue(ActionValue):
    """
    nargs='?' variant: a bare flag stores the action's const.
    """
    __capabilities__ = Capability.GETTER | Capability.OPTIONAL | Capability.TYPED

    def set(self, text, /):
        self.value = self.action.const if text == "" else _convert(self.action, text)


class ConstValue(Value):
    """
    Boolean-shaped constant: presence (or a true literal) stores const, a
    false literal restores the default.
    """
    __typename__ = "bool"
    __capabilities__ = Capability.GETTER | Capability.BOOLEAN | Capability.TYPED

    def __init__(self, const, default=None, /):
        self.const = const
        self.default = default
        self.value = default

    def set(self, text, /):
        self.value = self.const if text == "" or parse_bool(text) else self.default

    def get(self):
        return self.value

    def __str__(self):
        return _format(self.value)


class ActionSliceValue(SliceValue):
    """
    append action: every occurrence adds one converted element.
    """

    def __init__(self, action, /):
        self.action = action
        super().__init__(() if action.default in (None, argparse.SUPPRESS) else action.default)

    def _convert(self, item, /):
        return item

    def _parse(self, text, /):
        return _convert(self.action, text)

    def _format(self, item, /):
        return _format(item)

    def _split(self, text, /):
        return [text]

    def type(self):
        return _typename(self.action) + "Slice"


def _names(action, /):
    longs = [option for option in action.option_strings if option.startswith("--")]
    shorts = [option[1:] for option in action.option_strings if len(option) == 2 and option[0] != option[1]]
    if isinstance(action, argparse.BooleanOptionalAction):
        longs = [option for option in longs if not option.startswith("--no-")]

    shorthand = shorts[0] if shorts else None
    if longs:
        return longs[0][2:], shorthand
    if shorthand is not None:
        return shorthand, shorthand
    # single-dash long options such as '-verbose'
    return action.option_strings[0].lstrip("-"), None


def flag_from_action(action, /):
    """
    Convert one argparse action into a Flag, or None when it has no flag equivalent.
    """
    if not isinstance(action, argparse.Action):
        raise TypeError("flag_from_action() argument must be an argparse action")
    if not action.option_strings or isinstance(action, argparse._HelpAction | argparse._VersionAction):
        return None

    match action:
        case argparse.BooleanOptionalAction():
            value = BoolValue(bool(action.default) if action.default != argparse.SUPPRESS else False)
        case argparse._StoreTrueAction():
            value = BoolValue(bool(action.default))
        case argparse._StoreConstAction():
            value = ConstValue(action.const, action.default)
        case argparse._CountAction():
            value = CountValue(action.default or 0)
        case argparse._AppendAction() if action.nargs is None:
            value = ActionSliceValue(action)
        case argparse._StoreAction() if action.nargs is None:
            value = ActionValue(action)
        case argparse._StoreAction() if action.nargs == "?":
            value = OptionalActionValue(action)
        case _:
            return None

    name, shorthand = _names(action)
    return Flag(
        value,
        name,
        "" if action.help in (None, argparse.SUPPRESS) else action.help,
        shorthand=shorthand,
        usage_type=action.metavar if isinstance(action.metavar, str) else None,
        required=action.required,
        hidden=action.help == argparse.SUPPRESS,
        negatable=isinstance(action, argparse.BooleanOptionalAction),
    )


__all__ = (
    "ActionValue",
    "OptionalActionValue",
    "ConstValue",
    "ActionSliceValue",
    "flag_from_action",
)
